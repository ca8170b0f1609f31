"""Schema package — typed models for source tables and dashboard config.

Provides the contract between the ingestion glue, the processor, and the
views:

- models.py: Core dataclasses (RawTable, ColumnSpec, TableSchema, DashboardConfig)
- records.py: Normalized record types, one per source domain
- sources.py: Built-in source schemas and the default configuration
- loader.py: YAML serialization/deserialization
"""

from .loader import load_config, save_config
from .models import (
    ColumnSpec,
    CtaRule,
    DashboardConfig,
    FieldType,
    RawTable,
    SourceType,
    TableSchema,
)
from .records import (
    BenchmarkRecord,
    DeliveryRecord,
    EventRecord,
    PlanRecord,
    ReachRecord,
    SessionRecord,
)
from .sources import SCHEMA_BUILDERS, build_default_config

__all__ = [
    # Models
    "ColumnSpec",
    "CtaRule",
    "DashboardConfig",
    "FieldType",
    "RawTable",
    "SourceType",
    "TableSchema",
    # Records
    "BenchmarkRecord",
    "DeliveryRecord",
    "EventRecord",
    "PlanRecord",
    "ReachRecord",
    "SessionRecord",
    # Builders
    "SCHEMA_BUILDERS",
    "build_default_config",
    # Loader
    "load_config",
    "save_config",
]
