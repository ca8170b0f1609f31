"""Data processor module for the campaign dashboard."""

from .aggregator import (
    AggregationResult,
    MetricGroup,
    Variation,
    aggregate,
    merge_groups,
    pacing,
    safe_divide,
    summarize,
    total,
    variation,
    RATIO_METRICS,
)
from .columns import (
    ColumnResolution,
    normalize_header,
    resolve_column,
    resolve_columns,
)
from .filters import (
    FilterState,
    apply_filters,
    available_values,
    date_bounds,
    matches,
    FILTER_DIMENSIONS,
)
from .ingestion import (
    detect_encoding,
    list_sheets,
    read_csv_auto,
    read_table,
    table_from_payload,
    unwrap_envelope,
    TABLE_READERS,
)
from .normalizer import (
    NormalizationResult,
    is_included,
    normalize_row,
    normalize_table,
    region_from_campaign,
)
from .parsers import (
    parse_flexible_date,
    parse_locale_integer,
    parse_locale_number,
    parse_plain_number,
    parse_text,
)
from .reconciler import (
    ReconciledPlatformRecord,
    SourcePriority,
    reconcile,
)
from .views import (
    DashboardBuilder,
    DashboardResult,
    NormalizedSources,
    ViewResult,
)
