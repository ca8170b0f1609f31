"""Schema models - the contract between ingestion, normalizer, and views.

Defines the typed structure of the spreadsheet exports the dashboard reads:
which logical fields each source table carries, which header texts may
name them, and the dashboard-level configuration (dedicated-reach
platforms, pacing plan, CTA rules) the views are computed with.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class FieldType(Enum):
    """How a raw cell is parsed into a typed value."""
    TEXT = "text"                  # Trimmed string, falls back to a default label
    NUMBER = "number"              # Locale number: "R$ 1.500,00" -> 1500.0
    INTEGER = "integer"            # Locale integer: "10.000" -> 10000
    PLAIN_NUMBER = "plain_number"  # Dot-decimal analytics value: "123.45"
    DATE = "date"                  # DD/MM/YYYY, YYYY-MM-DD, ... -> ISO string


class SourceType(Enum):
    """The kinds of source tables the dashboard normalizes."""
    DELIVERY = "delivery"    # Consolidated ad-platform delivery export
    REACH = "reach"          # Deduplicated reach tab (one per platform)
    BENCHMARK = "benchmark"  # Vehicle x media type benchmark table
    EVENTS = "events"        # GA4 custom event export
    SESSIONS = "sessions"    # GA4 traffic/session export
    PLAN = "plan"            # Planned vs invested strategy sheet


# ---------------------------------------------------------------------------
# Raw tables
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RawTable:
    """Header row plus untyped data rows, as fetched from a spreadsheet.

    Rows may be ragged (trailing empty cells are often omitted by the
    spreadsheet API); cells are only ever read through resolved column
    indices.
    """
    header: tuple[str, ...]
    rows: tuple[tuple[Any, ...], ...] = ()
    name: str = ""

    @classmethod
    def from_values(cls, values, name: str = "") -> "RawTable":
        """Build a table from a list of rows whose first row is the header."""
        if not values:
            return cls(header=(), rows=(), name=name)
        header = tuple("" if c is None else str(c) for c in values[0])
        rows = tuple(tuple(row) for row in values[1:])
        return cls(header=header, rows=rows, name=name)

    @property
    def is_empty(self) -> bool:
        return not self.rows

    def __len__(self) -> int:
        return len(self.rows)


# ---------------------------------------------------------------------------
# Column and table specifications
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ColumnSpec:
    """A logical field and the header texts that may name it.

    Synonyms are tried in order, case-insensitively. ``position`` is the
    legacy column index used only when no synonym matches (tabs exported
    without usable headers).
    """
    name: str
    synonyms: tuple[str, ...]
    field_type: FieldType = FieldType.TEXT
    position: int | None = None
    default: str = ""              # Label used when a TEXT cell is empty

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            "name": self.name,
            "synonyms": list(self.synonyms),
            "field_type": self.field_type.value,
        }
        if self.position is not None:
            d["position"] = self.position
        if self.default:
            d["default"] = self.default
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "ColumnSpec":
        return cls(
            name=d["name"],
            synonyms=tuple(d.get("synonyms", ())),
            field_type=FieldType(d.get("field_type", "text")),
            position=d.get("position"),
            default=d.get("default", ""),
        )


@dataclass
class TableSchema:
    """The set of logical fields read from one kind of source table."""
    name: str
    source_type: SourceType
    columns: list[ColumnSpec] = field(default_factory=list)
    description: str = ""

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            "name": self.name,
            "source_type": self.source_type.value,
            "columns": [c.to_dict() for c in self.columns],
        }
        if self.description:
            d["description"] = self.description
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "TableSchema":
        return cls(
            name=d["name"],
            source_type=SourceType(d["source_type"]),
            columns=[ColumnSpec.from_dict(c) for c in d.get("columns", [])],
            description=d.get("description", ""),
        )


# ---------------------------------------------------------------------------
# Dashboard configuration
# ---------------------------------------------------------------------------

@dataclass
class CtaRule:
    """Region-specific CTA counting: count events whose label matches."""
    region: str
    label: str

    def to_dict(self) -> dict:
        return {"region": self.region, "label": self.label}

    @classmethod
    def from_dict(cls, d: dict) -> "CtaRule":
        return cls(region=d["region"], label=d["label"])


@dataclass
class DashboardConfig:
    """Everything the views need besides the tables and the filter state.

    The planned values feed the overview pacing cards; CTA rules override
    the default ``cta_action`` for the listed regions.
    """
    schemas: dict[str, TableSchema]
    dedicated_reach_platforms: list[str] = field(default_factory=list)
    reach_tabs: dict[str, str] = field(default_factory=dict)  # tab -> platform
    planned_impressions: float = 0.0
    planned_clicks: float = 0.0
    cta_action: str = "botao-cta"
    cta_rules: list[CtaRule] = field(default_factory=list)
    state_aliases: dict[str, str] = field(default_factory=dict)
    benchmark_aliases: dict[str, str] = field(default_factory=dict)

    def schema(self, source_type: SourceType | str) -> TableSchema:
        """Return the table schema for *source_type*.

        Raises:
            ValueError: If no schema is configured for the source type.
        """
        key = source_type.value if isinstance(source_type, SourceType) else source_type
        if key not in self.schemas:
            raise ValueError(
                f"No schema configured for source type '{key}'. "
                f"Configured: {', '.join(sorted(self.schemas))}"
            )
        return self.schemas[key]

    def to_dict(self) -> dict:
        return {
            "schemas": {k: s.to_dict() for k, s in self.schemas.items()},
            "dedicated_reach_platforms": list(self.dedicated_reach_platforms),
            "reach_tabs": dict(self.reach_tabs),
            "pacing": {
                "planned_impressions": self.planned_impressions,
                "planned_clicks": self.planned_clicks,
            },
            "cta": {
                "action": self.cta_action,
                "rules": [r.to_dict() for r in self.cta_rules],
            },
            "state_aliases": dict(self.state_aliases),
            "benchmark_aliases": dict(self.benchmark_aliases),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "DashboardConfig":
        pacing = d.get("pacing", {})
        cta = d.get("cta", {})
        return cls(
            schemas={k: TableSchema.from_dict(s) for k, s in d.get("schemas", {}).items()},
            dedicated_reach_platforms=list(d.get("dedicated_reach_platforms", [])),
            reach_tabs=dict(d.get("reach_tabs", {})),
            planned_impressions=float(pacing.get("planned_impressions", 0.0)),
            planned_clicks=float(pacing.get("planned_clicks", 0.0)),
            cta_action=cta.get("action", "botao-cta"),
            cta_rules=[CtaRule.from_dict(r) for r in cta.get("rules", [])],
            state_aliases=dict(d.get("state_aliases", {})),
            benchmark_aliases=dict(d.get("benchmark_aliases", {})),
        )
