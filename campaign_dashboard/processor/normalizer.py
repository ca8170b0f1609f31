"""Row normalization: raw spreadsheet rows -> typed records.

Normalization is two-phase. Columns are resolved once per table
(:func:`resolve_columns`), then every row is parsed through that fixed
mapping with the parser matching each field's type. Derived per-row
metrics are computed from the same row, and a schema-specific inclusion
predicate decides whether the record is kept.

Inclusion predicates (rows failing them are dropped, not raised):

- delivery:  date resolved and impressions > 0
- reach:     advertiser present, or impressions > 0, or reach > 0
- benchmark: vehicle and media type both present
- events:    event count > 0
- sessions:  sessions > 0 or new users > 0
- plan:      vehicle and month both present

A malformed row never aborts the table: unparseable cells become 0 or
``None`` and the row is then judged by the same predicate.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from campaign_dashboard.schema.models import FieldType, RawTable, SourceType, TableSchema
from campaign_dashboard.schema.records import (
    BenchmarkRecord,
    DeliveryRecord,
    EventRecord,
    PlanRecord,
    ReachRecord,
    SessionRecord,
)

from .aggregator import safe_divide
from .columns import ColumnResolution, resolve_columns
from .parsers import (
    parse_flexible_date,
    parse_locale_integer,
    parse_locale_number,
    parse_plain_number,
    parse_text,
)


# ---------------------------------------------------------------------------
# Cell extraction
# ---------------------------------------------------------------------------

_PARSERS: dict[FieldType, Callable[[Any], Any]] = {
    FieldType.TEXT: parse_text,
    FieldType.NUMBER: parse_locale_number,
    FieldType.INTEGER: parse_locale_integer,
    FieldType.PLAIN_NUMBER: parse_plain_number,
    FieldType.DATE: parse_flexible_date,
}

_NUMERIC_TYPES = (FieldType.NUMBER, FieldType.INTEGER, FieldType.PLAIN_NUMBER)

# Campaign-name tags used when the delivery export has no region column.
CAMPAIGN_REGION_TAGS = (
    ("| SP |", "São Paulo"),
    ("| RJ |", "Rio de Janeiro"),
    ("| MG |", "Minas Gerais"),
    ("| RS |", "Rio Grande do Sul"),
    ("| NAC |", "Nacional"),
)
DEFAULT_REGION = "Nacional"


def _cell(row: Sequence, index: int | None):
    if index is None or index >= len(row):
        return None
    return row[index]


def extract_values(row: Sequence, resolution: ColumnResolution, schema: TableSchema,
                   defaults: dict | None = None) -> dict[str, Any]:
    """Parse one row into a ``{field: typed value}`` dict.

    Empty TEXT cells take the caller's default for the field, then the
    column's default label. Numeric fields are clamped at zero.
    """
    defaults = defaults or {}
    values: dict[str, Any] = {}
    for spec in schema.columns:
        raw = _cell(row, resolution.index(spec.name))
        value = _PARSERS[spec.field_type](raw)
        if spec.field_type is FieldType.TEXT and not value:
            value = defaults.get(spec.name) or spec.default
        elif spec.field_type in _NUMERIC_TYPES and value < 0:
            value = type(value)(0)
        values[spec.name] = value
    return values


def region_from_campaign(campaign: str) -> str:
    """Infer the market from the campaign-name convention ``... | SP | ...``."""
    for tag, region in CAMPAIGN_REGION_TAGS:
        if tag in campaign:
            return region
    return DEFAULT_REGION


# ---------------------------------------------------------------------------
# Record builders
# ---------------------------------------------------------------------------

def _build_delivery(v: dict) -> DeliveryRecord:
    impressions = v.get("impressions", 0)
    cost = v.get("cost", 0.0)
    reach = v.get("reach", 0)
    views = v.get("video_views", 0)
    completions = v.get("video_completions", 0)
    media = v.get("media_format", "").casefold()
    return DeliveryRecord(
        date=v.get("date"),
        platform=v.get("platform") or "Outros",
        campaign=v.get("campaign", ""),
        region=v.get("region") or region_from_campaign(v.get("campaign", "")),
        category=v.get("category") or "CPM",
        media_format="video" if media in ("video", "vídeo") else "static",
        impressions=impressions,
        cost=cost,
        reach=reach,
        clicks=v.get("clicks", 0),
        video_views=views,
        video_views_25=v.get("video_views_25", 0),
        video_views_50=v.get("video_views_50", 0),
        video_views_75=v.get("video_views_75", 0),
        video_completions=completions,
        frequency=safe_divide(impressions, reach),
        cpm=safe_divide(cost, impressions, scale=1000),
        cpv=safe_divide(cost, views),
        cpvc=safe_divide(cost, completions),
        vtr=safe_divide(completions, impressions, scale=100),
    )


def _keep_delivery(r: DeliveryRecord) -> bool:
    return r.date is not None and r.impressions > 0


def _build_reach(v: dict) -> ReachRecord:
    return ReachRecord(
        platform=v.get("platform", ""),
        advertiser=v.get("advertiser", ""),
        region=v.get("region", ""),
        impressions=v.get("impressions", 0),
        reach=v.get("reach", 0),
        frequency=v.get("frequency", 0.0),
    )


def _keep_reach(r: ReachRecord) -> bool:
    return bool(r.advertiser) or r.impressions > 0 or r.reach > 0


def _build_benchmark(v: dict) -> BenchmarkRecord:
    return BenchmarkRecord(
        platform=v.get("platform", "").upper(),
        category=v.get("category", "").upper(),
        cpm=v.get("cpm", 0.0),
        cpc=v.get("cpc", 0.0),
        ctr=v.get("ctr", 0.0),
        vtr=v.get("vtr", 0.0),
    )


def _keep_benchmark(r: BenchmarkRecord) -> bool:
    return bool(r.platform) and bool(r.category)


def _build_event(v: dict) -> EventRecord:
    return EventRecord(
        date=v.get("date"),
        action=v.get("action", ""),
        label=v.get("label", ""),
        region=v.get("region", ""),
        event_count=v.get("event_count", 0),
    )


def _keep_event(r: EventRecord) -> bool:
    return r.event_count > 0


def _build_session(v: dict) -> SessionRecord:
    sessions = v.get("sessions", 0)
    duration = v.get("avg_session_duration", 0.0)
    return SessionRecord(
        date=v.get("date"),
        source=v.get("source", ""),
        origin=v.get("origin", ""),
        region=v.get("region", ""),
        state=v.get("state", ""),
        device=v.get("device", ""),
        sessions=sessions,
        new_users=v.get("new_users", 0),
        bounces=v.get("bounces", 0),
        engaged_sessions=v.get("engaged_sessions", 0),
        avg_session_duration=duration,
        session_duration_total=duration * sessions,
    )


def _keep_session(r: SessionRecord) -> bool:
    return r.sessions > 0 or r.new_users > 0


def _build_plan(v: dict) -> PlanRecord:
    return PlanRecord(
        platform=v.get("platform", ""),
        month=v.get("month", ""),
        region=v.get("region", ""),
        category=v.get("category", ""),
        cost=v.get("cost", 0.0),
        planned_cost=v.get("planned_cost", 0.0),
    )


def _keep_plan(r: PlanRecord) -> bool:
    return bool(r.platform) and bool(r.month)


RECORD_BUILDERS = {
    SourceType.DELIVERY: (_build_delivery, _keep_delivery),
    SourceType.REACH: (_build_reach, _keep_reach),
    SourceType.BENCHMARK: (_build_benchmark, _keep_benchmark),
    SourceType.EVENTS: (_build_event, _keep_event),
    SourceType.SESSIONS: (_build_session, _keep_session),
    SourceType.PLAN: (_build_plan, _keep_plan),
}


def _builder_for(schema: TableSchema):
    if schema.source_type not in RECORD_BUILDERS:
        raise ValueError(
            f"Unknown source type '{schema.source_type}'. "
            f"Valid types: {', '.join(sorted(s.value for s in RECORD_BUILDERS))}"
        )
    return RECORD_BUILDERS[schema.source_type]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def normalize_row(header_row: Sequence, data_row: Sequence, schema: TableSchema,
                  resolution: ColumnResolution | None = None,
                  defaults: dict | None = None):
    """Normalize one raw row into the record type of *schema*.

    Pass the table's *resolution* when normalizing many rows; without it
    the header is resolved for this call only. The inclusion predicate is
    not applied here, see :func:`is_included`.

    Raises:
        ValueError: If the schema's source type has no record builder.
    """
    build, _ = _builder_for(schema)
    if resolution is None:
        resolution = resolve_columns(header_row, schema)
    return build(extract_values(data_row, resolution, schema, defaults))


def is_included(record, schema: TableSchema) -> bool:
    """Apply the schema-specific inclusion predicate to a record."""
    _, keep = _builder_for(schema)
    return keep(record)


@dataclass
class NormalizationResult:
    """Output of :func:`normalize_table`."""
    records: list
    resolution: ColumnResolution
    dropped: int = 0
    warnings: list[str] = field(default_factory=list)


def normalize_table(table: RawTable, schema: TableSchema,
                    defaults: dict | None = None) -> NormalizationResult:
    """Normalize every data row of *table* against *schema*.

    Args:
        table: Header row plus data rows.
        schema: Logical fields to extract.
        defaults: Per-field fallback labels for empty or absent TEXT
            columns (e.g. the platform a reach tab belongs to).

    Returns:
        NormalizationResult with the kept records in row order, the column
        resolution, the number of dropped rows and diagnostic warnings.
    """
    build, keep = _builder_for(schema)
    resolution = resolve_columns(table.header, schema)
    label = table.name or schema.name

    warnings = [
        f"{label}: column '{name}' not found in headers; using default values"
        for name in resolution.missing
    ]

    records = []
    dropped = 0
    for row in table.rows:
        record = build(extract_values(row, resolution, schema, defaults))
        if keep(record):
            records.append(record)
        else:
            dropped += 1

    if table.rows and not records:
        warnings.append(f"{label}: no usable rows in {len(table.rows)} data row(s)")

    return NormalizationResult(
        records=records,
        resolution=resolution,
        dropped=dropped,
        warnings=warnings,
    )
