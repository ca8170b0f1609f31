"""Dashboard views: normalized sources + filter state -> plain-data results.

This is the bridge between the processing core and whatever renders the
dashboard. ``DashboardBuilder`` normalizes the raw tables once per refresh
and recomputes every view for a given ``FilterState``:

    overview : delivery by platform, pacing against plan, benchmarks
    reach    : reconciled per-platform reach and frequency
    video    : video-format delivery, views and completion rates
    traffic  : GA4 sessions by source/device/state, CTA conversions
    strategy : planned vs invested spend by month and vehicle

A missing source table yields an empty (zeroed) view with a warning.

Usage::

    builder = DashboardBuilder(build_default_config())
    result = builder.build({"delivery": table, "reach": [tiktok_tab]},
                           FilterState.create(start="01/03/2025"))
    result.view("overview").total.value("cpm")
"""

from dataclasses import dataclass, field, replace
from typing import Any

from campaign_dashboard.schema.models import DashboardConfig, RawTable, SourceType
from campaign_dashboard.schema.records import (
    DeliveryRecord,
    PlanRecord,
    SessionRecord,
)
from campaign_dashboard.schema.sources import build_default_config

from .aggregator import (
    COST_METRICS,
    PERFORMANCE_METRICS,
    MetricGroup,
    aggregate,
    pacing,
    summarize,
    total,
    variation,
)
from .filters import FilterState, apply_filters, available_values, date_bounds
from .normalizer import normalize_table
from .reconciler import ReconciledPlatformRecord, reconcile


SOURCE_NAMES = tuple(s.value for s in SourceType)

VIEW_NAMES = ("overview", "reach", "video", "traffic", "strategy")

# Delivery media format -> benchmark media type.
BENCHMARK_MEDIA_TYPES = {"static": "DISPLAY", "video": "VÍDEO"}
BENCHMARK_METRICS = ("cpm", "cpc", "ctr", "vtr")
METRIC_KINDS = {
    **{name: "cost" for name in COST_METRICS},
    **{name: "performance" for name in PERFORMANCE_METRICS},
}

# GA4 state values left out of the state breakdown.
EXCLUDED_STATES = ("(not set)", "", "Outros")


def _fold(value) -> str:
    return str(value or "").strip().casefold()


def _plain(value):
    """Convert result objects to JSON-ready builtins."""
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class ViewResult:
    """One dashboard view: primary grouping, grand total, row detail."""
    name: str
    groups: list[MetricGroup] = field(default_factory=list)
    total: MetricGroup | None = None
    records: list = field(default_factory=list)
    extras: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.total is None or self.total.count == 0

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "groups": _plain(self.groups),
            "total": _plain(self.total),
            "records": _plain(self.records),
            "extras": _plain(self.extras),
            "warnings": list(self.warnings),
        }


@dataclass
class NormalizedSources:
    """Typed records of every source table, as of one data refresh."""
    delivery: list = field(default_factory=list)
    reach: list = field(default_factory=list)
    benchmark: list = field(default_factory=list)
    events: list = field(default_factory=list)
    sessions: list = field(default_factory=list)
    plan: list = field(default_factory=list)
    loaded: set = field(default_factory=set)
    warnings: list[str] = field(default_factory=list)


@dataclass
class DashboardResult:
    """All views computed for one filter state."""
    views: dict[str, ViewResult]
    filter_state: FilterState
    options: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    def view(self, name: str) -> ViewResult:
        if name not in self.views:
            raise ValueError(
                f"Unknown view '{name}'. Valid views: {', '.join(self.views)}"
            )
        return self.views[name]

    def to_dict(self) -> dict:
        return {
            "filters": self.filter_state.to_dict(),
            "options": _plain(self.options),
            "views": {name: v.to_dict() for name, v in self.views.items()},
            "warnings": list(self.warnings),
        }


# ---------------------------------------------------------------------------
# DashboardBuilder
# ---------------------------------------------------------------------------

class DashboardBuilder:
    """Computes the dashboard views from raw source tables.

    Args:
        config: Schemas, dedicated-reach platforms, plan values and CTA
            rules. Defaults to :func:`build_default_config`.
    """

    def __init__(self, config: DashboardConfig | None = None):
        self.config = config or build_default_config()

    def build(self, sources: dict, filter_state: FilterState | None = None) -> DashboardResult:
        """Normalize *sources* and compute every view for *filter_state*.

        Args:
            sources: Dict mapping source name ('delivery', 'reach',
                'benchmark', 'events', 'sessions', 'plan') to a RawTable.
                'reach' may also be a list of tabs or a dict of tab name ->
                RawTable. Any key may be missing.
            filter_state: Active selection; ``None`` filters nothing.

        Raises:
            ValueError: If *sources* has a key that is not a known source.
        """
        return self.build_views(self.load(sources), filter_state)

    def load(self, sources: dict) -> NormalizedSources:
        """Normalize every raw table once per data refresh."""
        unknown = sorted(set(sources) - set(SOURCE_NAMES))
        if unknown:
            raise ValueError(
                f"Unknown source '{unknown[0]}'. "
                f"Valid sources: {', '.join(SOURCE_NAMES)}"
            )

        result = NormalizedSources()
        for name in SOURCE_NAMES:
            raw = sources.get(name)
            if raw is None:
                continue
            tables = self._tables(raw)
            records = getattr(result, name)
            for table in tables:
                defaults = None
                if name == SourceType.REACH.value:
                    label = self._reach_label(table.name)
                    defaults = {"platform": label}
                normalized = normalize_table(table, self.config.schema(name), defaults)
                records.extend(normalized.records)
                result.warnings.extend(normalized.warnings)
            result.loaded.add(name)
        return result

    def build_views(self, data: NormalizedSources,
                    filter_state: FilterState | None = None) -> DashboardResult:
        """Compute every view from already-normalized records."""
        state = filter_state or FilterState()
        views = {
            "overview": self.overview(data, state),
            "reach": self.reach(data, state),
            "video": self.video(data, state),
            "traffic": self.traffic(data, state),
            "strategy": self.strategy(data, state),
        }
        warnings = list(data.warnings)
        for v in views.values():
            warnings.extend(v.warnings)
        return DashboardResult(
            views=views,
            filter_state=state,
            options=self.filter_options(data),
            warnings=warnings,
        )

    def _reach_label(self, tab_name: str) -> str:
        """Platform a reach tab reports on; unknown tabs are their own label."""
        for tab, platform in self.config.reach_tabs.items():
            if tab.casefold() == tab_name.casefold():
                return platform
        return tab_name

    @staticmethod
    def _tables(raw) -> list[RawTable]:
        if isinstance(raw, RawTable):
            return [raw]
        if isinstance(raw, dict):
            return [replace(t, name=name) for name, t in raw.items()]
        return list(raw)

    # -------------------------------------------------------------------
    # Filter options
    # -------------------------------------------------------------------

    def filter_options(self, data: NormalizedSources) -> dict:
        """Selectable values for the filter controls, from unfiltered data."""
        start, end = date_bounds(data.delivery)
        return {
            "platforms": available_values(data.delivery, "platform"),
            "regions": available_values(data.delivery, "region"),
            "categories": available_values(data.delivery, "category"),
            "origins": available_values(data.sessions, "origin"),
            "months": available_values(data.plan, "month"),
            "start": start,
            "end": end,
        }

    # -------------------------------------------------------------------
    # Overview
    # -------------------------------------------------------------------

    def overview(self, data: NormalizedSources, state: FilterState) -> ViewResult:
        """Delivery by platform, pacing against plan and benchmark comparison."""
        fields = DeliveryRecord.ADDITIVE_FIELDS
        if "delivery" not in data.loaded:
            return _empty_view("overview", fields, "No delivery data loaded")

        rows = apply_filters(data.delivery, state)
        result = summarize(rows, lambda r: r.platform, fields=fields,
                           share_of="cost", sort_by="impressions")
        grand = result.total
        extras = {
            "pacing": {
                "impressions": pacing(grand.value("impressions"), self.config.planned_impressions),
                "clicks": pacing(grand.value("clicks"), self.config.planned_clicks),
            },
            "planned": {
                "impressions": self.config.planned_impressions,
                "clicks": self.config.planned_clicks,
            },
            "benchmarks": self._benchmark_comparison(rows, data.benchmark),
        }
        warnings = []
        if not rows:
            warnings.append("overview: no delivery rows match the current filters")
        return ViewResult(
            name="overview",
            groups=result.groups,
            total=grand,
            records=rows,
            extras=extras,
            warnings=warnings,
        )

    def _benchmark_key(self, platform: str, media_type: str) -> str:
        name = platform
        for alias, bench_name in self.config.benchmark_aliases.items():
            if _fold(alias) == _fold(platform):
                name = bench_name
                break
        return _fold(f"{name}_{media_type}")

    def _benchmark_comparison(self, rows: list, benchmarks: list) -> list[dict]:
        if not benchmarks:
            return []
        table = {_fold(b.key): b for b in benchmarks}
        groups = aggregate(rows, lambda r: (r.platform, r.media_format),
                           fields=DeliveryRecord.ADDITIVE_FIELDS)
        comparisons = []
        for g in groups:
            platform, media_format = g.key
            media_type = BENCHMARK_MEDIA_TYPES.get(media_format, "DISPLAY")
            bench = table.get(self._benchmark_key(platform, media_type))
            if bench is None:
                continue
            metrics = {}
            for name in BENCHMARK_METRICS:
                current = g.value(name)
                reference = getattr(bench, name)
                metrics[name] = {
                    "current": current,
                    "benchmark": reference,
                    "variation": variation(current, reference, METRIC_KINDS[name]),
                }
            comparisons.append({
                "platform": platform,
                "media_type": media_type,
                "metrics": metrics,
            })
        return comparisons

    # -------------------------------------------------------------------
    # Reach
    # -------------------------------------------------------------------

    def reach(self, data: NormalizedSources, state: FilterState) -> ViewResult:
        """Per-platform reach, dedicated platforms drawn from their reach tabs."""
        fields = ReconciledPlatformRecord.ADDITIVE_FIELDS
        if "delivery" not in data.loaded and "reach" not in data.loaded:
            return _empty_view("reach", fields, "No delivery or reach data loaded")

        dedicated = self.config.dedicated_reach_platforms
        records = reconcile(data.delivery, data.reach, dedicated, filter_state=state)
        records.sort(key=lambda r: r.reach, reverse=True)
        result = summarize(records, lambda r: r.platform, fields=fields,
                           share_of="reach", sort_by="reach")

        warnings = [
            f"reach: {r.platform} has no rows in its dedicated reach tab; "
            f"reach and impressions reported as 0"
            for r in records
            if r.dedicated and r.reach == 0 and r.impressions == 0 and r.cost > 0
        ]
        return ViewResult(
            name="reach",
            groups=result.groups,
            total=result.total,
            records=records,
            extras={"dedicated_platforms": list(dedicated)},
            warnings=warnings,
        )

    # -------------------------------------------------------------------
    # Video
    # -------------------------------------------------------------------

    def video(self, data: NormalizedSources, state: FilterState) -> ViewResult:
        """Video-format delivery with views, by platform, share of cost."""
        fields = DeliveryRecord.ADDITIVE_FIELDS
        if "delivery" not in data.loaded:
            return _empty_view("video", fields, "No delivery data loaded")

        rows = [
            r for r in apply_filters(data.delivery, state)
            if r.media_format == "video" and r.video_views > 0
        ]
        result = summarize(rows, lambda r: r.platform, fields=fields,
                           share_of="cost", sort_by="cost")
        grand = result.total
        extras = {
            "quartiles": {
                "25": grand.value("video_views_25"),
                "50": grand.value("video_views_50"),
                "75": grand.value("video_views_75"),
                "100": grand.value("video_completions"),
            },
        }
        warnings = []
        if not rows:
            warnings.append("video: no video rows with views match the current filters")
        return ViewResult(
            name="video",
            groups=result.groups,
            total=grand,
            records=rows,
            extras=extras,
            warnings=warnings,
        )

    # -------------------------------------------------------------------
    # Traffic
    # -------------------------------------------------------------------

    def traffic(self, data: NormalizedSources, state: FilterState) -> ViewResult:
        """GA4 sessions by source, device and state, plus CTA conversions."""
        fields = SessionRecord.ADDITIVE_FIELDS
        if "sessions" not in data.loaded:
            view = _empty_view("traffic", fields, "No sessions data loaded")
            view.extras = {"conversions": self._conversions(data, state, 0.0)}
            return view

        sessions = apply_filters(data.sessions, state)
        by_source = summarize(sessions, lambda r: r.source, fields=fields,
                              share_of="sessions", sort_by="sessions")
        by_device = aggregate(sessions, lambda r: r.device, fields=fields,
                              share_of="sessions", sort_by="sessions")

        aliases = self.config.state_aliases
        located = [
            r for r in sessions
            if aliases.get(r.state, r.state) not in EXCLUDED_STATES
        ]
        by_state = aggregate(located, lambda r: aliases.get(r.state, r.state),
                             fields=fields, share_of="sessions", sort_by="sessions")

        grand = by_source.total
        extras = {
            "by_device": by_device,
            "by_state": by_state,
            "bounce_rate": grand.value("bounce_rate"),
            "avg_session_duration": grand.value("avg_session_duration"),
            "engaged_sessions": grand.value("engaged_sessions"),
            "conversions": self._conversions(data, state, grand.value("new_users")),
        }
        warnings = []
        if not sessions:
            warnings.append("traffic: no sessions match the current filters")
        return ViewResult(
            name="traffic",
            groups=by_source.groups,
            total=grand,
            records=sessions,
            extras=extras,
            warnings=warnings,
        )

    def _counts_as_cta(self, event) -> bool:
        """Regions with a CTA rule count their ticket label; others count the action."""
        for rule in self.config.cta_rules:
            if _fold(event.region) == _fold(rule.region):
                return _fold(event.label) == _fold(rule.label)
        return _fold(event.action) == _fold(self.config.cta_action)

    def _conversions(self, data: NormalizedSources, state: FilterState,
                     first_visits: float) -> dict:
        events = apply_filters(data.events, state)
        cta = float(sum(e.event_count for e in events if self._counts_as_cta(e)))
        return {
            "cta": cta,
            "first_visits": first_visits,
            "total": cta + first_visits,
        }

    # -------------------------------------------------------------------
    # Strategy
    # -------------------------------------------------------------------

    def strategy(self, data: NormalizedSources, state: FilterState) -> ViewResult:
        """Planned vs invested spend by (region, vehicle) and by month."""
        fields = PlanRecord.ADDITIVE_FIELDS
        if "plan" not in data.loaded:
            return _empty_view("strategy", fields, "No plan data loaded")

        plan = apply_filters(data.plan, state)
        by_vehicle = summarize(plan, lambda r: (r.region, r.platform), fields=fields,
                               share_of="planned_cost", sort_by="planned_cost")
        by_month = aggregate(plan, lambda r: r.month, fields=fields)
        grand = by_vehicle.total
        extras = {
            "by_month": by_month,
            "months": len(by_month),
            "pacing": grand.value("pacing"),
        }
        warnings = []
        if not plan:
            warnings.append("strategy: no plan rows match the current filters")
        return ViewResult(
            name="strategy",
            groups=by_vehicle.groups,
            total=grand,
            records=plan,
            extras=extras,
            warnings=warnings,
        )


def _empty_view(name: str, fields, warning: str) -> ViewResult:
    """A zeroed view for a source that was not loaded."""
    return ViewResult(name=name, total=total([], fields), warnings=[f"{name}: {warning}"])
