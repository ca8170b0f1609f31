"""Cross-source reconciliation of per-platform delivery metrics.

Some platforms report deduplicated reach in a dedicated tab; for those,
impressions and reach must come from that tab only, while cost and clicks
still come from the general delivery export. A ``SourcePriority`` table
says which source feeds which metric for dedicated platforms; every other
platform draws all metrics from delivery.

A dedicated platform with delivery rows but no reach rows keeps zero
impressions and reach. Falling back to the delivery figures would
double-count against the deduplicated source.
"""

from dataclasses import asdict, dataclass, field
from typing import ClassVar, Iterable

from .aggregator import safe_divide
from .filters import FilterState, apply_filters


DELIVERY = "delivery"
REACH = "reach"

RECONCILED_METRICS = ("impressions", "reach", "cost", "clicks")


@dataclass(frozen=True)
class SourcePriority:
    """Metric -> source table, for platforms in the dedicated-reach set."""
    sources: dict[str, str] = field(default_factory=lambda: {
        "impressions": REACH,
        "reach": REACH,
        "cost": DELIVERY,
        "clicks": DELIVERY,
    })

    def __post_init__(self):
        for metric, source in self.sources.items():
            if source not in (DELIVERY, REACH):
                raise ValueError(
                    f"Unknown source '{source}' for metric '{metric}'. "
                    f"Valid sources: {DELIVERY}, {REACH}"
                )

    def source_for(self, metric: str) -> str:
        return self.sources.get(metric, DELIVERY)


@dataclass(frozen=True)
class ReconciledPlatformRecord:
    """One platform's delivery totals, each metric drawn from its source."""
    platform: str
    impressions: float = 0.0
    reach: float = 0.0
    cost: float = 0.0
    clicks: float = 0.0
    dedicated: bool = False

    ADDITIVE_FIELDS: ClassVar[tuple[str, ...]] = RECONCILED_METRICS

    @property
    def frequency(self) -> float:
        return safe_divide(self.impressions, self.reach)

    @property
    def cpm(self) -> float:
        return safe_divide(self.cost, self.impressions, scale=1000)

    @property
    def cpc(self) -> float:
        return safe_divide(self.cost, self.clicks)

    @property
    def ctr(self) -> float:
        return safe_divide(self.clicks, self.impressions, scale=100)

    def to_dict(self) -> dict:
        d = asdict(self)
        d.update(frequency=self.frequency, cpm=self.cpm, cpc=self.cpc, ctr=self.ctr)
        return d


def _fold(name) -> str:
    return str(name or "").strip().casefold()


def reconcile(
    delivery: Iterable,
    reach: Iterable,
    dedicated: Iterable[str],
    *,
    filter_state: FilterState | None = None,
    priority: SourcePriority | None = None,
) -> list[ReconciledPlatformRecord]:
    """Merge delivery and dedicated-reach records into per-platform totals.

    Args:
        delivery: DeliveryRecord-like items (platform, impressions, reach,
            cost, clicks).
        reach: ReachRecord-like items from the dedicated tabs.
        dedicated: Platforms whose reach tab supersedes delivery reach.
        filter_state: Applied to both collections before merging, so reach
            rows honor the same region/platform selection as delivery rows.
        priority: Metric -> source table for dedicated platforms.

    Returns:
        One record per platform, in first-seen order (delivery first).
        Platforms are matched case-insensitively; the label is the first
        spelling seen.
    """
    priority = priority or SourcePriority()
    dedicated_keys = {_fold(p) for p in dedicated}
    delivery = apply_filters(delivery, filter_state)
    reach = apply_filters(reach, filter_state)

    labels: dict[str, str] = {}
    sums: dict[str, dict[str, float]] = {}

    def _slot(platform) -> dict[str, float]:
        key = _fold(platform)
        if key not in sums:
            labels[key] = str(platform or "").strip()
            sums[key] = {m: 0.0 for m in RECONCILED_METRICS}
        return sums[key]

    for r in delivery:
        is_dedicated = _fold(r.platform) in dedicated_keys
        slot = _slot(r.platform)
        for metric in RECONCILED_METRICS:
            if not is_dedicated or priority.source_for(metric) == DELIVERY:
                slot[metric] += getattr(r, metric, 0) or 0

    for r in reach:
        if _fold(r.platform) not in dedicated_keys:
            continue
        slot = _slot(r.platform)
        for metric in RECONCILED_METRICS:
            if priority.source_for(metric) == REACH:
                slot[metric] += getattr(r, metric, 0) or 0

    return [
        ReconciledPlatformRecord(
            platform=labels[key],
            dedicated=key in dedicated_keys,
            **{m: float(v) for m, v in totals.items()},
        )
        for key, totals in sums.items()
    ]
