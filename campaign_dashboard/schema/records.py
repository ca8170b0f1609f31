"""Normalized record types, one per source domain.

Each record is an immutable, flat, typed view of one spreadsheet row.
Dates are ISO ``YYYY-MM-DD`` strings or ``None``; every numeric field is a
non-negative number (unparseable cells fold to 0). ``ADDITIVE_FIELDS``
lists the fields the aggregator may sum; everything else is a dimension
or a per-row derived ratio that is never summed.
"""

from dataclasses import asdict, dataclass
from typing import ClassVar


@dataclass(frozen=True)
class DeliveryRecord:
    """One row of the consolidated ad-platform delivery export."""
    date: str | None
    platform: str
    campaign: str = ""
    region: str = ""
    category: str = ""          # Purchase type (CPM, CPC, CPV)
    media_format: str = ""      # "video" or "static"
    impressions: int = 0
    cost: float = 0.0
    reach: int = 0
    clicks: int = 0
    video_views: int = 0
    video_views_25: int = 0
    video_views_50: int = 0
    video_views_75: int = 0
    video_completions: int = 0
    # Derived at normalization time from this row alone
    frequency: float = 0.0
    cpm: float = 0.0
    cpv: float = 0.0           # cost / video views
    cpvc: float = 0.0          # cost / video completions
    vtr: float = 0.0           # completions / impressions x 100

    ADDITIVE_FIELDS: ClassVar[tuple[str, ...]] = (
        "impressions", "cost", "reach", "clicks",
        "video_views", "video_views_25", "video_views_50", "video_views_75",
        "video_completions",
    )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ReachRecord:
    """One row of a dedicated deduplicated-reach tab."""
    platform: str
    advertiser: str = ""
    region: str = ""
    impressions: int = 0
    reach: int = 0
    frequency: float = 0.0      # As reported by the tab, informational only
    date: str | None = None

    ADDITIVE_FIELDS: ClassVar[tuple[str, ...]] = ("impressions", "reach")

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class BenchmarkRecord:
    """Reference metrics for a vehicle and media type."""
    platform: str               # Vehicle, upper-cased
    category: str               # Media type, upper-cased (DISPLAY, VÍDEO)
    cpm: float = 0.0
    cpc: float = 0.0
    ctr: float = 0.0
    vtr: float = 0.0

    ADDITIVE_FIELDS: ClassVar[tuple[str, ...]] = ()

    @property
    def key(self) -> str:
        return f"{self.platform}_{self.category}"

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class EventRecord:
    """One row of the GA4 custom event export."""
    date: str | None
    action: str = ""
    label: str = ""
    region: str = ""
    event_count: int = 0

    ADDITIVE_FIELDS: ClassVar[tuple[str, ...]] = ("event_count",)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class SessionRecord:
    """One row of the GA4 traffic export."""
    date: str | None
    source: str = ""
    origin: str = ""
    region: str = ""
    state: str = ""
    device: str = ""
    sessions: int = 0
    new_users: int = 0
    bounces: int = 0
    engaged_sessions: int = 0
    avg_session_duration: float = 0.0
    session_duration_total: float = 0.0   # avg duration x sessions

    ADDITIVE_FIELDS: ClassVar[tuple[str, ...]] = (
        "sessions", "new_users", "bounces", "engaged_sessions",
        "session_duration_total",
    )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class PlanRecord:
    """One row of the planned-vs-invested strategy sheet."""
    platform: str
    month: str
    region: str = ""
    category: str = ""          # Purchase type
    cost: float = 0.0           # Invested so far
    planned_cost: float = 0.0
    date: str | None = None

    ADDITIVE_FIELDS: ClassVar[tuple[str, ...]] = ("cost", "planned_cost")

    def to_dict(self) -> dict:
        return asdict(self)
