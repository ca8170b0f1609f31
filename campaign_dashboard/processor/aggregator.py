"""Metric aggregation over normalized records.

Records are grouped by a caller-supplied key function, additive fields are
summed per group with pandas, and ratio metrics are then derived from the
group's own sums. Ratios are never averaged across rows or groups: a grand
total recomputes every ratio from the grand sums.

Usage::

    result = summarize(records, lambda r: r.platform,
                       fields=DeliveryRecord.ADDITIVE_FIELDS,
                       share_of="cost", sort_by="impressions")
    for group in result.groups:
        print(group.label, group.value("cpm"))
    print(result.total.value("cpm"))
"""

import math
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Sequence

import pandas as pd


# ---------------------------------------------------------------------------
# Safe math helpers
# ---------------------------------------------------------------------------

def safe_divide(numerator, denominator, scale: float = 1.0) -> float:
    """Divide safely, returning 0.0 on a zero/NaN denominator.

    Never returns NaN or infinity.
    """
    if denominator is None or denominator == 0:
        return 0.0
    if isinstance(denominator, float) and math.isnan(denominator):
        return 0.0
    if numerator is None:
        return 0.0
    result = numerator / denominator * scale
    return float(result) if math.isfinite(result) else 0.0


def pacing(actual: float, planned: float) -> float:
    """Delivery progress against plan, in percent (0 when nothing is planned)."""
    return safe_divide(actual, planned, scale=100)


# ---------------------------------------------------------------------------
# Ratio metrics
# ---------------------------------------------------------------------------

# (name, numerator field, denominator field, scale), in computation order.
RATIO_METRICS = (
    ("frequency", "impressions", "reach", 1),
    ("cpm", "cost", "impressions", 1000),
    ("cpc", "cost", "clicks", 1),
    ("ctr", "clicks", "impressions", 100),
    ("cpv", "cost", "video_views", 1),
    ("cpvc", "cost", "video_completions", 1),
    ("vtr", "video_completions", "impressions", 100),
    ("pacing", "cost", "planned_cost", 100),
    ("bounce_rate", "bounces", "sessions", 100),
    ("avg_session_duration", "session_duration_total", "sessions", 1),
)

COST_METRICS = ("cpm", "cpc", "cpv", "cpvc")
PERFORMANCE_METRICS = ("ctr", "vtr")


def compute_ratios(totals: dict[str, float]) -> dict[str, float]:
    """Derive every ratio whose numerator and denominator were both summed."""
    ratios = {}
    for name, num, den, scale in RATIO_METRICS:
        if num in totals and den in totals:
            ratios[name] = safe_divide(totals[num], totals[den], scale=scale)
    return ratios


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MetricGroup:
    """Summed additive fields and derived ratios for one group of records."""
    key: Any
    label: str
    count: int
    totals: dict[str, float]
    ratios: dict[str, float]
    share: float | None = None   # Percent of the grand total of the share base

    def value(self, name: str) -> float:
        """Look up a summed field, a ratio, ``count`` or ``share`` by name."""
        if name in self.totals:
            return self.totals[name]
        if name in self.ratios:
            return self.ratios[name]
        if name == "count":
            return float(self.count)
        if name == "share":
            return self.share or 0.0
        return 0.0

    def to_dict(self) -> dict:
        d = {"key": self.label, "count": self.count}
        d.update(self.totals)
        d.update(self.ratios)
        if self.share is not None:
            d["share"] = self.share
        return d


@dataclass
class AggregationResult:
    """Groups plus a grand total recomputed from the grand sums."""
    groups: list[MetricGroup]
    total: MetricGroup

    def group(self, key) -> MetricGroup | None:
        """Find a group by key, matching case-insensitively."""
        folded = _fold(key)
        for g in self.groups:
            if _fold(g.key) == folded:
                return g
        return None

    @property
    def is_empty(self) -> bool:
        return self.total.count == 0

    def to_dict(self) -> dict:
        return {
            "groups": [g.to_dict() for g in self.groups],
            "total": self.total.to_dict(),
        }


# ---------------------------------------------------------------------------
# Grouping keys
# ---------------------------------------------------------------------------

def _fold(key):
    """Case-fold a grouping key; tuple keys fold element-wise."""
    if isinstance(key, str):
        return key.strip().casefold()
    if isinstance(key, tuple):
        return tuple(_fold(k) for k in key)
    return key


def _label(key) -> str:
    if key is None:
        return ""
    if isinstance(key, tuple):
        return " / ".join(_label(k) for k in key)
    return str(key)


def _check_key_types(keys: Sequence) -> None:
    """Reject key functions that return values of inconsistent types."""
    seen = {type(k) for k in keys if k is not None}
    if len(seen) > 1:
        names = ", ".join(sorted(t.__name__ for t in seen))
        raise TypeError(f"Grouping key function returned mixed types: {names}")
    lengths = {len(k) for k in keys if isinstance(k, tuple)}
    if len(lengths) > 1:
        raise TypeError("Grouping key function returned tuples of different lengths")


def _additive_fields(records: Sequence) -> tuple[str, ...]:
    fields: list[str] = []
    for r in records:
        for f in getattr(r, "ADDITIVE_FIELDS", ()):
            if f not in fields:
                fields.append(f)
    return tuple(fields)


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def _make_group(key, count: int, totals: dict[str, float]) -> MetricGroup:
    return MetricGroup(
        key=key,
        label=_label(key),
        count=count,
        totals=totals,
        ratios=compute_ratios(totals),
    )


def _with_shares(groups: list[MetricGroup], share_of: str | None) -> list[MetricGroup]:
    if share_of is None:
        return groups
    grand = sum(g.totals.get(share_of, 0.0) for g in groups)
    return [
        MetricGroup(
            key=g.key, label=g.label, count=g.count, totals=g.totals, ratios=g.ratios,
            share=safe_divide(g.totals.get(share_of, 0.0), grand, scale=100),
        )
        for g in groups
    ]


def _sorted(groups: list[MetricGroup], sort_by: str | None, descending: bool) -> list[MetricGroup]:
    if sort_by is None:
        return groups
    if sort_by == "label":
        return sorted(groups, key=lambda g: g.label.casefold(), reverse=descending)
    return sorted(groups, key=lambda g: g.value(sort_by), reverse=descending)


def aggregate(
    records: Iterable,
    key_fn: Callable[[Any], Any],
    *,
    fields: Sequence[str] | None = None,
    share_of: str | None = None,
    sort_by: str | None = None,
    descending: bool = True,
) -> list[MetricGroup]:
    """Group *records* by *key_fn* and compute per-group metrics.

    Args:
        records: Normalized (or reconciled) records.
        key_fn: Maps a record to its group key (a string, or a tuple of
            strings for multi-dimension groupings). Keys are compared
            case-insensitively; a group's label is its first-seen spelling.
        fields: Additive fields to sum. Defaults to the union of the
            records' ``ADDITIVE_FIELDS``.
        share_of: Field whose per-group value is expressed as a percent of
            the sum over all groups.
        sort_by: Summed field, ratio, ``count``, ``share`` or ``label`` to
            order groups by. ``None`` keeps first-seen order.
        descending: Sort direction.

    Returns:
        List of MetricGroup, one per distinct folded key.

    Raises:
        TypeError: If *key_fn* returns keys of inconsistent types.
    """
    records = list(records)
    if not records:
        return []
    fields = tuple(fields) if fields is not None else _additive_fields(records)

    keys = [key_fn(r) for r in records]
    _check_key_types(keys)

    codes: dict[Any, int] = {}
    first_keys: list = []
    group_codes = []
    for k in keys:
        folded = _fold(k)
        if folded not in codes:
            codes[folded] = len(first_keys)
            first_keys.append(k)
        group_codes.append(codes[folded])

    df = pd.DataFrame(
        [{f: getattr(r, f, 0) or 0 for f in fields} for r in records],
        columns=list(fields),
    )
    df["_group"] = group_codes
    grouped = df.groupby("_group", sort=True)
    counts = grouped.size()
    sums = grouped[list(fields)].sum() if fields else None

    groups = []
    for code, key in enumerate(first_keys):
        totals = {f: float(sums.at[code, f]) for f in fields} if fields else {}
        groups.append(_make_group(key, int(counts.at[code]), totals))

    return _sorted(_with_shares(groups, share_of), sort_by, descending)


def total(groups: Sequence[MetricGroup], fields: Sequence[str] = (),
          label: str = "Total") -> MetricGroup:
    """Grand total over *groups*, with ratios recomputed from the grand sums.

    *fields* are always present in the result (zeroed when *groups* is
    empty), so an empty table still yields a complete, zeroed total.
    """
    sums = {f: 0.0 for f in fields}
    for g in groups:
        for f, v in g.totals.items():
            sums[f] = sums.get(f, 0.0) + v
    count = sum(g.count for g in groups)
    group = _make_group(None, count, sums)
    return MetricGroup(
        key=None, label=label, count=count, totals=group.totals, ratios=group.ratios,
    )


def summarize(
    records: Iterable,
    key_fn: Callable[[Any], Any],
    *,
    fields: Sequence[str] | None = None,
    share_of: str | None = None,
    sort_by: str | None = None,
    descending: bool = True,
) -> AggregationResult:
    """:func:`aggregate` plus the grand total."""
    records = list(records)
    if fields is None:
        fields = _additive_fields(records)
    groups = aggregate(records, key_fn, fields=fields, share_of=share_of,
                       sort_by=sort_by, descending=descending)
    grand = total(groups, fields)
    if share_of is not None:
        grand = MetricGroup(
            key=grand.key, label=grand.label, count=grand.count, totals=grand.totals,
            ratios=grand.ratios, share=100.0 if grand.totals.get(share_of) else 0.0,
        )
    return AggregationResult(groups=groups, total=grand)


def merge_groups(
    *partitions: Iterable[MetricGroup],
    share_of: str | None = None,
    sort_by: str | None = None,
    descending: bool = True,
) -> list[MetricGroup]:
    """Merge group lists computed over disjoint record partitions.

    Additive totals are summed per folded key and ratios recomputed from
    the merged sums, so the result equals aggregating the union directly.
    """
    merged: dict[Any, list] = {}
    for part in partitions:
        for g in part:
            folded = _fold(g.key)
            if folded not in merged:
                merged[folded] = [g.key, 0, {}]
            entry = merged[folded]
            entry[1] += g.count
            for f, v in g.totals.items():
                entry[2][f] = entry[2].get(f, 0.0) + v

    groups = [_make_group(key, count, totals) for key, count, totals in merged.values()]
    return _sorted(_with_shares(groups, share_of), sort_by, descending)


# ---------------------------------------------------------------------------
# Benchmark comparison
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Variation:
    """Difference between a metric and its benchmark."""
    difference: float
    better: bool

    def to_dict(self) -> dict:
        return {"difference": self.difference, "better": self.better}


def variation(current: float, benchmark: float, kind: str) -> Variation | None:
    """Compare *current* to *benchmark*.

    ``kind`` is ``"cost"`` (lower is better: CPM, CPC) or ``"performance"``
    (higher is better: CTR, VTR). Returns ``None`` when there is no
    benchmark to compare against (benchmark of 0).

    Raises:
        ValueError: On an unknown *kind*.
    """
    if kind not in ("cost", "performance"):
        raise ValueError(f"Unknown metric kind '{kind}'. Valid kinds: cost, performance")
    if not benchmark:
        return None
    difference = current - benchmark
    better = difference < 0 if kind == "cost" else difference > 0
    return Variation(difference=difference, better=better)
