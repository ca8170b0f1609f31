"""Filter engine: date range and inclusion-set predicates over records.

A ``FilterState`` is an immutable value. Recomputing a view for a new
selection means building a new state and re-running the pure functions
here; nothing is cached or mutated.
"""

from dataclasses import dataclass, replace
from typing import Iterable

from .parsers import parse_flexible_date


# Inclusion-set attribute on FilterState -> record field it constrains.
FILTER_DIMENSIONS = {
    "platforms": "platform",
    "regions": "region",
    "categories": "category",
    "origins": "origin",
    "months": "month",
}


def _fold_set(values) -> frozenset[str]:
    if not values:
        return frozenset()
    if isinstance(values, str):
        values = [values]
    return frozenset(str(v).strip().casefold() for v in values if v and str(v).strip())


@dataclass(frozen=True)
class FilterState:
    """Active dashboard selection.

    ``start``/``end`` are inclusive ISO dates (either may be ``None`` for an
    open range). Inclusion sets hold case-folded values; an empty set means
    no filtering on that dimension. The constructor normalizes whatever it
    is given, so direct construction and :meth:`create` are equivalent.
    """
    start: str | None = None
    end: str | None = None
    platforms: frozenset[str] = frozenset()
    regions: frozenset[str] = frozenset()
    categories: frozenset[str] = frozenset()
    origins: frozenset[str] = frozenset()
    months: frozenset[str] = frozenset()

    def __post_init__(self):
        for name in ("start", "end"):
            object.__setattr__(self, name, parse_flexible_date(getattr(self, name)))
        for name in FILTER_DIMENSIONS:
            object.__setattr__(self, name, _fold_set(getattr(self, name)))

    @classmethod
    def create(cls, start=None, end=None, platforms=(), regions=(), categories=(),
               origins=(), months=()) -> "FilterState":
        """Build a state from raw user input.

        Dates go through :func:`parse_flexible_date`, so ``"01/03/2025"`` and
        ``"2025-03-01"`` are equivalent; inclusion values are trimmed and
        case-folded.
        """
        return cls(start=start, end=end, platforms=platforms, regions=regions,
                   categories=categories, origins=origins, months=months)

    def replace(self, **changes) -> "FilterState":
        """Return a copy with *changes* applied (inclusion values re-folded)."""
        return replace(self, **changes)

    @property
    def is_empty(self) -> bool:
        """True when the state filters nothing out."""
        return (
            self.start is None and self.end is None
            and not any(getattr(self, name) for name in FILTER_DIMENSIONS)
        )

    def to_dict(self) -> dict:
        d: dict = {"start": self.start, "end": self.end}
        for name in FILTER_DIMENSIONS:
            d[name] = sorted(getattr(self, name))
        return d


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------

def _in_date_range(record, state: FilterState) -> bool:
    day = getattr(record, "date", None)
    if day is None:
        return True
    if state.start is not None and day < state.start:
        return False
    if state.end is not None and day > state.end:
        return False
    return True


def matches(record, state: FilterState) -> bool:
    """True if *record* passes every active predicate of *state*.

    Records without a date pass the date range. A record type that does
    not carry a dimension passes that dimension's inclusion set.
    """
    if not _in_date_range(record, state):
        return False
    for name, attr in FILTER_DIMENSIONS.items():
        allowed = getattr(state, name)
        if not allowed or not hasattr(record, attr):
            continue
        value = getattr(record, attr)
        if str(value or "").strip().casefold() not in allowed:
            return False
    return True


def apply_filters(records: Iterable, state: FilterState | None) -> list:
    """Return the records passing *state*, in input order, as a new list."""
    if state is None:
        return list(records)
    return [r for r in records if matches(r, state)]


# ---------------------------------------------------------------------------
# Filter options
# ---------------------------------------------------------------------------

def available_values(records: Iterable, dimension: str) -> list[str]:
    """Distinct non-empty values of a record field, sorted case-insensitively.

    *dimension* is a record field (``"platform"``) or a FilterState set name
    (``"platforms"``). Values differing only in case collapse to the first
    spelling seen.
    """
    attr = FILTER_DIMENSIONS.get(dimension, dimension)
    seen: dict[str, str] = {}
    for r in records:
        value = str(getattr(r, attr, "") or "").strip()
        if value and value.casefold() not in seen:
            seen[value.casefold()] = value
    return sorted(seen.values(), key=str.casefold)


def date_bounds(records: Iterable) -> tuple[str | None, str | None]:
    """Earliest and latest ISO date among *records* (``(None, None)`` if none)."""
    dates = [d for d in (getattr(r, "date", None) for r in records) if d]
    if not dates:
        return None, None
    return min(dates), max(dates)
