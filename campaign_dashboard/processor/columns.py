"""Header-based column resolution.

Rows are never read by fixed position. Each logical field of a
``TableSchema`` is resolved once per table against the header row, in
three tiers:

1. ``exact``: trimmed, case-insensitive equality with a synonym
2. ``substring``: a synonym contains the header text or vice versa
3. ``positional``: the legacy column index, for tabs exported
   without usable headers

A field that resolves to nothing is *missing*: records built from the
table carry the field's zero/empty default and the caller is told via
``ColumnResolution.missing``.
"""

from dataclasses import dataclass, field
from typing import Sequence

from campaign_dashboard.schema.models import TableSchema


EXACT = "exact"
SUBSTRING = "substring"
POSITIONAL = "positional"


def normalize_header(header) -> str:
    """Normalize a header cell for matching: trimmed and case-folded."""
    if header is None:
        return ""
    return " ".join(str(header).split()).casefold()


def _exact_match(headers: list[str], synonyms: Sequence[str], used=frozenset()) -> int | None:
    for syn in synonyms:
        target = normalize_header(syn)
        if not target:
            continue
        for i, h in enumerate(headers):
            if i not in used and h == target:
                return i
    return None


def _substring_match(headers: list[str], synonyms: Sequence[str], used=frozenset()) -> int | None:
    for syn in synonyms:
        target = normalize_header(syn)
        if not target:
            continue
        for i, h in enumerate(headers):
            if i in used or not h:
                continue
            if target in h or h in target:
                return i
    return None


def resolve_column(header_row: Sequence, synonyms: Sequence[str]) -> int | None:
    """Return the index of the column named by *synonyms*, or ``None``.

    Synonyms are tried in priority order; for each, headers are scanned
    left to right. Exact matches across all synonyms win over substring
    matches. Empty header cells never match.

    Examples:
        resolve_column(["Date", "Veículo"], ["veiculo", "VEÍCULO"]) -> 1
        resolve_column(["Link clicks"], ["Clicks"])                 -> 0
        resolve_column(["Date"], ["Reach"])                         -> None
    """
    headers = [normalize_header(h) for h in header_row]
    index = _exact_match(headers, synonyms)
    if index is None:
        index = _substring_match(headers, synonyms)
    return index


# ---------------------------------------------------------------------------
# Whole-schema resolution
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ColumnResolution:
    """Resolved field -> column index mapping for one table."""
    indices: dict[str, int]
    strategies: dict[str, str]
    missing: tuple[str, ...]
    header: tuple[str, ...] = field(default=())

    def index(self, name: str) -> int | None:
        return self.indices.get(name)

    def header_for(self, name: str) -> str | None:
        """Return the header text a field resolved to, if any."""
        i = self.indices.get(name)
        if i is None or i >= len(self.header):
            return None
        return self.header[i]

    @property
    def is_complete(self) -> bool:
        return not self.missing


def resolve_columns(header_row: Sequence, schema: TableSchema) -> ColumnResolution:
    """Resolve every column of *schema* against *header_row*.

    All fields get an exact-match attempt before any field falls back to
    substring matching, so a loose synonym cannot steal a header another
    field names exactly. Substring and positional fallbacks only take
    columns no other field has claimed.
    """
    header = tuple("" if h is None else str(h) for h in header_row)
    headers = [normalize_header(h) for h in header]
    indices: dict[str, int] = {}
    strategies: dict[str, str] = {}

    for spec in schema.columns:
        i = _exact_match(headers, spec.synonyms)
        if i is not None:
            indices[spec.name] = i
            strategies[spec.name] = EXACT

    for spec in schema.columns:
        if spec.name in indices:
            continue
        i = _substring_match(headers, spec.synonyms, used=set(indices.values()))
        if i is not None:
            indices[spec.name] = i
            strategies[spec.name] = SUBSTRING

    for spec in schema.columns:
        if spec.name in indices or spec.position is None:
            continue
        if spec.position < len(header) and spec.position not in indices.values():
            indices[spec.name] = spec.position
            strategies[spec.name] = POSITIONAL

    missing = tuple(c.name for c in schema.columns if c.name not in indices)
    return ColumnResolution(
        indices=indices,
        strategies=strategies,
        missing=missing,
        header=header,
    )
