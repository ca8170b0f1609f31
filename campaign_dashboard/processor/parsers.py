"""Cell parsers for locale-formatted spreadsheet values.

Spreadsheet exports hand us Brazilian-locale strings ("R$ 1.500,00",
"10.000", "15/03/2025"), dot-decimal analytics values ("123.45"),
already-typed numbers, or nothing at all. Every parser here is total:
bad input yields 0 (numbers) or ``None`` (dates), never an exception
and never NaN or infinity.
"""

import math
import re
import warnings
from datetime import date, datetime

import pandas as pd


_CURRENCY_PREFIX = re.compile(r"^(?:R\$|US\$|\$|€|£)\s*")
_LEADING_INT = re.compile(r"^[+-]?\d+")
_DMY = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})(?:[\sT].*)?$")
_YMD = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:[\sT].*)?$")
_SPACES = re.compile(r"\s+")


def _is_missing(value) -> bool:
    """True for None, NaN, NaT and other pandas missing markers."""
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False  # non-scalar, let the caller decide


def _finite_or_zero(f: float) -> float:
    return f if math.isfinite(f) else 0.0


def _blank_text(value) -> str | None:
    """Return the trimmed text of *value*, or None when it carries no value.

    Empty, whitespace-only and literal "0" cells all count as "no value".
    """
    s = _SPACES.sub(" ", str(value)).strip()
    if not s or s == "0":
        return None
    return s


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------

def parse_locale_number(value) -> float:
    """Parse a pt-BR formatted number, optionally with a currency prefix.

    Examples:
        "R$ 1.500,00" -> 1500.0
        "10.000"      -> 10000.0
        "1,25%"       -> 1.25
        ""            -> 0.0
        "abc"         -> 0.0
        42            -> 42.0
    """
    if _is_missing(value) or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return _finite_or_zero(float(value))
    s = _blank_text(value)
    if s is None:
        return 0.0
    s = _CURRENCY_PREFIX.sub("", s)
    s = s.rstrip("%")
    s = _SPACES.sub("", s)
    s = s.replace(".", "").replace(",", ".")
    try:
        return _finite_or_zero(float(s))
    except ValueError:
        return 0.0


def parse_locale_integer(value) -> int:
    """Parse a pt-BR formatted integer count.

    Thousands separators are stripped, then the leading integer is read,
    so a stray decimal part is truncated rather than rejected.

    Examples:
        "10.000"   -> 10000
        "1.500,50" -> 1500
        "n/a"      -> 0
    """
    if _is_missing(value) or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        f = float(value)
        return int(f) if math.isfinite(f) else 0
    s = _blank_text(value)
    if s is None:
        return 0
    s = _SPACES.sub("", s).replace(".", "")
    m = _LEADING_INT.match(s)
    return int(m.group(0)) if m else 0


def parse_plain_number(value) -> float:
    """Parse a dot-decimal number as exported by analytics tools ("123.45")."""
    if _is_missing(value) or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return _finite_or_zero(float(value))
    s = _blank_text(value)
    if s is None:
        return 0.0
    try:
        return _finite_or_zero(float(s.replace(",", "")))
    except ValueError:
        return 0.0


def parse_text(value) -> str:
    """Return the trimmed string form of a cell ("" for missing cells)."""
    if _is_missing(value):
        return ""
    return str(value).strip()


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

def _iso(year: int, month: int, day: int) -> str | None:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def parse_flexible_date(value) -> str | None:
    """Normalize a date cell to a zero-padded ``YYYY-MM-DD`` string.

    Tries ``DD/MM/YYYY`` first, then ``YYYY-MM-DD``, then generic parsing
    (which covers GA4's ``YYYYMMDD``). Returns ``None`` when no reading
    succeeds; an unparseable date is an expected outcome, not an error.

    Examples:
        "15/03/2025"          -> "2025-03-15"
        "2025-3-5"            -> "2025-03-05"
        "20250315"            -> "2025-03-15"
        "31/02/2025"          -> None
        "soon"                -> None
    """
    if _is_missing(value):
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    s = _blank_text(value)
    if s is None:
        return None

    m = _DMY.match(s)
    if m:
        day, month, year = (int(g) for g in m.groups())
        return _iso(year, month, day)

    m = _YMD.match(s)
    if m:
        year, month, day = (int(g) for g in m.groups())
        return _iso(year, month, day)

    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", UserWarning)
            ts = pd.to_datetime(s, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(ts):
        return None
    return ts.date().isoformat()
