"""Ingestion glue: files and API envelopes -> RawTable.

Reads the exports the dashboard is fed with, keeping every cell as the
spreadsheet delivered it (text for CSV, native values for Excel) so the
locale-aware parsers see the original formatting:
- Consolidated delivery / GA4 exports (CSV, UTF-8 or UTF-16 LE tab-delimited)
- Workbooks with one tab per source (Excel .xlsx/.xlsm)
- Spreadsheet API responses (JSON, ``{"data": {"values": [...]}}``)
"""

import json
from pathlib import Path

import pandas as pd

from campaign_dashboard.schema.models import RawTable


# ---------------------------------------------------------------------------
# API envelopes
# ---------------------------------------------------------------------------

def unwrap_envelope(payload) -> list:
    """Extract the row array from a spreadsheet API response.

    Accepts ``{"data": {"values": rows}}``, ``{"values": rows}`` or a bare
    list of rows. Anything else yields an empty list.
    """
    if isinstance(payload, dict):
        if "data" in payload:
            return unwrap_envelope(payload["data"])
        values = payload.get("values")
        return values if isinstance(values, list) else []
    if isinstance(payload, list):
        return payload
    return []


def table_from_payload(payload, name: str = "") -> RawTable:
    """Build a RawTable from an API response, unwrapping its envelope."""
    return RawTable.from_values(unwrap_envelope(payload), name=name)


# ---------------------------------------------------------------------------
# Encoding detection and CSV reading
# ---------------------------------------------------------------------------

def detect_encoding(path):
    """Detect whether a file is UTF-16 LE (with BOM) or UTF-8.

    Returns (encoding, delimiter) tuple. For UTF-8 files the delimiter is
    the most frequent of ``,`` ``;`` and tab in the first line (pt-BR
    spreadsheets export with ``;``).
    """
    with open(path, "rb") as f:
        raw = f.read(4096)
    if raw[:2] == b"\xff\xfe":
        return "utf-16", "\t"
    first_line = raw.split(b"\n", 1)[0]
    counts = {sep: first_line.count(sep.encode()) for sep in (",", ";", "\t")}
    sep = max(counts, key=counts.get)
    return "utf-8-sig", sep if counts[sep] else ","


def read_csv_auto(path) -> pd.DataFrame:
    """Read a CSV file with automatic encoding and delimiter detection.

    All cells are read as text with no NA conversion; the header row is
    kept as the first data row.
    """
    encoding, sep = detect_encoding(path)
    try:
        return pd.read_csv(path, encoding=encoding, sep=sep, header=None,
                           dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError:
        return pd.DataFrame()


def _frame_to_values(df: pd.DataFrame) -> list[list]:
    df = df.astype(object).where(df.notna(), "")
    return df.values.tolist()


# ---------------------------------------------------------------------------
# Per-format readers
# ---------------------------------------------------------------------------

def read_csv_table(path, sheet=None) -> RawTable:
    """Read a CSV export into a RawTable named after the file."""
    path = Path(path)
    return RawTable.from_values(_frame_to_values(read_csv_auto(path)), name=path.stem)


def read_excel_table(path, sheet=None) -> RawTable:
    """Read one worksheet (the first when *sheet* is None) into a RawTable."""
    path = Path(path)
    df = pd.read_excel(path, sheet_name=sheet if sheet is not None else 0,
                       header=None, dtype=object, engine="openpyxl")
    return RawTable.from_values(_frame_to_values(df), name=sheet or path.stem)


def read_json_table(path, sheet=None) -> RawTable:
    """Read a saved spreadsheet API response into a RawTable."""
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        payload = json.load(f)
    return table_from_payload(payload, name=sheet or path.stem)


def list_sheets(path) -> list[str]:
    """Return the worksheet names of an Excel workbook."""
    xl = pd.ExcelFile(path, engine="openpyxl")
    names = list(xl.sheet_names)
    xl.close()
    return names


# ---------------------------------------------------------------------------
# Format registry
# ---------------------------------------------------------------------------

TABLE_READERS = {
    ".csv": read_csv_table,
    ".tsv": read_csv_table,
    ".txt": read_csv_table,
    ".xlsx": read_excel_table,
    ".xlsm": read_excel_table,
    ".json": read_json_table,
}


def read_table(path, sheet=None) -> RawTable:
    """Read a data file into a RawTable, dispatching on its extension.

    Args:
        path: Path to the data file.
        sheet: Worksheet name for Excel workbooks; used as the table name
            for other formats.

    Raises:
        ValueError: If the file extension is not recognized.
    """
    suffix = Path(path).suffix.lower()
    if suffix not in TABLE_READERS:
        raise ValueError(
            f"Unknown table format '{suffix}'. "
            f"Valid formats: {', '.join(sorted(TABLE_READERS))}"
        )
    return TABLE_READERS[suffix](path, sheet)
