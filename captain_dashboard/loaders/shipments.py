"""
Loader for uploaded shipment spreadsheets (.xlsx / .xlsm / .csv).

The first sheet is read with headers in row 1. Header spelling varies
between exports ("Company Name", "companyName", "# Shipments" ...), so
columns are matched through config.COLUMN_ALIASES after snake_case
normalisation.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO

import pandas as pd

from ..config import COLUMN_ALIASES, COUNT_COLUMNS, DEFAULT_CAPTAIN, RECORD_COLUMNS
from ..transforms import empty_records
from .utils import is_blank, normalise_date, safe_float, to_snake_case

logger = logging.getLogger(__name__)

_SUPPORTED_SUFFIXES = {".xlsx", ".xlsm", ".csv"}


@dataclass(frozen=True)
class LoadResult:
    records: pd.DataFrame
    dropped: int
    source: str

    @property
    def ok(self) -> bool:
        return not self.records.empty

    @property
    def message(self) -> str:
        if not self.ok:
            return "No valid data found in the file. Please check column names."
        msg = f"Loaded {len(self.records)} records from {self.source}"
        if self.dropped:
            msg += f" ({self.dropped} rows skipped: missing company name or captain)"
        return msg


def _resolve_aliases(raw_df: pd.DataFrame) -> dict[str, list[str]]:
    """Map each canonical column to the raw headers that alias it, in alias order."""
    by_snake: dict[str, list[str]] = {}
    for col in raw_df.columns:
        by_snake.setdefault(to_snake_case(col), []).append(col)

    resolved: dict[str, list[str]] = {}
    for canonical, aliases in COLUMN_ALIASES.items():
        headers = []
        for alias in aliases:
            headers.extend(by_snake.get(alias, []))
        resolved[canonical] = headers
    return resolved


def _first_present(row: pd.Series, headers: list[str]) -> Any:
    for header in headers:
        val = row[header]
        if not is_blank(val):
            return val
    return None


def _as_text(val: Any) -> str:
    if is_blank(val):
        return ""
    if isinstance(val, float) and val.is_integer():
        val = int(val)
    return str(val).strip()


def parse_shipment_rows(
    raw_df: pd.DataFrame,
    today: pd.Timestamp | None = None,
) -> tuple[pd.DataFrame, int]:
    """Normalise a raw sheet into the shipment fact table.

    Parameters
    ----------
    raw_df : Frame as read from the sheet, headers in row 1.
    today : Fallback for empty or unparseable dates. Defaults to the
        current date.

    Returns
    -------
    (records, dropped) where records has the columns of
    config.RECORD_COLUMNS and dropped counts rows discarded for lacking a
    company name or captain.

    Assumptions
    -----------
    - Each canonical column takes the first non-empty aliased cell.
    - Count columns coerce to int, non-numeric cells become 0.
    - package_fare coerces to float, non-numeric cells become 0.0.
    - A missing captain defaults to "Unknown" before the drop rule runs,
      so in practice only rows without a company name are dropped.
    - A missing id becomes "excel-<row position>".
    """
    if raw_df is None or raw_df.empty:
        logger.warning("Empty source sheet — no shipment records built")
        return empty_records(), 0

    today = (today or pd.Timestamp.today()).normalize()
    headers = _resolve_aliases(raw_df)

    rows = []
    dropped = 0
    for position, (_, raw_row) in enumerate(raw_df.iterrows()):
        company = _as_text(_first_present(raw_row, headers["company_name"]))
        captain = _as_text(_first_present(raw_row, headers["captain"])) or DEFAULT_CAPTAIN
        if not company or not captain:
            dropped += 1
            continue

        record = {
            "id": _as_text(_first_present(raw_row, headers["id"])) or f"excel-{position}",
            "company_name": company,
            "package_code": _as_text(_first_present(raw_row, headers["package_code"])),
            "date": normalise_date(_first_present(raw_row, headers["date"]), default=today),
            "package_fare": safe_float(_first_present(raw_row, headers["package_fare"])) or 0.0,
            "captain": captain,
        }
        for col in COUNT_COLUMNS:
            val = safe_float(_first_present(raw_row, headers[col]))
            record[col] = int(val) if val is not None else 0
        rows.append(record)

    if dropped:
        logger.warning("Dropped %d rows missing company name or captain", dropped)

    if not rows:
        return empty_records(), dropped

    records = pd.DataFrame(rows).astype(RECORD_COLUMNS)[list(RECORD_COLUMNS)]
    return records, dropped


def read_sheet(source: str | Path | BinaryIO, suffix: str) -> pd.DataFrame:
    """Read the first sheet of an Excel workbook or a CSV file, all cells as-is."""
    match suffix:
        case ".xlsx" | ".xlsm":
            return pd.read_excel(source, sheet_name=0, engine="openpyxl")
        case ".csv":
            return pd.read_csv(source)
        case ext:
            raise ValueError(f"Unsupported file format: {ext or '(none)'}")


def load_shipments(
    source: str | Path | BinaryIO,
    name: str | None = None,
    today: pd.Timestamp | None = None,
) -> LoadResult:
    """Load an uploaded shipment sheet into a LoadResult.

    Parameters
    ----------
    source : Path, or a file-like object such as an upload buffer.
    name : File name used to pick the reader when `source` is file-like.
    today : Fallback date for unparseable date cells.
    """
    label = name or getattr(source, "name", None) or str(source)
    suffix = Path(label).suffix.lower()
    if suffix not in _SUPPORTED_SUFFIXES:
        raise ValueError(f"Unsupported file format: {suffix or '(none)'}")

    try:
        raw = read_sheet(source, suffix)
    except Exception:
        logger.exception("Failed to read shipment file: %s", label)
        raise

    records, dropped = parse_shipment_rows(raw, today=today)
    if records.empty:
        logger.warning("No valid shipment rows in %s", label)
    else:
        logger.info("Loaded %d shipment records from %s (%d dropped)", len(records), label, dropped)
    return LoadResult(records=records, dropped=dropped, source=Path(label).name)
