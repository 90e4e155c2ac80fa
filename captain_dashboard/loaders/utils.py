"""
Shared utilities for data ingestion: header normalisation, date parsing,
numeric coercion.
"""

import logging
import re
from datetime import date, datetime
from typing import Any

import numpy as np
import pandas as pd

from ..config import DATE_FORMATS, EXCEL_EPOCH

logger = logging.getLogger(__name__)


def normalise_date(val: Any, default: pd.Timestamp | None = None) -> pd.Timestamp | None:
    """Convert a spreadsheet date cell to a midnight pd.Timestamp.

    Accepts native datetimes, Excel serial numbers (1899-12-30 epoch) and
    strings in any of config.DATE_FORMATS. Returns `default` for empty or
    unparseable values.
    """
    if val is None or (not isinstance(val, str) and pd.isna(val)):
        return default
    if isinstance(val, (pd.Timestamp, datetime, date)):
        return pd.Timestamp(val).normalize()
    if isinstance(val, (int, float, np.integer, np.floating)):
        try:
            return pd.Timestamp(EXCEL_EPOCH) + pd.Timedelta(days=int(val))
        except (ValueError, OverflowError):
            logger.warning("Could not convert serial number %s to date", val)
            return default

    text = str(val).strip()
    if not text:
        return default
    # Drop a trailing time component ("2024-03-05T00:00:00", "3/5/2024 10:30")
    head = re.split(r"[T ]", text, maxsplit=1)[0]
    for fmt in DATE_FORMATS:
        try:
            return pd.Timestamp(datetime.strptime(head, fmt))
        except ValueError:
            continue

    logger.warning("Could not parse date value: %s", val)
    return default


def to_snake_case(name: str) -> str:
    """Convert a column header to snake_case.

    "Company Name", "companyName" and "# Delivered Shipments" become
    "company_name", "company_name" and "delivered_shipments".
    """
    s = str(name).strip()
    s = s.replace("%", "pct").replace("/", "_per_").replace("(", "").replace(")", "")
    s = s.replace("-", "_").replace(".", "_")
    s = re.sub(r"[^a-zA-Z0-9]+", "_", s)
    # CamelCase to snake_case
    s = re.sub(r"([a-z])([A-Z])", r"\1_\2", s)
    s = s.lower().strip("_")
    s = re.sub(r"_+", "_", s)
    return s


def safe_float(val: Any) -> float | None:
    """Coerce a value to a finite float, returning None for anything else."""
    if val is None:
        return None
    if isinstance(val, str):
        val = val.strip().replace(",", "")
        if val.startswith("=") or not val:
            return None
    try:
        out = float(val)
    except (ValueError, TypeError):
        return None
    if not np.isfinite(out):
        return None
    return out


def is_blank(val: Any) -> bool:
    """True for None, NaN and whitespace-only strings."""
    if val is None:
        return True
    if isinstance(val, str):
        return not val.strip()
    try:
        return bool(pd.isna(val))
    except (TypeError, ValueError):
        return False
