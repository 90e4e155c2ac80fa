"""
Record model for the shipment fact table: canonical schema, validation and
conversion to and from the external JSON record shape.
"""

import logging
from typing import Iterable

import pandas as pd

from .config import (
    COUNT_COLUMNS,
    DEFAULT_CAPTAIN,
    EXTERNAL_FIELD_NAMES,
    RECORD_COLUMNS,
)

logger = logging.getLogger(__name__)


def empty_records() -> pd.DataFrame:
    """Zero-row shipment fact table with the canonical dtypes."""
    return pd.DataFrame(
        {col: pd.Series(dtype=dtype) for col, dtype in RECORD_COLUMNS.items()}
    )


def ensure_record_columns(records: pd.DataFrame) -> None:
    """Raise ValueError when `records` lacks any canonical column."""
    missing = [c for c in RECORD_COLUMNS if c not in records.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")


def records_from_dicts(rows: Iterable[dict]) -> pd.DataFrame:
    """Build the fact table from external-shape dicts (camelCase or snake_case keys)."""
    snake_for = {external: canonical for canonical, external in EXTERNAL_FIELD_NAMES.items()}
    normalised = []
    for row in rows:
        normalised.append({snake_for.get(k, k): v for k, v in row.items()})

    if not normalised:
        return empty_records()

    df = pd.DataFrame(normalised)
    ensure_record_columns(df)
    df["date"] = pd.to_datetime(df["date"]).dt.normalize()
    df["captain"] = df["captain"].where(df["captain"].notna() & (df["captain"] != ""), DEFAULT_CAPTAIN)
    logger.info("Rehydrated %d shipment records", len(df))
    return df.astype(RECORD_COLUMNS)[list(RECORD_COLUMNS)]


def records_to_dicts(records: pd.DataFrame) -> list[dict]:
    """Serialise the fact table to JSON-ready dicts with ISO dates and camelCase keys."""
    ensure_record_columns(records)
    out = []
    for row in records[list(RECORD_COLUMNS)].itertuples(index=False):
        item = row._asdict()
        item["date"] = item["date"].strftime("%Y-%m-%d")
        for col in COUNT_COLUMNS:
            item[col] = int(item[col])
        item["package_fare"] = float(item["package_fare"])
        out.append({EXTERNAL_FIELD_NAMES[k]: v for k, v in item.items()})
    return out
