"""
Aggregation: group shipment records by a key and accumulate totals and
distinct-value sets.

Grouping keys
-------------
- "captain", "company", "package": record columns.
- "week": the Sunday on or before each record's date (ISO date string).
- "month": "YYYY-MM".
- Any record column name, or a callable ``records -> Series`` aligned
  with the records' index.
"""

import logging
from typing import Callable

import pandas as pd

from .transforms import ensure_record_columns

logger = logging.getLogger(__name__)

KeyFunction = Callable[[pd.DataFrame], pd.Series]

AGGREGATE_COLUMNS = [
    "total_shipments",
    "delivered",
    "failed",
    "total_cost",
    "companies",
    "packages",
]


def week_start(records: pd.DataFrame) -> pd.Series:
    """Sunday on or before each record's date, as YYYY-MM-DD."""
    days = records["date"].dt.normalize()
    # dayofweek: Monday=0 .. Sunday=6
    offset = (days.dt.dayofweek + 1) % 7
    return (days - pd.to_timedelta(offset, unit="D")).dt.strftime("%Y-%m-%d")


def month_key(records: pd.DataFrame) -> pd.Series:
    """Calendar month of each record's date, as YYYY-MM."""
    return records["date"].dt.strftime("%Y-%m")


def _column(name: str) -> KeyFunction:
    def key(records: pd.DataFrame) -> pd.Series:
        return records[name]

    return key


KEY_FUNCTIONS: dict[str, KeyFunction] = {
    "captain": _column("captain"),
    "company": _column("company_name"),
    "package": _column("package_code"),
    "week": week_start,
    "month": month_key,
}


def _resolve_key(records: pd.DataFrame, key: str | KeyFunction) -> tuple[pd.Series, str]:
    if isinstance(key, str):
        if key in KEY_FUNCTIONS:
            return KEY_FUNCTIONS[key](records), key
        if key in records.columns:
            return records[key], key
        raise ValueError(f"Unknown grouping key: {key!r}")

    if not callable(key):
        raise ValueError(f"Grouping key must be a name or a callable, got {type(key).__name__}")

    keys = key(records)
    if not isinstance(keys, pd.Series) or not keys.index.equals(records.index):
        raise ValueError("Grouping key function must return a Series aligned with the records")
    return keys, getattr(key, "__name__", "key")


def aggregate(records: pd.DataFrame, key: str | KeyFunction) -> pd.DataFrame:
    """Group records by `key` and accumulate per-group totals.

    Returns
    -------
    DataFrame indexed by group key (sorted), with columns:
        total_shipments, delivered, failed, total_cost,
        companies (frozenset of company names),
        packages (frozenset of package codes)

    total_cost is sum(package_fare * delivered_shipments). Records with a
    null key form their own group, sorted last. Each field is
    summed independently; delivered + failed is never assumed to equal
    total_shipments.
    """
    ensure_record_columns(records)
    keys, name = _resolve_key(records, key)

    if records.empty:
        empty = pd.DataFrame({
            "total_shipments": pd.Series(dtype="int64"),
            "delivered": pd.Series(dtype="int64"),
            "failed": pd.Series(dtype="int64"),
            "total_cost": pd.Series(dtype="float64"),
            "companies": pd.Series(dtype="object"),
            "packages": pd.Series(dtype="object"),
        })
        empty.index = pd.Index([], dtype="object", name=name)
        return empty

    frame = records.assign(
        _key=keys,
        _cost=records["package_fare"] * records["delivered_shipments"],
    )
    grouped = frame.groupby("_key", sort=True, dropna=False)

    result = grouped.agg(
        total_shipments=("shipments", "sum"),
        delivered=("delivered_shipments", "sum"),
        failed=("failed_shipments", "sum"),
        total_cost=("_cost", "sum"),
    )
    companies = grouped["company_name"].unique()
    packages = grouped["package_code"].unique()
    result["companies"] = [frozenset(v) for v in companies]
    result["packages"] = [frozenset(v) for v in packages]
    result.index.name = name

    logger.debug("Aggregated %d records into %d %s groups", len(records), len(result), name)
    return result[AGGREGATE_COLUMNS]


def summarise(records: pd.DataFrame) -> dict:
    """Accumulate totals and distinct sets over the whole record set."""
    ensure_record_columns(records)
    return {
        "total_shipments": int(records["shipments"].sum()),
        "delivered": int(records["delivered_shipments"].sum()),
        "failed": int(records["failed_shipments"].sum()),
        "total_cost": float((records["package_fare"] * records["delivered_shipments"]).sum()),
        "companies": frozenset(records["company_name"].unique()),
        "packages": frozenset(records["package_code"].unique()),
        "captains": frozenset(records["captain"].unique()),
    }
