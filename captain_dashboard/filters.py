"""
Filter engine: equality filters on company, captain and package code plus an
inclusive date range, applied to the shipment fact table.
"""

import logging
from dataclasses import dataclass
from typing import Any

import pandas as pd

from .config import ALL
from .transforms import ensure_record_columns

logger = logging.getLogger(__name__)

# filter field -> record column
_EQUALITY_FIELDS = {
    "company": "company_name",
    "captain": "captain",
    "package_code": "package_code",
}

_RAW_KEYS = {
    "company": ("company", "companyName", "company_name"),
    "captain": ("captain",),
    "package_code": ("package_code", "packageCode"),
    "date_from": ("date_from", "dateFrom"),
    "date_to": ("date_to", "dateTo"),
}


@dataclass(frozen=True)
class ShipmentFilters:
    company: str = ALL
    captain: str = ALL
    package_code: str = ALL
    date_from: pd.Timestamp | None = None
    date_to: pd.Timestamp | None = None

    @property
    def is_active(self) -> bool:
        return (
            any(getattr(self, f) != ALL for f in _EQUALITY_FIELDS)
            or self.date_from is not None
            or self.date_to is not None
        )


def _as_choice(value: Any) -> str:
    if value is None:
        return ALL
    text = str(value)
    return text if text.strip() else ALL


def _as_day(value: Any) -> pd.Timestamp | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    ts = pd.Timestamp(value)
    if pd.isna(ts):
        return None
    return ts.normalize()


def _pick(raw: dict, field: str) -> Any:
    for key in _RAW_KEYS[field]:
        if key in raw:
            return raw[key]
    return None


def normalize_filters(raw: dict | None = None) -> ShipmentFilters:
    """Build ShipmentFilters from a loosely-typed dict.

    Accepts snake_case or camelCase keys and a nested
    ``dateRange: {"from": ..., "to": ...}``. None, "" and "all" all mean
    no restriction.
    """
    raw = raw or {}
    date_from = _pick(raw, "date_from")
    date_to = _pick(raw, "date_to")

    date_range = raw.get("dateRange") or raw.get("date_range") or {}
    if date_from is None:
        date_from = date_range.get("from")
    if date_to is None:
        date_to = date_range.get("to")

    return ShipmentFilters(
        company=_as_choice(_pick(raw, "company")),
        captain=_as_choice(_pick(raw, "captain")),
        package_code=_as_choice(_pick(raw, "package_code")),
        date_from=_as_day(date_from),
        date_to=_as_day(date_to),
    )


def apply_filters(
    records: pd.DataFrame,
    filters: ShipmentFilters | dict | None = None,
) -> pd.DataFrame:
    """Return the records passing every active filter, in original order.

    An empty result is a valid outcome (e.g. date_from after date_to).
    """
    ensure_record_columns(records)
    if filters is None:
        return records.copy()
    if isinstance(filters, dict):
        filters = normalize_filters(filters)

    mask = pd.Series(True, index=records.index)
    for field, column in _EQUALITY_FIELDS.items():
        value = getattr(filters, field)
        if value != ALL:
            mask &= records[column] == value

    if filters.date_from is not None or filters.date_to is not None:
        days = records["date"].dt.normalize()
        if filters.date_from is not None:
            mask &= days >= filters.date_from
        if filters.date_to is not None:
            mask &= days <= filters.date_to

    result = records[mask].copy()
    if result.empty and not records.empty:
        logger.warning("Filters %s matched no records", filters)
    return result


def filter_options(records: pd.DataFrame) -> dict[str, list[str]]:
    """Sorted distinct values for the company, captain and package dropdowns."""
    ensure_record_columns(records)
    return {
        "companies": sorted(records["company_name"].dropna().unique().tolist()),
        "captains": sorted(records["captain"].dropna().unique().tolist()),
        "package_codes": sorted(records["package_code"].dropna().unique().tolist()),
    }
