"""
Rate and KPI calculations over the shipment fact table.

Provides zero-safe rate calculation, per-group rate derivation, global
KPIs, trailing-window rates and qualitative success-rate bands.

Every rate is a percentage. When its denominator is 0 the rate is 0.0,
never NaN or inf. Anomalous input (delivered > shipments, negative counts)
is not corrected, so rates may exceed 100.
"""

import logging

import pandas as pd

from .aggregate import aggregate, summarise
from .config import SUCCESS_RATE_BANDS, SUCCESS_RATE_FLOOR_BAND, TRAILING_WINDOWS
from .transforms import ensure_record_columns

logger = logging.getLogger(__name__)

STATS_COLUMNS = [
    "captain",
    "total_shipments",
    "delivered",
    "failed",
    "total_cost",
    "success_rate",
    "failure_rate",
    "cost_per_delivered",
    "companies_served",
    "packages_handled",
]


def safe_rate(numerator: float, denominator: float, scale: float = 100.0) -> float:
    """Return scale * numerator / denominator, or 0.0 when denominator == 0."""
    if denominator == 0 or pd.isna(denominator):
        return 0.0
    return float(numerator) / float(denominator) * scale


def _rate_series(numerator: pd.Series, denominator: pd.Series, scale: float = 100.0) -> pd.Series:
    den = denominator.astype(float).where(denominator != 0)
    return (numerator.astype(float) / den * scale).fillna(0.0)


def derive_rates(aggregated: pd.DataFrame) -> pd.DataFrame:
    """Turn an aggregate() frame into per-group stats.

    Parameters
    ----------
    aggregated : Output of aggregate(); its index becomes a regular column
        named after the grouping key.

    Returns
    -------
    DataFrame with the key column plus:
        total_shipments, delivered, failed, total_cost,
        success_rate      = 100 * delivered / total_shipments
        failure_rate      = 100 * failed / total_shipments
        cost_per_delivered = total_cost / delivered
        companies_served, packages_handled (distinct counts)
    """
    stats = aggregated.reset_index()
    stats["success_rate"] = _rate_series(stats["delivered"], stats["total_shipments"])
    stats["failure_rate"] = _rate_series(stats["failed"], stats["total_shipments"])
    stats["cost_per_delivered"] = _rate_series(stats["total_cost"], stats["delivered"], scale=1.0)
    stats["companies_served"] = stats["companies"].map(len).astype(int)
    stats["packages_handled"] = stats["packages"].map(len).astype(int)
    return stats.drop(columns=["companies", "packages"])


def compute_global_kpis(records: pd.DataFrame) -> dict:
    """Headline KPIs over every record passed in.

    Returns
    -------
    Dict with keys:
        records, total_shipments, total_delivered, total_failed, total_cost,
        success_rate, failure_rate, avg_cost_per_delivered,
        companies_served, packages_handled, captains
    """
    if records.empty:
        logger.warning("Empty record set — global KPIs resolve to zero")

    totals = summarise(records)
    return {
        "records": len(records),
        "total_shipments": totals["total_shipments"],
        "total_delivered": totals["delivered"],
        "total_failed": totals["failed"],
        "total_cost": totals["total_cost"],
        "success_rate": safe_rate(totals["delivered"], totals["total_shipments"]),
        "failure_rate": safe_rate(totals["failed"], totals["total_shipments"]),
        "avg_cost_per_delivered": safe_rate(totals["total_cost"], totals["delivered"], scale=1.0),
        "companies_served": len(totals["companies"]),
        "packages_handled": len(totals["packages"]),
        "captains": len(totals["captains"]),
    }


def compute_captain_stats(records: pd.DataFrame) -> pd.DataFrame:
    """One stats row per captain, ordered by captain name."""
    stats = derive_rates(aggregate(records, "captain"))
    logger.info("Computed stats for %d captains from %d records", len(stats), len(records))
    return stats[STATS_COLUMNS]


def trailing_window(
    records: pd.DataFrame,
    days: int,
    as_of: pd.Timestamp | None = None,
) -> pd.DataFrame:
    """Records dated on or after as_of - days (as_of defaults to today)."""
    ensure_record_columns(records)
    as_of = pd.Timestamp(as_of if as_of is not None else pd.Timestamp.today()).normalize()
    cutoff = as_of - pd.Timedelta(days=days)
    return records[records["date"] >= cutoff].copy()


def compute_windowed_kpis(
    records: pd.DataFrame,
    captain: str,
    windows: tuple[int, ...] = TRAILING_WINDOWS,
    as_of: pd.Timestamp | None = None,
) -> dict:
    """All-time totals plus trailing-window success rates for one captain.

    Returns
    -------
    {
        "captain": ..., "total_shipments": ..., "total_delivered": ...,
        "total_failed": ..., "success_rate": ...,
        "windows": {7: 93.1, 30: 88.4},
        "weekly_success_rate": ...,   # 7-day window when requested
        "monthly_success_rate": ...,  # 30-day window when requested
    }
    """
    ensure_record_columns(records)
    own = records[records["captain"] == captain]
    totals = summarise(own)

    window_rates = {}
    for days in windows:
        recent = summarise(trailing_window(own, days, as_of=as_of))
        window_rates[days] = safe_rate(recent["delivered"], recent["total_shipments"])

    result = {
        "captain": captain,
        "total_shipments": totals["total_shipments"],
        "total_delivered": totals["delivered"],
        "total_failed": totals["failed"],
        "success_rate": safe_rate(totals["delivered"], totals["total_shipments"]),
        "windows": window_rates,
    }
    if 7 in window_rates:
        result["weekly_success_rate"] = window_rates[7]
    if 30 in window_rates:
        result["monthly_success_rate"] = window_rates[30]
    return result


def classify_success_rate(rate: float) -> str:
    """Return the qualitative band for a success rate.

    Logic
    -----
    - "Excellent"          if rate >= 90
    - "Good"               if rate >= 80
    - "Needs Improvement"  otherwise
    """
    for floor, label in SUCCESS_RATE_BANDS:
        if rate >= floor:
            return label
    return SUCCESS_RATE_FLOOR_BAND
