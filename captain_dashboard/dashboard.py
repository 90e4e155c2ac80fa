"""
Dashboard-ready output functions.

These are the primary entry points for the Streamlit front end. Every
function takes the full record set plus optional filters (or already
computed captain stats) and returns plain dicts or DataFrames suitable for
rendering cards, charts, and tables. Nothing here mutates its inputs.
"""

import logging
from dataclasses import replace

import pandas as pd

from . import kpis
from .aggregate import aggregate
from .config import (
    ALL,
    DEFAULT_TARGET_COUNT,
    HIGH_FAILURE_LIMIT,
    HIGH_FAILURE_MIN_SHIPMENTS,
    HIGH_RISK_FAILURE_RATE,
    SUCCESS_RATE_BUCKETS,
    TOP_CAPTAINS_LIMIT,
    RiskConfig,
    ScoringWeights,
    get_scoring_scheme,
)
from .filters import ShipmentFilters, apply_filters, normalize_filters
from .kpis import classify_success_rate, derive_rates, safe_rate, trailing_window
from .scoring import driver_rank, rank_at_risk_drivers, rank_top_performers

logger = logging.getLogger(__name__)

__all__ = [
    "compute_global_kpis",
    "compute_captain_stats",
    "compute_time_series",
    "rank_top_performers",
    "rank_at_risk_drivers",
    "top_captains_by_volume",
    "high_failure_captains",
    "success_rate_distribution",
    "company_distribution",
    "package_performance",
    "get_captain_analysis",
    "get_driver_management_overview",
    "select_top_drivers",
    "select_at_risk_drivers",
]

# granularity -> (grouping key, strptime format of the key, label format)
_GRANULARITIES = {
    "week": ("week", "%Y-%m-%d", "%b %d"),
    "month": ("month", "%Y-%m", "%b %Y"),
}

TIME_SERIES_COLUMNS = [
    "bucket",
    "label",
    "shipments",
    "delivered",
    "failed",
    "success_rate",
    "failure_rate",
]


# ---------------------------------------------------------------------------
# Query interface
# ---------------------------------------------------------------------------
def compute_global_kpis(
    records: pd.DataFrame,
    filters: ShipmentFilters | dict | None = None,
) -> dict:
    """Headline KPI cards for the filtered records."""
    return kpis.compute_global_kpis(apply_filters(records, filters))


def compute_captain_stats(
    records: pd.DataFrame,
    filters: ShipmentFilters | dict | None = None,
) -> pd.DataFrame:
    """Per-captain stats for the filtered records (leaderboard rows)."""
    return kpis.compute_captain_stats(apply_filters(records, filters))


def compute_time_series(
    records: pd.DataFrame,
    filters: ShipmentFilters | dict | None = None,
    granularity: str = "week",
) -> pd.DataFrame:
    """Shipments and rates per week or month, oldest bucket first.

    Parameters
    ----------
    granularity : "week" (buckets start on Sunday) or "month".

    Returns
    -------
    DataFrame with columns:
        bucket ("2024-03-03" / "2024-03"), label ("Mar 03" / "Mar 2024"),
        shipments, delivered, failed, success_rate, failure_rate
    """
    if granularity not in _GRANULARITIES:
        raise ValueError(
            f"Unknown granularity: {granularity!r} (expected one of {sorted(_GRANULARITIES)})"
        )
    key, key_format, label_format = _GRANULARITIES[granularity]

    series = derive_rates(aggregate(apply_filters(records, filters), key))
    series = series.rename(columns={key: "bucket", "total_shipments": "shipments"})
    series["label"] = pd.to_datetime(series["bucket"], format=key_format).dt.strftime(label_format)
    return series[TIME_SERIES_COLUMNS]


# ---------------------------------------------------------------------------
# Overview charts
# ---------------------------------------------------------------------------
def top_captains_by_volume(stats: pd.DataFrame, limit: int = TOP_CAPTAINS_LIMIT) -> pd.DataFrame:
    """Captains with the most shipments, ties by name."""
    return stats.sort_values(
        ["total_shipments", "captain"], ascending=[False, True], kind="mergesort"
    ).head(limit)


def high_failure_captains(
    stats: pd.DataFrame,
    min_shipments: int = HIGH_FAILURE_MIN_SHIPMENTS,
    limit: int = HIGH_FAILURE_LIMIT,
) -> pd.DataFrame:
    """Highest failure rates among captains with at least `min_shipments`."""
    busy = stats[stats["total_shipments"] >= min_shipments]
    return busy.sort_values("failure_rate", ascending=False, kind="mergesort").head(limit)


def success_rate_distribution(
    stats: pd.DataFrame,
    buckets: tuple = SUCCESS_RATE_BUCKETS,
) -> pd.DataFrame:
    """Captain count per success-rate bucket.

    Parameters
    ----------
    buckets : (label, lower inclusive, upper exclusive) triples; None leaves
        that side open.

    Returns
    -------
    DataFrame with columns: range, count
    """
    rates = stats["success_rate"]
    rows = []
    for label, lower, upper in buckets:
        mask = pd.Series(True, index=rates.index)
        if lower is not None:
            mask &= rates >= lower
        if upper is not None:
            mask &= rates < upper
        rows.append({"range": label, "count": int(mask.sum())})
    return pd.DataFrame(rows, columns=["range", "count"])


def _own_records(records: pd.DataFrame, captain: str | None) -> pd.DataFrame:
    if captain is None or captain == ALL:
        return records
    return records[records["captain"] == captain]


def company_distribution(records: pd.DataFrame, captain: str | None = None) -> pd.DataFrame:
    """Shipments per company, with each company's share of the total, largest first.

    Returns
    -------
    DataFrame with columns: company, shipments, share
    """
    grouped = aggregate(_own_records(records, captain), "company").reset_index()
    total = grouped["total_shipments"].sum()
    result = pd.DataFrame({
        "company": grouped["company"],
        "shipments": grouped["total_shipments"],
        "share": [safe_rate(s, total) for s in grouped["total_shipments"]],
    })
    return result.sort_values("shipments", ascending=False, kind="mergesort").reset_index(drop=True)


def package_performance(records: pd.DataFrame, captain: str | None = None) -> pd.DataFrame:
    """Per-package delivery table with qualitative band and high-risk flag.

    Returns
    -------
    DataFrame with columns:
        package_code, shipments, delivered, failed, success_rate,
        failure_rate, band, high_risk (failure_rate > 20)
    """
    stats = derive_rates(aggregate(_own_records(records, captain), "package"))
    stats = stats.rename(columns={"package": "package_code", "total_shipments": "shipments"})
    stats["band"] = stats["success_rate"].map(classify_success_rate)
    stats["high_risk"] = stats["failure_rate"] > HIGH_RISK_FAILURE_RATE
    stats = stats.sort_values("shipments", ascending=False, kind="mergesort").reset_index(drop=True)
    return stats[
        ["package_code", "shipments", "delivered", "failed", "success_rate", "failure_rate", "band", "high_risk"]
    ]


# ---------------------------------------------------------------------------
# Captain detail
# ---------------------------------------------------------------------------
def get_captain_analysis(
    records: pd.DataFrame,
    captain: str,
    filters: ShipmentFilters | dict | None = None,
    as_of: pd.Timestamp | None = None,
) -> dict:
    """Everything the captain detail page shows for one captain.

    Parameters
    ----------
    records : Full record set.
    captain : Captain to analyse. Any captain restriction inside `filters`
        is ignored so that rank and overall averages cover every captain
        in scope.
    filters : Company / package / date restrictions.
    as_of : Reference date for the 7- and 30-day windows. Defaults to today.

    Returns
    -------
    {
        "captain", "found",
        "kpis": totals, success_rate, weekly/monthly success rates,
        "overall": success_rate, failure_rate, avg_shipments_per_entry,
        "rank": {"rank", "total_drivers"},
        "monthly_trend": time series plus efficiency,
        "weekly_trend", "company_distribution", "package_performance",
    }

    Assumptions
    -----------
    - efficiency = success_rate / 100 - overall success_rate / 100, i.e.
      positive when the captain beats the population that month.
    """
    if not isinstance(filters, ShipmentFilters):
        filters = normalize_filters(filters)
    scope = apply_filters(records, replace(filters, captain=ALL))
    own = scope[scope["captain"] == captain]
    if own.empty:
        logger.warning("No records for captain '%s' in the selected scope", captain)

    overall = kpis.compute_global_kpis(scope)
    overall_view = {
        "success_rate": overall["success_rate"],
        "failure_rate": overall["failure_rate"],
        "avg_shipments_per_entry": safe_rate(overall["total_shipments"], overall["records"], scale=1.0),
    }

    monthly = compute_time_series(own, granularity="month")
    monthly["efficiency"] = monthly["success_rate"] / 100.0 - overall["success_rate"] / 100.0

    return {
        "captain": captain,
        "found": not own.empty,
        "kpis": kpis.compute_windowed_kpis(scope, captain, as_of=as_of),
        "overall": overall_view,
        "rank": driver_rank(kpis.compute_captain_stats(scope), captain),
        "monthly_trend": monthly,
        "weekly_trend": compute_time_series(own, granularity="week"),
        "company_distribution": company_distribution(own),
        "package_performance": package_performance(own),
    }


# ---------------------------------------------------------------------------
# Driver management
# ---------------------------------------------------------------------------
def get_driver_management_overview(stats: pd.DataFrame) -> dict:
    """Summary cards for the driver management page."""
    rates = stats["success_rate"]
    return {
        "total_drivers": len(stats),
        "excellent": int((rates >= 90).sum()),
        "good": int(((rates >= 80) & (rates < 90)).sum()),
        "needs_attention": int((rates < 80).sum()),
        "inactive": int((stats["total_shipments"] == 0).sum()),
    }


def select_top_drivers(
    records: pd.DataFrame,
    filters: ShipmentFilters | dict | None = None,
    weights: ScoringWeights | str | None = None,
    target_count: int = DEFAULT_TARGET_COUNT,
    as_of: pd.Timestamp | None = None,
) -> pd.DataFrame:
    """Ranked candidate pool for the top-driver selection.

    The pool holds min(2 * target_count, captains) rows; `selected` is True
    on the first target_count. A scheme with window_days scores only the
    records inside that trailing window.
    """
    if target_count < 0:
        raise ValueError(f"target_count must be non-negative, got {target_count}")
    if not isinstance(weights, ScoringWeights):
        weights = get_scoring_scheme(weights)

    scope = apply_filters(records, filters)
    if weights.window_days:
        scope = trailing_window(scope, weights.window_days, as_of=as_of)

    ranked = rank_top_performers(kpis.compute_captain_stats(scope), weights)
    pool = ranked.head(min(target_count * 2, len(ranked))).copy()
    pool["selected"] = pool["rank"] <= target_count
    logger.info(
        "Top-driver pool: %d candidates, %d selected (%s)",
        len(pool), int(pool["selected"].sum()), weights.version,
    )
    return pool


def select_at_risk_drivers(
    records: pd.DataFrame,
    filters: ShipmentFilters | dict | None = None,
    max_success_rate: float | None = None,
    config: RiskConfig | None = None,
) -> pd.DataFrame:
    """At-risk captains for the filtered records, worst first."""
    stats = kpis.compute_captain_stats(apply_filters(records, filters))
    return rank_at_risk_drivers(stats, max_success_rate=max_success_rate, config=config)
