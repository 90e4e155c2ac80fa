"""
CSV export of ranked and per-captain tables for download.

Values are written exactly as the engine computed them; only the column
selection and header names are presentation choices.
"""

import logging

import pandas as pd

logger = logging.getLogger(__name__)

# engine column -> CSV header, in output order
TOP_DRIVER_HEADERS = {
    "rank": "Rank",
    "captain": "Captain",
    "success_rate": "Success Rate",
    "total_shipments": "Total Shipments",
    "volume_score": "Volume Score",
    "consistency_score": "Consistency Score",
    "performance_score": "Performance Score",
    "delivered": "Delivered",
    "failed": "Failed",
}

AT_RISK_HEADERS = {
    "rank": "Rank",
    "captain": "Captain",
    "success_rate": "Success Rate",
    "failure_rate": "Failure Rate",
    "total_shipments": "Total Shipments",
    "failed": "Failed",
    "risk_score": "Risk Score",
    "recommended_action": "Recommended Action",
}

CAPTAIN_STATS_HEADERS = {
    "captain": "Captain",
    "total_shipments": "Total Shipments",
    "delivered": "Delivered",
    "failed": "Failed",
    "success_rate": "Success Rate",
    "failure_rate": "Failure Rate",
    "total_cost": "Total Cost",
    "cost_per_delivered": "Cost per Delivered",
    "companies_served": "Companies Served",
    "packages_handled": "Packages Handled",
}


def _to_csv(df: pd.DataFrame, headers: dict[str, str], selected: list[str] | None = None) -> str:
    missing = [c for c in headers if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")

    if selected is not None:
        df = df[df["captain"].isin(selected)]

    out = df[list(headers)].rename(columns=headers)
    logger.info("Exporting %d rows", len(out))
    return out.to_csv(index=False, lineterminator="\n")


def export_top_drivers_csv(ranked: pd.DataFrame, selected: list[str] | None = None) -> str:
    """CSV of scoring.rank_top_performers output, optionally only `selected` captains."""
    return _to_csv(ranked, TOP_DRIVER_HEADERS, selected)


def export_at_risk_csv(ranked: pd.DataFrame, selected: list[str] | None = None) -> str:
    """CSV of scoring.rank_at_risk_drivers output, recommended action included as computed."""
    return _to_csv(ranked, AT_RISK_HEADERS, selected)


def export_captain_stats_csv(stats: pd.DataFrame) -> str:
    """CSV of kpis.compute_captain_stats output, one row per captain."""
    return _to_csv(stats, CAPTAIN_STATS_HEADERS)
