"""
Captain Performance Dashboard — End-to-end analytics run.

Loads a shipment spreadsheet (or generates sample data), runs every
dashboard view and prints smoke-test summaries.

Usage:
    python main.py                 # sample data
    python main.py shipments.xlsx  # uploaded export (.xlsx / .xlsm / .csv)
"""

import logging
import sys
from pathlib import Path

import pandas as pd

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent))

from captain_dashboard.config import DASHBOARD_TITLE, SCORING_SCHEMES
from captain_dashboard.dashboard import (
    company_distribution,
    compute_captain_stats,
    compute_global_kpis,
    compute_time_series,
    get_captain_analysis,
    get_driver_management_overview,
    high_failure_captains,
    package_performance,
    select_at_risk_drivers,
    select_top_drivers,
    success_rate_distribution,
    top_captains_by_volume,
)
from captain_dashboard.export import export_at_risk_csv
from captain_dashboard.filters import filter_options
from captain_dashboard.loaders import load_shipments
from captain_dashboard.simulator import generate_shipments

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def load_records(argv: list[str]) -> tuple[pd.DataFrame, pd.Timestamp]:
    """Records from the file named on the command line, else sample data.

    Also returns the reference date for trailing windows: the latest record
    date, so sample data from a past year still has recent activity.
    """
    if len(argv) > 1:
        result = load_shipments(argv[1])
        print(f"\n{result.message}")
        records = result.records
    else:
        records = generate_shipments()
        print(f"\nSample data: {len(records)} rows generated")

    as_of = records["date"].max() if not records.empty else pd.Timestamp.today().normalize()
    return records, as_of


def main() -> None:
    """Run every dashboard view and print smoke-test outputs."""

    print("=" * 70)
    print(f"  {DASHBOARD_TITLE.upper()}")
    print("  Analytics Smoke Test")
    print("=" * 70)
    print()

    # ------------------------------------------------------------------
    # 1. Load records
    # ------------------------------------------------------------------
    print("[ 1 ] LOADING SHIPMENT RECORDS")
    print("-" * 40)

    records, as_of = load_records(sys.argv)
    options = filter_options(records)
    print(f"Companies: {options['companies']}")
    print(f"Captains:  {len(options['captains'])}")
    print(f"Packages:  {options['package_codes']}")

    # ------------------------------------------------------------------
    # 2. Overview
    # ------------------------------------------------------------------
    print("\n")
    print("[ 2 ] OVERVIEW")
    print("-" * 40)

    kpis = compute_global_kpis(records)
    for name, value in kpis.items():
        print(f"  {name:24s} | {value:,.2f}" if isinstance(value, float) else f"  {name:24s} | {value}")

    stats = compute_captain_stats(records)
    print(f"\nCaptain leaderboard: {len(stats)} captains")
    print(stats.to_string(index=False))

    print("\nTop captains by volume:")
    print(top_captains_by_volume(stats)[["captain", "total_shipments"]].to_string(index=False))

    print("\nHighest failure rates (min 200 shipments):")
    print(high_failure_captains(stats)[["captain", "failure_rate"]].to_string(index=False))

    print("\nSuccess rate distribution:")
    print(success_rate_distribution(stats).to_string(index=False))

    monthly = compute_time_series(records, granularity="month")
    print(f"\nMonthly trend: {len(monthly)} buckets")
    print(monthly.to_string(index=False))

    # ------------------------------------------------------------------
    # 3. Captain detail
    # ------------------------------------------------------------------
    print("\n")
    print("[ 3 ] CAPTAIN ANALYSIS")
    print("-" * 40)

    if not stats.empty:
        captain = stats.sort_values("total_shipments", ascending=False).iloc[0]["captain"]
        analysis = get_captain_analysis(records, captain, as_of=as_of)
        print(f"\nCaptain: {captain}")
        print(f"  Rank: {analysis['rank']['rank']} of {analysis['rank']['total_drivers']}")
        print(f"  Success rate: {analysis['kpis']['success_rate']:.1f}%")
        print(f"  Last 7 days:  {analysis['kpis']['weekly_success_rate']:.1f}%")
        print(f"  Last 30 days: {analysis['kpis']['monthly_success_rate']:.1f}%")
        print(f"  Overall:      {analysis['overall']['success_rate']:.1f}%")
        print("\n  Monthly trend:")
        print(analysis["monthly_trend"][["label", "shipments", "success_rate", "efficiency"]].to_string(index=False))
        print("\n  Company distribution:")
        print(company_distribution(records, captain).to_string(index=False))
        print("\n  Package performance:")
        print(package_performance(records, captain).to_string(index=False))

    # ------------------------------------------------------------------
    # 4. Driver management
    # ------------------------------------------------------------------
    print("\n")
    print("[ 4 ] DRIVER MANAGEMENT")
    print("-" * 40)

    print(f"\n  {get_driver_management_overview(stats)}")

    for scheme in SCORING_SCHEMES:
        pool = select_top_drivers(records, weights=scheme, target_count=3, as_of=as_of)
        print(f"\nTop drivers — {scheme}:")
        print(pool[["rank", "captain", "performance_score", "selected"]].to_string(index=False))

    at_risk = select_at_risk_drivers(records, max_success_rate=85)
    print(f"\nAt-risk drivers (<= 85%): {len(at_risk)}")
    if not at_risk.empty:
        print(export_at_risk_csv(at_risk))

    # ------------------------------------------------------------------
    # 5. Consistency checks
    # ------------------------------------------------------------------
    print("\n")
    print("[ 5 ] CONSISTENCY CHECKS")
    print("-" * 40)

    check1 = int(stats["total_shipments"].sum()) == kpis["total_shipments"]
    print(f"\n  [{'PASS' if check1 else 'FAIL'}] Captain totals sum to {kpis['total_shipments']} shipments")

    active = stats[stats["total_shipments"] > 0]
    check2 = ((active["success_rate"] + active["failure_rate"] - 100).abs() < 1e-6).all()
    print(f"  [{'PASS' if check2 else 'FAIL'}] Success + failure rate = 100 for every active captain")

    check3 = int(monthly["shipments"].sum()) == kpis["total_shipments"]
    print(f"  [{'PASS' if check3 else 'FAIL'}] Monthly buckets sum to the global total")

    print("\n" + "=" * 70)
    print("  Run complete.")
    print("=" * 70)


if __name__ == "__main__":
    main()
