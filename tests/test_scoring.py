import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pandas as pd

from captain_dashboard.config import RiskConfig, ScoringWeights, get_scoring_scheme
from captain_dashboard.kpis import STATS_COLUMNS
from captain_dashboard.scoring import (
    consistency_score,
    driver_rank,
    rank_at_risk_drivers,
    rank_top_performers,
    recommend_action,
    score_performance,
    sort_leaderboard,
)


def make_stats(*rows: dict) -> pd.DataFrame:
    """Captain stats rows; rates derived from the counts unless given."""
    out = []
    for row in rows:
        total = row.get("total_shipments", 0)
        delivered = row.get("delivered", 0)
        failed = row.get("failed", total - delivered)
        out.append({
            "captain": row["captain"],
            "total_shipments": total,
            "delivered": delivered,
            "failed": failed,
            "total_cost": 0.0,
            "success_rate": row.get("success_rate", 100.0 * delivered / total if total else 0.0),
            "failure_rate": row.get("failure_rate", 100.0 * failed / total if total else 0.0),
            "cost_per_delivered": 0.0,
            "companies_served": row.get("companies_served", 1),
            "packages_handled": row.get("packages_handled", 1),
        })
    return pd.DataFrame(out, columns=STATS_COLUMNS)


class SchemeTests(unittest.TestCase):
    def test_default_and_unknown_scheme(self) -> None:
        self.assertEqual(get_scoring_scheme().version, "v2-consistency")
        with self.assertRaises(ValueError):
            get_scoring_scheme("v9")
        with self.assertRaises(ValueError):
            rank_top_performers(make_stats({"captain": "A", "total_shipments": 1}), "v9")

    def test_consistency_steps(self) -> None:
        self.assertEqual(consistency_score(90.0), 95.0)
        self.assertEqual(consistency_score(89.9), 80.0)
        self.assertEqual(consistency_score(85.0), 80.0)
        self.assertEqual(consistency_score(80.0), 65.0)
        self.assertEqual(consistency_score(79.9), 50.0)


class PerformanceScoreTests(unittest.TestCase):
    def test_volume_against_success_exact_composites(self) -> None:
        stats = make_stats(
            {"captain": "A", "total_shipments": 100, "delivered": 90},
            {"captain": "B", "total_shipments": 50, "delivered": 47, "success_rate": 95.0},
        )
        ranked = rank_top_performers(stats, "v2-consistency").set_index("captain")

        self.assertAlmostEqual(ranked.loc["A", "volume_score"], 100.0)
        self.assertAlmostEqual(ranked.loc["B", "volume_score"], 50.0)
        # 0.5 * 90 + 0.35 * 100 + 0.15 * 95
        self.assertAlmostEqual(ranked.loc["A", "performance_score"], 94.25)
        # 0.5 * 95 + 0.35 * 50 + 0.15 * 95
        self.assertAlmostEqual(ranked.loc["B", "performance_score"], 79.25)
        self.assertEqual(ranked.loc["A", "rank"], 1)
        self.assertEqual(ranked.loc["B", "rank"], 2)

    def test_diversity_scheme_normalises_counts(self) -> None:
        stats = make_stats(
            {"captain": "A", "total_shipments": 100, "delivered": 90, "companies_served": 4, "packages_handled": 3},
            {"captain": "B", "total_shipments": 50, "delivered": 47, "success_rate": 95.0,
             "companies_served": 2, "packages_handled": 3},
        )
        scored = score_performance(stats, "v1-diversity").set_index("captain")
        self.assertAlmostEqual(scored.loc["A", "performance_score"], 36 + 30 + 20 + 10)
        self.assertAlmostEqual(scored.loc["B", "performance_score"], 38 + 15 + 10 + 10)

    def test_zero_volume_population(self) -> None:
        stats = make_stats({"captain": "A"}, {"captain": "B"})
        scored = score_performance(stats)
        self.assertEqual(scored["volume_score"].tolist(), [0.0, 0.0])
        self.assertFalse(scored["performance_score"].isna().any())

    def test_input_is_not_mutated(self) -> None:
        stats = make_stats({"captain": "A", "total_shipments": 10, "delivered": 9})
        before = stats.copy()
        rank_top_performers(stats)
        pd.testing.assert_frame_equal(stats, before)

    def test_tie_breaks_volume_then_name(self) -> None:
        success_only = ScoringWeights(version="success-only", success_weight=1.0)
        stats = make_stats(
            {"captain": "Zed", "total_shipments": 50, "delivered": 45},
            {"captain": "Bob", "total_shipments": 100, "delivered": 90},
            {"captain": "Amy", "total_shipments": 50, "delivered": 45},
        )
        ranked = rank_top_performers(stats, success_only)
        self.assertEqual(ranked["captain"].tolist(), ["Bob", "Amy", "Zed"])
        self.assertEqual(ranked["rank"].tolist(), [1, 2, 3])

    def test_ranking_is_deterministic_and_limited(self) -> None:
        stats = make_stats(*[
            {"captain": f"C{i}", "total_shipments": 10 + i % 3, "delivered": 8 + i % 2}
            for i in range(12)
        ])
        first = rank_top_performers(stats)
        for _ in range(3):
            pd.testing.assert_frame_equal(rank_top_performers(stats), first)
        self.assertEqual(len(rank_top_performers(stats, limit=5)), 5)


class RiskScoreTests(unittest.TestCase):
    def test_risk_score_and_action(self) -> None:
        stats = make_stats(
            {"captain": "Mid", "total_shipments": 100, "delivered": 60, "failed": 40},
            {"captain": "Tiny", "total_shipments": 5, "delivered": 1, "failed": 4},
        )
        ranked = rank_at_risk_drivers(stats).set_index("captain")

        # 0.5 * 40 + 0.3 * 40
        self.assertAlmostEqual(ranked.loc["Mid", "risk_score"], 32.0)
        self.assertEqual(ranked.loc["Mid", "recommended_action"], "Performance Review")
        # 0.5 * 80 + 0.3 * 80 + 0.2 * 20
        self.assertAlmostEqual(ranked.loc["Tiny", "risk_score"], 68.0)
        self.assertEqual(ranked.loc["Tiny", "recommended_action"], "Stop Account")
        self.assertEqual(ranked.loc["Tiny", "rank"], 1)

    def test_threshold_is_inclusive(self) -> None:
        stats = make_stats(
            {"captain": "AtThreshold", "total_shipments": 100, "delivered": 70},
            {"captain": "Above", "total_shipments": 1000, "delivered": 701},
            {"captain": "Idle"},
        )
        ranked = rank_at_risk_drivers(stats, max_success_rate=70)
        self.assertEqual(ranked["captain"].tolist(), ["AtThreshold"])

        ranked = rank_at_risk_drivers(stats, max_success_rate=69.9)
        self.assertTrue(ranked.empty)

    def test_threshold_defaults_to_config(self) -> None:
        stats = make_stats({"captain": "A", "total_shipments": 100, "delivered": 80})
        self.assertTrue(rank_at_risk_drivers(stats).empty)
        config = RiskConfig(max_success_rate=85.0)
        self.assertEqual(len(rank_at_risk_drivers(stats, config=config)), 1)

    def test_action_bands_use_exclusive_lower_bounds(self) -> None:
        self.assertEqual(recommend_action(60.01), "Stop Account")
        self.assertEqual(recommend_action(60.0), "Immediate Retraining")
        self.assertEqual(recommend_action(40.01), "Immediate Retraining")
        self.assertEqual(recommend_action(40.0), "Performance Review")
        self.assertEqual(recommend_action(0.0), "Performance Review")

    def test_bands_are_configurable(self) -> None:
        config = RiskConfig(bands=((50.0, "Suspend"),), default_action="Coach")
        self.assertEqual(recommend_action(51.0, config), "Suspend")
        self.assertEqual(recommend_action(45.0, config), "Coach")


class LeaderboardTests(unittest.TestCase):
    def setUp(self) -> None:
        self.stats = make_stats(
            {"captain": "D", "total_shipments": 10, "delivered": 9},
            {"captain": "A", "total_shipments": 20, "delivered": 18},
            {"captain": "C", "total_shipments": 10, "delivered": 5},
            {"captain": "B", "total_shipments": 20, "delivered": 10},
        )

    def test_stable_sort_keeps_equal_key_order(self) -> None:
        desc = sort_leaderboard(self.stats, "total_shipments", ascending=False)
        self.assertEqual(desc["captain"].tolist(), ["A", "B", "D", "C"])

        toggled = sort_leaderboard(
            sort_leaderboard(desc, "total_shipments", ascending=True),
            "total_shipments",
            ascending=False,
        )
        self.assertEqual(toggled["captain"].tolist(), desc["captain"].tolist())

    def test_unknown_field(self) -> None:
        with self.assertRaises(ValueError):
            sort_leaderboard(self.stats, "speed")

    def test_driver_rank(self) -> None:
        # A and D tie at 90%, name breaks the tie
        self.assertEqual(driver_rank(self.stats, "A"), {"rank": 1, "total_drivers": 4})
        self.assertEqual(driver_rank(self.stats, "D"), {"rank": 2, "total_drivers": 4})
        self.assertEqual(driver_rank(self.stats, "Nobody"), {"rank": None, "total_drivers": 4})


if __name__ == "__main__":
    unittest.main()
