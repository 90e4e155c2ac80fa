"""
Ranking and scoring over per-captain stats.

Performance score (higher is better) is a weighted blend of sub-scores,
each on a 0-100 scale:
    success_score     = success_rate
    volume_score      = 100 * total_shipments / max(total_shipments)
    consistency_score = step function of success_rate
    companies_score   = 100 * companies_served / max(companies_served)
    packages_score    = 100 * packages_handled / max(packages_handled)
Normalisation runs over the population passed in, i.e. the currently
filtered captains. The weights come from a ScoringWeights scheme.

Risk score (higher is worse) flags captains for intervention:
    0.5 * (100 - success_rate)
  + 0.3 * (100 * failed / max(total_shipments, 1))
  + 0.2 * penalty   (penalty when total_shipments < low-activity threshold)

Both rankings order by score desc, then total_shipments desc, then captain
name asc.
"""

import logging

import pandas as pd

from .config import (
    CONSISTENCY_FLOOR,
    CONSISTENCY_STEPS,
    DEFAULT_RISK_CONFIG,
    RiskConfig,
    ScoringWeights,
    get_scoring_scheme,
)

logger = logging.getLogger(__name__)

SUB_SCORES = {
    "success_score": "success_weight",
    "volume_score": "volume_weight",
    "consistency_score": "consistency_weight",
    "companies_score": "companies_weight",
    "packages_score": "packages_weight",
}


def consistency_score(success_rate: float) -> float:
    for floor, score in CONSISTENCY_STEPS:
        if success_rate >= floor:
            return score
    return CONSISTENCY_FLOOR


def _normalise(values: pd.Series) -> pd.Series:
    """100 * x / max(x) over the population; all zero when max <= 0."""
    top = values.max() if len(values) else 0
    if pd.isna(top) or top <= 0:
        return pd.Series(0.0, index=values.index)
    return values.astype(float) / float(top) * 100.0


def _ranked(scored: pd.DataFrame, score_col: str) -> pd.DataFrame:
    ordered = scored.sort_values(
        [score_col, "total_shipments", "captain"],
        ascending=[False, False, True],
        kind="mergesort",
    ).reset_index(drop=True)
    ordered.insert(0, "rank", range(1, len(ordered) + 1))
    return ordered


def score_performance(
    stats: pd.DataFrame,
    weights: ScoringWeights | str | None = None,
) -> pd.DataFrame:
    """Add the sub-scores and the weighted performance_score to a copy of stats.

    Parameters
    ----------
    stats : Per-captain stats (kpis.compute_captain_stats).
    weights : ScoringWeights, a registered scheme name, or None for the
        default scheme.
    """
    if not isinstance(weights, ScoringWeights):
        weights = get_scoring_scheme(weights)

    scored = stats.copy()
    scored["success_score"] = scored["success_rate"].astype(float)
    scored["volume_score"] = _normalise(scored["total_shipments"])
    scored["consistency_score"] = scored["success_rate"].map(consistency_score).astype(float)
    scored["companies_score"] = _normalise(scored["companies_served"])
    scored["packages_score"] = _normalise(scored["packages_handled"])

    scored["performance_score"] = 0.0
    for column, weight_name in SUB_SCORES.items():
        scored["performance_score"] += scored[column] * getattr(weights, weight_name)
    return scored


def rank_top_performers(
    stats: pd.DataFrame,
    weights: ScoringWeights | str | None = None,
    limit: int | None = None,
) -> pd.DataFrame:
    """Score and rank captains, best first, with a 1-based rank column."""
    ranked = _ranked(score_performance(stats, weights), "performance_score")
    if limit is not None:
        ranked = ranked.head(limit)
    return ranked


def risk_scores(stats: pd.DataFrame, config: RiskConfig = DEFAULT_RISK_CONFIG) -> pd.Series:
    total = stats["total_shipments"].astype(float)
    failure_ratio = stats["failed"].astype(float) / total.clip(lower=1) * 100.0
    penalty = (total < config.low_activity_threshold).astype(float) * config.low_activity_penalty
    return (
        config.success_weight * (100.0 - stats["success_rate"].astype(float))
        + config.failure_weight * failure_ratio
        + config.activity_weight * penalty
    )


def recommend_action(risk_score: float, config: RiskConfig = DEFAULT_RISK_CONFIG) -> str:
    """First band whose lower bound the score exceeds, else the default action."""
    for lower, action in config.bands:
        if risk_score > lower:
            return action
    return config.default_action


def rank_at_risk_drivers(
    stats: pd.DataFrame,
    max_success_rate: float | None = None,
    config: RiskConfig | None = None,
) -> pd.DataFrame:
    """Captains with shipments and success_rate <= threshold, worst first.

    Adds risk_score, recommended_action and a 1-based rank column. The
    threshold defaults to config.max_success_rate.
    """
    config = config or DEFAULT_RISK_CONFIG
    threshold = config.max_success_rate if max_success_rate is None else max_success_rate

    at_risk = stats[(stats["total_shipments"] > 0) & (stats["success_rate"] <= threshold)].copy()
    at_risk["risk_score"] = risk_scores(at_risk, config)
    at_risk["recommended_action"] = [recommend_action(s, config) for s in at_risk["risk_score"]]

    logger.info("%d of %d captains at or below %.1f%% success", len(at_risk), len(stats), threshold)
    return _ranked(at_risk, "risk_score")


def sort_leaderboard(stats: pd.DataFrame, field: str, ascending: bool = True) -> pd.DataFrame:
    """Stable sort on any stats column; equal keys keep their prior order."""
    if field not in stats.columns:
        raise ValueError(f"Unknown sort field: {field!r}")
    return stats.sort_values(field, ascending=ascending, kind="mergesort")


def driver_rank(stats: pd.DataFrame, captain: str) -> dict:
    """1-based position by success_rate desc, captain name asc."""
    ordered = stats.sort_values(
        ["success_rate", "captain"], ascending=[False, True], kind="mergesort"
    )
    names = ordered["captain"].tolist()
    rank = names.index(captain) + 1 if captain in names else None
    return {"rank": rank, "total_drivers": len(names)}
