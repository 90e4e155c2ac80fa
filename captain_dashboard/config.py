"""
Configuration: column aliases, scoring and risk schemes, bucket edges, constants.

SCORING_SCHEMES maps each versioned scheme name to the weights used by
scoring.score_performance. RiskConfig carries the at-risk threshold, the
risk-score weights and the recommendation bands.
"""

from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Record schema
# ---------------------------------------------------------------------------
# Filter value meaning "no restriction"
ALL = "all"

DEFAULT_CAPTAIN = "Unknown"

RECORD_COLUMNS: dict[str, str] = {
    "id": "object",
    "company_name": "object",
    "package_code": "object",
    "date": "datetime64[ns]",
    "shipments": "int64",
    "package_fare": "float64",
    "delivered_shipments": "int64",
    "failed_shipments": "int64",
    "captain": "object",
}

COUNT_COLUMNS = ("shipments", "delivered_shipments", "failed_shipments")

# Spreadsheet header aliases, compared after snake_case normalisation.
# First alias with a value wins for each row.
COLUMN_ALIASES: dict[str, list[str]] = {
    "id": ["id", "shipment_id"],
    "company_name": ["company_name", "company"],
    "package_code": ["package_code", "package"],
    "date": ["date", "shipment_date"],
    "shipments": ["shipments", "number_of_shipments"],
    "package_fare": ["package_fare", "fare"],
    "delivered_shipments": ["delivered_shipments", "delivered"],
    "failed_shipments": ["failed_shipments", "failed"],
    "captain": ["captain", "captain_name", "driver"],
}

# Tried in order; day-first D-M-YYYY only applies to dash-separated values
DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%d-%m-%Y")

EXCEL_EPOCH = "1899-12-30"

# External (JSON) field names for the record shape
EXTERNAL_FIELD_NAMES: dict[str, str] = {
    "id": "id",
    "company_name": "companyName",
    "package_code": "packageCode",
    "date": "date",
    "shipments": "shipments",
    "package_fare": "packageFare",
    "delivered_shipments": "deliveredShipments",
    "failed_shipments": "failedShipments",
    "captain": "captain",
}

# ---------------------------------------------------------------------------
# Performance scoring
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class ScoringWeights:
    version: str
    success_weight: float = 0.0
    volume_weight: float = 0.0
    consistency_weight: float = 0.0
    companies_weight: float = 0.0
    packages_weight: float = 0.0
    window_days: int | None = None


SCORING_SCHEMES: dict[str, ScoringWeights] = {
    "v1-diversity": ScoringWeights(
        version="v1-diversity",
        success_weight=0.40,
        volume_weight=0.30,
        companies_weight=0.20,
        packages_weight=0.10,
    ),
    "v2-consistency": ScoringWeights(
        version="v2-consistency",
        success_weight=0.50,
        volume_weight=0.35,
        consistency_weight=0.15,
    ),
    "v3-recent-volume": ScoringWeights(
        version="v3-recent-volume",
        success_weight=0.60,
        volume_weight=0.40,
        window_days=90,
    ),
}

DEFAULT_SCORING_SCHEME = "v2-consistency"

# (minimum success rate, consistency score), highest first.
# Coarse stand-in until day-level variance is tracked.
CONSISTENCY_STEPS: tuple[tuple[float, float], ...] = (
    (90.0, 95.0),
    (85.0, 80.0),
    (80.0, 65.0),
)
CONSISTENCY_FLOOR = 50.0


def get_scoring_scheme(name: str | None = None) -> ScoringWeights:
    """Return the registered scheme, or the default when name is None."""
    key = name or DEFAULT_SCORING_SCHEME
    if key not in SCORING_SCHEMES:
        raise ValueError(
            f"Unknown scoring scheme: {key!r} (expected one of {sorted(SCORING_SCHEMES)})"
        )
    return SCORING_SCHEMES[key]


# ---------------------------------------------------------------------------
# Risk scoring
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class RiskConfig:
    max_success_rate: float = 70.0
    low_activity_threshold: int = 10
    low_activity_penalty: float = 20.0
    success_weight: float = 0.5
    failure_weight: float = 0.3
    activity_weight: float = 0.2
    # (exclusive lower bound, action), highest first
    bands: tuple[tuple[float, str], ...] = (
        (60.0, "Stop Account"),
        (40.0, "Immediate Retraining"),
    )
    default_action: str = "Performance Review"


DEFAULT_RISK_CONFIG = RiskConfig()

# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------
# (label, lower bound inclusive, upper bound exclusive)
SUCCESS_RATE_BUCKETS: tuple[tuple[str, float | None, float | None], ...] = (
    ("90%+", 90.0, None),
    ("80-89%", 80.0, 90.0),
    ("70-79%", 70.0, 80.0),
    ("<70%", None, 70.0),
)

# (minimum success rate, band label), highest first
SUCCESS_RATE_BANDS: tuple[tuple[float, str], ...] = (
    (90.0, "Excellent"),
    (80.0, "Good"),
)
SUCCESS_RATE_FLOOR_BAND = "Needs Improvement"

HIGH_RISK_FAILURE_RATE = 20.0

TOP_CAPTAINS_LIMIT = 10
HIGH_FAILURE_MIN_SHIPMENTS = 200
HIGH_FAILURE_LIMIT = 8
TRAILING_WINDOWS = (7, 30)
DEFAULT_TARGET_COUNT = 80

# Shown by the driver-management page next to the ranked lists
TOP_PERFORMER_CRITERIA: dict[str, str] = {
    "success_rate": "Percentage of successfully delivered shipments",
    "volume": "Total number of shipments processed",
    "consistency": "Stability of the success rate",
    "companies_served": "Number of different companies served",
    "packages_handled": "Number of distinct package codes handled",
}

RISK_FACTORS: dict[str, str] = {
    "Low Success Rate": "Success rate at or below the configured threshold",
    "High Failure Count": "Share of shipments marked as failed",
    "Low Activity": "Fewer shipments than the low-activity threshold",
}

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
DASHBOARD_TITLE = "Captain Performance Dashboard"
