"""
Simulated data generator for the captain performance dashboard.

Produces a sample shipment fact table used when no spreadsheet has been
uploaded. All values are synthetic.
"""

import numpy as np
import pandas as pd

from .config import RECORD_COLUMNS

# ---------------------------------------------------------------------------
# Sample dimensions
# ---------------------------------------------------------------------------
_COMPANIES = [
    "Aramco",
    "SABIC",
    "STC",
    "Al Rajhi Bank",
    "Almarai",
    "SAMBA",
    "NCB",
    "Mobily",
]

_CAPTAINS = [
    "Ahmed Al-Mansouri",
    "Khalid Al-Zahrani",
    "Mohammed Al-Rashid",
    "Faisal Al-Otaibi",
    "Omar Al-Sudairy",
    "Sultan Al-Harbi",
    "Nasser Al-Qasimi",
    "Saad Al-Dosari",
]

_PACKAGE_CODES = [f"PKG-{n:03d}" for n in range(1, 7)]

# Shipments per row: 10..59 inclusive
_SHIPMENTS_LOW, _SHIPMENTS_HIGH = 10, 60
# Delivered share: uniform in [0.70, 0.95)
_DELIVERED_FLOOR, _DELIVERED_SPREAD = 0.70, 0.25
_FARE_LOW, _FARE_HIGH = 15.0, 45.0


def generate_shipments(
    n_records: int = 500,
    year: int = 2024,
    seed: int | None = 42,
) -> pd.DataFrame:
    """Generate a reproducible sample shipment fact table.

    Parameters
    ----------
    n_records : Number of shipment rows.
    year : Calendar year the dates fall in (uniformly).
    seed : Seed for numpy's default_rng. Same seed, same table.

    Returns
    -------
    DataFrame with the columns of config.RECORD_COLUMNS. failed_shipments is
    always shipments - delivered_shipments.
    """
    rng = np.random.default_rng(seed)

    start = pd.Timestamp(year=year, month=1, day=1)
    n_days = (pd.Timestamp(year=year + 1, month=1, day=1) - start).days

    shipments = rng.integers(_SHIPMENTS_LOW, _SHIPMENTS_HIGH, size=n_records)
    delivered = np.floor(
        shipments * (_DELIVERED_FLOOR + rng.random(n_records) * _DELIVERED_SPREAD)
    ).astype(int)

    df = pd.DataFrame({
        "id": [f"shipment-{i}" for i in range(n_records)],
        "company_name": rng.choice(_COMPANIES, size=n_records),
        "package_code": rng.choice(_PACKAGE_CODES, size=n_records),
        "date": start + pd.to_timedelta(rng.integers(0, n_days, size=n_records), unit="D"),
        "shipments": shipments,
        "package_fare": np.round(rng.uniform(_FARE_LOW, _FARE_HIGH, size=n_records), 2),
        "delivered_shipments": delivered,
        "failed_shipments": shipments - delivered,
        "captain": rng.choice(_CAPTAINS, size=n_records),
    })
    return df.astype(RECORD_COLUMNS)[list(RECORD_COLUMNS)]
