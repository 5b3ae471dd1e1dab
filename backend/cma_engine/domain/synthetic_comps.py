from __future__ import annotations

import hashlib
import json
import math
import random
from datetime import date, timedelta
from typing import Optional

from .cma_types import SaleRecord, SubjectCriteria

PRICE_JITTER = 0.15
SQFT_JITTER = 0.20
MIN_SQFT = 500

_STREETS = (
    "Oak St",
    "Maple Ave",
    "Cedar Ln",
    "Pine St",
    "Elm Dr",
    "Willow Way",
    "Birch Rd",
    "Sycamore Ct",
    "Aspen Pl",
    "Juniper Blvd",
)


def criteria_seed(criteria: SubjectCriteria) -> int:
    """Stable seed derived from the subject, so the same subject always gets the same comps."""
    raw = json.dumps(criteria.as_dict(), sort_keys=True, separators=(",", ":"))
    return int(hashlib.sha256(raw.encode("utf-8")).hexdigest()[:16], 16)


def seeded_rng(criteria: SubjectCriteria) -> random.Random:
    return random.Random(criteria_seed(criteria))


def synthesize_sales(
    criteria: SubjectCriteria,
    count: int,
    *,
    as_of: date,
    base_price: int,
    rng: Optional[random.Random] = None,
) -> list[SaleRecord]:
    """
    Plausible sold properties around the subject for zip codes with no usable data.

    bedrooms/bathrooms move by at most one (never below 1), sqft by up to ±20%,
    price is base_price ±15%, sale date within the last year of as_of.
    """
    rng = rng or seeded_rng(criteria)
    out: list[SaleRecord] = []

    for _ in range(max(0, int(count))):
        bedrooms = max(1, int(criteria.bedrooms) + rng.randint(-1, 1))
        bathrooms = max(1, criteria.bathrooms + rng.randint(-1, 1))
        sqft_delta = math.trunc((rng.random() * 2 * SQFT_JITTER - SQFT_JITTER) * criteria.sqft)
        sqft = max(MIN_SQFT, int(criteria.sqft) + sqft_delta)
        price = int(round(base_price * (1 + (rng.random() * 2 * PRICE_JITTER - PRICE_JITTER))))

        out.append(
            SaleRecord(
                address=f"{rng.randint(100, 9999)} {rng.choice(_STREETS)}",
                zip_code=criteria.zip_code,
                sale_price=max(1, price),
                sale_date=as_of - timedelta(days=rng.randint(0, 364)),
                bedrooms=bedrooms,
                bathrooms=bathrooms,
                sqft=sqft,
                year_built=2000 + rng.randint(0, 19),
                lot_size=5000 + rng.randint(0, 4999),
                distance_from_subject=round(rng.random() * 2, 2),
            )
        )

    return out
