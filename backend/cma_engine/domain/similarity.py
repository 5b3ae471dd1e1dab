from __future__ import annotations

import math
from typing import Any

from .cma_types import SubjectCriteria

BEDROOM_ADJUSTMENT = 10_000
BATHROOM_ADJUSTMENT = 7_500

BEDROOM_PENALTY = 0.1
BATHROOM_PENALTY = 0.1
SQFT_PENALTY = 0.5
DECADE_PENALTY = 0.05


def round_half_up(x: float) -> int:
    return int(math.floor(float(x) + 0.5))


def _clamp01(x: float) -> float:
    return max(0.0, min(1.0, float(x)))


def score(subject: SubjectCriteria, comp: Any) -> float:
    """
    Similarity of a comparable to the subject, in [0, 1].

    Works on anything with bedrooms/bathrooms/sqft/year_built (SaleRecord or a
    persisted CmaComparable row).
    """
    s = 1.0

    s -= abs(float(subject.bedrooms) - float(comp.bedrooms)) * BEDROOM_PENALTY
    s -= abs(float(subject.bathrooms) - float(comp.bathrooms)) * BATHROOM_PENALTY

    if subject.sqft:
        s -= (abs(float(subject.sqft) - float(comp.sqft)) / float(subject.sqft)) * SQFT_PENALTY

    comp_year = getattr(comp, "year_built", None)
    if subject.year_built and comp_year:
        decades = abs(int(subject.year_built) - int(comp_year)) / 10.0
        s -= decades * DECADE_PENALTY

    return _clamp01(s)


def adjust(subject: SubjectCriteria, comp: Any) -> int:
    """
    What the comparable would have sold for with the subject's bed/bath/sqft profile.

    Unbounded on purpose: poorly matched comps get low similarity weight instead.
    """
    adjustments = 0.0
    adjustments += (float(subject.bedrooms) - float(comp.bedrooms)) * BEDROOM_ADJUSTMENT
    adjustments += (float(subject.bathrooms) - float(comp.bathrooms)) * BATHROOM_ADJUSTMENT
    adjustments += (float(subject.sqft) - float(comp.sqft)) * float(comp.price_per_sqft)
    return round_half_up(float(comp.sale_price) + adjustments)
