from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional, Sequence

from ..config import settings
from .cma_types import SubjectCriteria, ValuationResult
from .similarity import round_half_up

EMPTY_CONFIDENCE = 0.1

BASE_CONFIDENCE = 0.5
PER_COMP_CONFIDENCE = 0.05
MAX_COUNT_BONUS = 0.3
SIMILARITY_WEIGHT = 0.2
AGE_PENALTY_PER_MONTH = 0.01
MAX_AGE_PENALTY = 0.2


def base_rate_value(subject: SubjectCriteria, price_per_sqft: Optional[int] = None) -> int:
    rate = settings.fallback_price_per_sqft if price_per_sqft is None else price_per_sqft
    return int(subject.sqft) * int(rate)


def _as_date(d: Any) -> date:
    if isinstance(d, datetime):
        return d.date()
    return d


def _mean_age_months(comparables: Sequence[Any], as_of: date) -> float:
    total = 0.0
    for c in comparables:
        age_days = max(0, (as_of - _as_date(c.sale_date)).days)
        total += age_days / 30.0
    return total / len(comparables)


def estimate(
    subject: SubjectCriteria,
    comparables: Sequence[Any],
    *,
    as_of: Optional[date] = None,
    degraded: bool = False,
    price_per_sqft: Optional[int] = None,
    degraded_factor: Optional[float] = None,
) -> ValuationResult:
    """
    Similarity-weighted value estimate plus a confidence score.

    Pure: the result depends only on the arguments (as_of defaults to today, so
    pass it explicitly when repeatability across days matters).

    comparables: anything with adjusted_price, similarity and sale_date.
    degraded: the comparables were synthesized; confidence is scaled down so it
    always lands below BASE_CONFIDENCE.
    """
    if not comparables:
        return ValuationResult(
            estimated_value=base_rate_value(subject, price_per_sqft),
            confidence_score=EMPTY_CONFIDENCE,
        )

    as_of = as_of or datetime.utcnow().date()

    weighted_sum = 0.0
    weight_sum = 0.0
    for c in comparables:
        w = float(c.similarity)
        weighted_sum += float(c.adjusted_price) * w
        weight_sum += w

    if weight_sum > 0:
        estimated_value = round_half_up(weighted_sum / weight_sum)
    else:
        # every comp scored 0: adjusted prices carry no usable signal
        estimated_value = base_rate_value(subject, price_per_sqft)

    n = len(comparables)
    mean_similarity = weight_sum / n

    confidence = BASE_CONFIDENCE
    confidence += min(MAX_COUNT_BONUS, n * PER_COMP_CONFIDENCE)
    confidence += mean_similarity * SIMILARITY_WEIGHT
    confidence -= min(MAX_AGE_PENALTY, _mean_age_months(comparables, as_of) * AGE_PENALTY_PER_MONTH)
    confidence = max(0.0, min(1.0, confidence))

    if degraded:
        factor = settings.synthetic_confidence_factor if degraded_factor is None else degraded_factor
        confidence = max(0.0, min(1.0, confidence * float(factor)))

    return ValuationResult(estimated_value=estimated_value, confidence_score=confidence)
