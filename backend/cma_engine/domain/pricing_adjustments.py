from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from .similarity import BATHROOM_ADJUSTMENT, BEDROOM_ADJUSTMENT, round_half_up


@dataclass(frozen=True)
class AdjustmentRule:
    factor: str  # bedroom|bathroom|sqft
    per_unit_value: int
    direction: str  # positive|negative
    description: str


def build_adjustment_rules(comparables: Sequence[Any]) -> list[AdjustmentRule]:
    """
    Per-unit adjustments used to explain a valuation.

    Reference output for display; the aggregator never reads these back.
    """
    if not comparables:
        return []

    avg_ppsf = sum(float(c.price_per_sqft) for c in comparables) / len(comparables)

    return [
        AdjustmentRule(
            factor="bedroom",
            per_unit_value=BEDROOM_ADJUSTMENT,
            direction="positive",
            description="Additional bedroom vs. comparable property",
        ),
        AdjustmentRule(
            factor="bathroom",
            per_unit_value=BATHROOM_ADJUSTMENT,
            direction="positive",
            description="Additional bathroom vs. comparable property",
        ),
        AdjustmentRule(
            factor="sqft",
            per_unit_value=round_half_up(avg_ppsf),
            direction="positive",
            description="Price per additional square foot",
        ),
    ]
