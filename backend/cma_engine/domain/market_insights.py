"""
Market insight narratives from quarterly sales buckets.

Pure functions only. Buckets come in any order; everything here works on them
newest-first and emits chart series oldest-first.

Output contract:
  - no buckets -> exactly two default insights (importance 3 and 4)
  - buckets    -> exactly three insights: price_trend (5), sales_volume (4),
                  days_on_market (3)
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence

from .cma_types import QuarterBucket
from .similarity import round_half_up

SAME_PACE_PCT = 5.0


@dataclass(frozen=True)
class InsightDraft:
    insight_type: str
    title: str
    description: str
    data: Optional[dict[str, Any]]
    importance: int


def default_insights() -> list[InsightDraft]:
    return [
        InsightDraft(
            insight_type="price_trend",
            title="Estimated Market Trend",
            description=(
                "Based on regional data, property values in similar areas have increased "
                "approximately 3-5% over the past year."
            ),
            data={"note": "Limited market data available for this area. Insights based on regional trends."},
            importance=3,
        ),
        InsightDraft(
            insight_type="market_conditions",
            title="Current Market Conditions",
            description=(
                "This area appears to have limited recent sales data. For a more accurate "
                "analysis, consult with a local real estate professional."
            ),
            data=None,
            importance=4,
        ),
    ]


def _money(x: float) -> str:
    return f"${round_half_up(x):,}"


def newest_first(buckets: Sequence[QuarterBucket]) -> list[QuarterBucket]:
    return sorted(buckets, key=lambda b: b.sort_key, reverse=True)


def price_trend_description(rows: Sequence[QuarterBucket]) -> str:
    if not rows:
        return "No price trend data available."

    current = rows[0]
    last_year = next(
        (r for r in rows if r.year == current.year - 1 and r.quarter == current.quarter),
        None,
    )

    if last_year is not None and last_year.avg_price:
        pct = (current.avg_price - last_year.avg_price) / last_year.avg_price * 100.0
        direction = "increased" if pct >= 0 else "decreased"
        return (
            f"Home prices have {direction} by {abs(pct):.1f}% compared to the same quarter last year. "
            f"The current median price is {_money(current.median_price)}."
        )

    return f"The current median home price in this area is approximately {_money(current.median_price)}."


def activity_tier(recent_avg: float, overall_avg: float) -> str:
    if recent_avg > overall_avg * 1.2:
        return "highly active"
    if recent_avg > overall_avg * 1.05:
        return "moderately active"
    if recent_avg < overall_avg * 0.8:
        return "slower than average"
    if recent_avg < overall_avg * 0.95:
        return "slightly below average"
    return "neutral"


def activity_description(rows: Sequence[QuarterBucket]) -> str:
    if not rows:
        return "No market activity data available."

    overall_avg = sum(r.sales_volume for r in rows) / len(rows)
    recent = rows[:2]
    recent_avg = sum(r.sales_volume for r in recent) / len(recent)

    status = activity_tier(recent_avg, overall_avg)
    return (
        f"This market is currently {status} with an average of {round_half_up(recent_avg)} "
        "sales per quarter in recent periods."
    )


def _dom(b: QuarterBucket) -> Optional[int]:
    if b.avg_days_on_market is None:
        return None
    return round_half_up(b.avg_days_on_market)


def days_on_market_description(rows: Sequence[QuarterBucket]) -> str:
    if not rows:
        return "No days-on-market data available."

    latest = _dom(rows[0])
    if latest is None:
        return "Days-on-market data is not available for the most recent quarter."

    previous = _dom(rows[1]) if len(rows) > 1 else None
    if not previous:
        return f"Homes in this area are taking an average of {latest} days to sell."

    pct = (latest - previous) / previous * 100.0
    if abs(pct) < SAME_PACE_PCT:
        return (
            "Homes in this area are selling at about the same pace as last quarter, "
            f"with an average of {latest} days on market."
        )

    faster = pct <= 0
    return (
        f"Homes in this area are selling {'faster' if faster else 'slower'} than last quarter, "
        f"with current listings taking an average of {latest} days to sell "
        f"({abs(pct):.0f}% {'decrease' if faster else 'increase'} in time on market)."
    )


def summarize_buckets(buckets: Sequence[QuarterBucket]) -> list[InsightDraft]:
    if not buckets:
        return default_insights()

    rows = newest_first(buckets)
    chrono = list(reversed(rows))

    price_data = [
        {
            "period": b.period,
            "avgPrice": round_half_up(b.avg_price),
            "medianPrice": round_half_up(b.median_price),
        }
        for b in chrono
    ]
    volume_data = [{"period": b.period, "volume": int(b.sales_volume)} for b in chrono]
    dom_data = [{"period": b.period, "daysOnMarket": _dom(b)} for b in chrono]

    return [
        InsightDraft(
            insight_type="price_trend",
            title="Price Trends",
            description=price_trend_description(rows),
            data={"data": price_data},
            importance=5,
        ),
        InsightDraft(
            insight_type="sales_volume",
            title="Market Activity",
            description=activity_description(rows),
            data={"data": volume_data},
            importance=4,
        ),
        InsightDraft(
            insight_type="days_on_market",
            title="Days on Market",
            description=days_on_market_description(rows),
            data={"data": dom_data},
            importance=3,
        ),
    ]
