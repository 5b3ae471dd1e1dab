# backend/tests/test_market_insights.py
from __future__ import annotations

from datetime import date

from cma_engine.clients.sales_history_db import bucket_by_quarter
from cma_engine.domain.cma_types import QuarterBucket
from cma_engine.domain.market_insights import (
    activity_tier,
    days_on_market_description,
    price_trend_description,
    summarize_buckets,
)
from cma_engine.models import CmaMarketInsight
from cma_engine.services.market_insights_service import MarketInsightSummarizer

from conftest import FakeSalesSource, make_report


def _b(year, quarter, avg, volume=10, dom=None, median=None) -> QuarterBucket:
    return QuarterBucket(
        year=year,
        quarter=quarter,
        avg_price=avg,
        median_price=median if median is not None else avg,
        sales_volume=volume,
        avg_days_on_market=dom,
    )


BUCKETS = [
    _b(2023, 2, 300_000, volume=10, dom=30),
    _b(2024, 1, 320_000, volume=11, dom=28),
    _b(2024, 2, 330_000, volume=12, dom=20, median=325_000),
    _b(2023, 3, 305_000, volume=9, dom=31),
]


def test_no_buckets_gives_two_defaults():
    drafts = summarize_buckets([])
    assert [d.insight_type for d in drafts] == ["price_trend", "market_conditions"]
    assert [d.importance for d in drafts] == [3, 4]


def test_buckets_give_three_insights_with_oldest_first_series():
    drafts = summarize_buckets(BUCKETS)

    assert [(d.insight_type, d.importance) for d in drafts] == [
        ("price_trend", 5),
        ("sales_volume", 4),
        ("days_on_market", 3),
    ]
    periods = [p["period"] for p in drafts[0].data["data"]]
    assert periods == ["2023 Q2", "2023 Q3", "2024 Q1", "2024 Q2"]
    assert drafts[1].data["data"][-1] == {"period": "2024 Q2", "volume": 12}
    assert drafts[2].data["data"][0] == {"period": "2023 Q2", "daysOnMarket": 30}


def test_price_trend_compares_same_quarter_last_year():
    rows = sorted(BUCKETS, key=lambda b: b.sort_key, reverse=True)
    text = price_trend_description(rows)
    assert "increased by 10.0%" in text
    assert "$325,000" in text


def test_price_trend_without_last_year_reports_median():
    text = price_trend_description([_b(2024, 2, 330_000, median=325_000), _b(2024, 1, 320_000)])
    assert text == "The current median home price in this area is approximately $325,000."


def test_price_decrease_wording():
    text = price_trend_description([_b(2024, 2, 270_000), _b(2023, 2, 300_000)])
    assert "decreased by 10.0%" in text


def test_activity_tiers():
    assert activity_tier(13, 10) == "highly active"
    assert activity_tier(11, 10) == "moderately active"
    assert activity_tier(10, 10) == "neutral"
    assert activity_tier(9, 10) == "slightly below average"
    assert activity_tier(7, 10) == "slower than average"


def test_days_on_market_wording():
    same = days_on_market_description([_b(2024, 2, 1, dom=30), _b(2024, 1, 1, dom=31)])
    assert "about the same pace" in same

    faster = days_on_market_description([_b(2024, 2, 1, dom=20), _b(2024, 1, 1, dom=28)])
    assert "selling faster" in faster
    assert "29% decrease" in faster

    slower = days_on_market_description([_b(2024, 2, 1, dom=40), _b(2024, 1, 1, dom=20)])
    assert "selling slower" in slower

    only_one = days_on_market_description([_b(2024, 2, 1, dom=25)])
    assert only_one == "Homes in this area are taking an average of 25 days to sell."


def test_bucket_by_quarter_groups_and_orders():
    buckets = bucket_by_quarter(
        [
            (date(2024, 1, 5), 100, 10),
            (date(2024, 2, 5), 300, None),
            (date(2024, 3, 5), 200, 30),
            (date(2024, 4, 1), 500, 5),
        ]
    )
    assert [(b.year, b.quarter) for b in buckets] == [(2024, 2), (2024, 1)]
    q1 = buckets[1]
    assert q1.sales_volume == 3
    assert q1.avg_price == 200
    assert q1.median_price == 200
    assert q1.avg_days_on_market == 20


def test_summarizer_persists_defaults_when_trend_source_fails(db, subject):
    report_id = make_report(db, subject).id
    rows = MarketInsightSummarizer(FakeSalesSource(fail_buckets=True)).summarize(
        db, report_id=report_id, criteria=subject, as_of=date(2024, 6, 30)
    )
    db.commit()

    assert len(rows) == 2
    stored = db.query(CmaMarketInsight).filter(CmaMarketInsight.cma_report_id == report_id).all()
    assert sorted(r.importance for r in stored) == [3, 4]
