# backend/tests/test_cma_report_lifecycle.py
from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest
from sqlalchemy import delete

from cma_engine.clients.sales_history_db import DbSalesHistorySource
from cma_engine.db import engine
from cma_engine.domain.cma_types import SubjectCriteria
from cma_engine.errors import ReportNotFound, ReportStateError
from cma_engine.models import CmaComparable, CmaMarketInsight, CmaPricingAdjustment, CmaReport
from cma_engine.services.cma_report_service import (
    CmaReportOrchestrator,
    delete_report,
    get_complete_report,
    get_report,
    list_user_reports,
    reap_stale_reports,
    transition,
)

from conftest import FakeSalesSource, make_report, make_sale

AS_OF = date(2024, 6, 30)


class ExplodingProvider:
    def find_comparables(self, db, **kwargs):
        raise RuntimeError("comparables backend exploded")


def test_generate_happy_path(db, subject):
    source = FakeSalesSource(
        sales=[make_sale(), make_sale(address="2 Oak St", sale_price=520_000)],
        buckets=[],
    )

    report = CmaReportOrchestrator(source).generate(db, user_id=7, criteria=subject, as_of=AS_OF)

    assert report.status == "generated"
    assert report.estimated_value == 510_000
    # 0.5 + 2*0.05 + 0.2*1.0 - 2 months * 0.01
    assert report.confidence_score == pytest.approx(0.78)

    full = get_complete_report(db, report.id)
    assert len(full.comparables) == 2
    assert [a.factor for a in full.pricing_adjustments] == ["bedroom", "bathroom", "sqft"]
    assert full.pricing_adjustments[2].per_unit_value == 255
    assert len(full.insights) == 2


def test_zip_without_sales_history_uses_synthetic_comps(db):
    subject = SubjectCriteria(
        zip_code="90210", property_type="single_family", bedrooms=3, bathrooms=2.0, sqft=2000
    )

    report = CmaReportOrchestrator(DbSalesHistorySource()).generate(
        db, user_id=1, criteria=subject, max_comparables=6, as_of=AS_OF
    )

    assert report.status == "generated"
    assert report.confidence_score < 0.5
    assert 300_000 < report.estimated_value < 760_000

    full = get_complete_report(db, report.id)
    assert len(full.comparables) == 6
    assert all(1600 <= c.sqft <= 2399 for c in full.comparables)
    assert all(c.zip_code == "90210" for c in full.comparables)
    assert [i.importance for i in full.insights] == [4, 3]


def test_pipeline_failure_marks_report_error_and_reraises(db, subject):
    orchestrator = CmaReportOrchestrator(FakeSalesSource(), provider=ExplodingProvider())

    with pytest.raises(RuntimeError, match="exploded"):
        orchestrator.generate(db, user_id=3, criteria=subject, as_of=AS_OF)

    rows = db.query(CmaReport).filter(CmaReport.user_id == 3).all()
    assert len(rows) == 1
    assert rows[0].status == "error"
    assert "exploded" in rows[0].error_message
    assert db.query(CmaComparable).count() == 0


class ReportDeletingProvider:
    """Removes the report row behind the session's back, then fails."""

    def find_comparables(self, db, *, report_id, **kwargs):
        with engine.begin() as conn:
            conn.execute(delete(CmaReport.__table__).where(CmaReport.__table__.c.id == report_id))
        raise RuntimeError("lost the comparables backend")


def test_pipeline_error_survives_unreadable_report(db, subject):
    orchestrator = CmaReportOrchestrator(FakeSalesSource(), provider=ReportDeletingProvider())

    with pytest.raises(RuntimeError, match="lost the comparables backend"):
        orchestrator.generate(db, user_id=4, criteria=subject, as_of=AS_OF)

    assert db.query(CmaReport).filter(CmaReport.user_id == 4).count() == 0


def test_insight_failure_does_not_fail_the_report(db, subject):
    source = FakeSalesSource(sales=[make_sale()], fail_buckets=True)

    report = CmaReportOrchestrator(source).generate(db, user_id=1, criteria=subject, as_of=AS_OF)

    assert report.status == "generated"
    insights = db.query(CmaMarketInsight).filter(CmaMarketInsight.cma_report_id == report.id).all()
    assert sorted(i.insight_type for i in insights) == ["market_conditions", "price_trend"]


def test_terminal_states_cannot_move(db, subject):
    report = make_report(db, subject, status="generated")
    with pytest.raises(ReportStateError):
        transition(report, "error")
    with pytest.raises(ReportStateError):
        transition(report, "processing")

    report = make_report(db, subject)
    transition(report, "generated")
    assert report.status == "generated"


def test_reap_stale_reports(db, subject):
    old = make_report(db, subject)
    old.last_updated = datetime.utcnow() - timedelta(hours=2)
    fresh = make_report(db, subject)
    done = make_report(db, subject, status="generated")
    done.last_updated = datetime.utcnow() - timedelta(hours=2)
    db.commit()

    assert reap_stale_reports(db, older_than_minutes=30) == 1

    db.expire_all()
    assert get_report(db, old.id).status == "error"
    assert "stale" in get_report(db, old.id).error_message
    assert get_report(db, fresh.id).status == "processing"
    assert get_report(db, done.id).status == "generated"


def test_user_reports_newest_first(db, subject):
    first = make_report(db, subject, user_id=42)
    first.report_date = datetime(2024, 1, 1)
    second = make_report(db, subject, user_id=42)
    second.report_date = datetime(2024, 2, 1)
    make_report(db, subject, user_id=43)
    db.commit()

    ids = [r.id for r in list_user_reports(db, 42)]
    assert ids == [second.id, first.id]
    assert list_user_reports(db, 999) == []


def test_delete_removes_children(db, subject):
    source = FakeSalesSource(sales=[make_sale(), make_sale(address="9 Pine St")])
    report = CmaReportOrchestrator(source).generate(db, user_id=1, criteria=subject, as_of=AS_OF)
    report_id = report.id

    delete_report(db, report_id)

    with pytest.raises(ReportNotFound):
        get_report(db, report_id)
    assert db.query(CmaComparable).filter(CmaComparable.cma_report_id == report_id).count() == 0
    assert db.query(CmaMarketInsight).filter(CmaMarketInsight.cma_report_id == report_id).count() == 0
    assert db.query(CmaPricingAdjustment).filter(CmaPricingAdjustment.cma_report_id == report_id).count() == 0
