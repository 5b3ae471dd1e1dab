# backend/cma_engine/services/cma_report_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..clients.sales_history import SalesHistorySource
from ..config import settings
from ..domain.cma_types import SubjectCriteria
from ..domain.pricing_adjustments import build_adjustment_rules
from ..domain.valuation import estimate
from ..errors import ReportNotFound, ReportStateError
from ..models import CmaComparable, CmaMarketInsight, CmaPricingAdjustment, CmaReport
from .comparables_service import ComparableSalesProvider
from .market_insights_service import MarketInsightSummarizer

log = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Report lifecycle
# -----------------------------------------------------------------------------
#   processing -> generated   (pipeline finished)
#   processing -> error       (pipeline raised, or reaped as stale)
# Both targets are terminal. A failed report is never retried in place.
# -----------------------------------------------------------------------------

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "processing": frozenset({"generated", "error"}),
    "generated": frozenset(),
    "error": frozenset(),
}

MAX_ERROR_MESSAGE = 2000


def _utcnow() -> datetime:
    return datetime.utcnow()


def transition(report: CmaReport, new_status: str, *, now: Optional[datetime] = None) -> None:
    current = report.status or "processing"
    if new_status not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        raise ReportStateError(report.id, current, new_status)
    report.status = new_status
    report.last_updated = now or _utcnow()


def _log_extra(report: CmaReport) -> dict:
    return {"report_id": report.id, "user_id": report.user_id}


@dataclass(frozen=True)
class CompleteReport:
    report: CmaReport
    comparables: list[CmaComparable]
    insights: list[CmaMarketInsight]
    pricing_adjustments: list[CmaPricingAdjustment]


class CmaReportOrchestrator:
    """
    Runs one CMA generation end to end inside the caller's session.

    The sales history source is borrowed, not owned: the caller opens and
    closes it.
    """

    def __init__(
        self,
        source: SalesHistorySource,
        *,
        provider: Optional[ComparableSalesProvider] = None,
        summarizer: Optional[MarketInsightSummarizer] = None,
    ) -> None:
        self.provider = provider or ComparableSalesProvider(source)
        self.summarizer = summarizer or MarketInsightSummarizer(source)

    def generate(
        self,
        db: Session,
        *,
        user_id: int,
        criteria: SubjectCriteria,
        pricing_tier: str = "basic",
        property_id: Optional[int] = None,
        max_comparables: Optional[int] = None,
        as_of: Optional[date] = None,
    ) -> CmaReport:
        now = _utcnow()
        as_of = as_of or now.date()
        max_comparables = int(max_comparables or settings.default_max_comparables)

        report = CmaReport(
            user_id=int(user_id),
            property_id=property_id,
            zip_code=criteria.zip_code,
            property_type=criteria.property_type,
            bedrooms=int(criteria.bedrooms),
            bathrooms=float(criteria.bathrooms),
            sqft=int(criteria.sqft),
            year_built=criteria.year_built,
            lot_size=criteria.lot_size,
            estimated_value=0,
            confidence_score=0.0,
            status="processing",
            pricing_tier=pricing_tier,
            report_date=now,
            last_updated=now,
        )
        db.add(report)
        db.commit()
        # read once while the row is fresh; a failed pipeline may leave it expired
        log_extra = _log_extra(report)
        log.info("cma report started", extra=log_extra)

        try:
            selection = self.provider.find_comparables(
                db,
                report_id=report.id,
                criteria=criteria,
                max_count=max_comparables,
                as_of=as_of,
            )

            valuation = estimate(
                criteria,
                selection.comparables,
                as_of=as_of,
                degraded=selection.degraded,
            )

            for rule in build_adjustment_rules(selection.comparables):
                db.add(
                    CmaPricingAdjustment(
                        cma_report_id=report.id,
                        factor=rule.factor,
                        per_unit_value=rule.per_unit_value,
                        direction=rule.direction,
                        description=rule.description,
                    )
                )

            self.summarizer.summarize(db, report_id=report.id, criteria=criteria, as_of=as_of)

            report.estimated_value = int(valuation.estimated_value)
            report.confidence_score = float(valuation.confidence_score)
            transition(report, "generated")
            db.commit()
        except Exception as e:
            db.rollback()
            self._mark_error(db, report, e, log_extra)
            raise

        log.info(
            "cma report generated value=%s confidence=%.3f comps=%s degraded=%s",
            report.estimated_value,
            report.confidence_score,
            len(selection.comparables),
            selection.degraded,
            extra=log_extra,
        )
        return report

    def _mark_error(self, db: Session, report: CmaReport, exc: Exception, log_extra: dict) -> None:
        log.error("cma report failed: %s", exc, exc_info=exc, extra=log_extra)
        try:
            transition(report, "error")
            report.error_message = (f"{type(exc).__name__}: {exc}")[:MAX_ERROR_MESSAGE]
            db.commit()
        except Exception:
            db.rollback()
            log.exception("could not mark report as error", extra=log_extra)


# -----------------------------------------------------------------------------
# Reads
# -----------------------------------------------------------------------------


def get_report(db: Session, report_id: int) -> CmaReport:
    report = db.get(CmaReport, int(report_id))
    if report is None:
        raise ReportNotFound(report_id)
    return report


def get_comparables(db: Session, report_id: int) -> list[CmaComparable]:
    get_report(db, report_id)
    return list(
        db.scalars(
            select(CmaComparable)
            .where(CmaComparable.cma_report_id == int(report_id))
            .order_by(desc(CmaComparable.similarity), CmaComparable.id)
        ).all()
    )


def get_insights(db: Session, report_id: int) -> list[CmaMarketInsight]:
    get_report(db, report_id)
    return list(
        db.scalars(
            select(CmaMarketInsight)
            .where(CmaMarketInsight.cma_report_id == int(report_id))
            .order_by(desc(CmaMarketInsight.importance), CmaMarketInsight.id)
        ).all()
    )


def get_pricing_adjustments(db: Session, report_id: int) -> list[CmaPricingAdjustment]:
    get_report(db, report_id)
    return list(
        db.scalars(
            select(CmaPricingAdjustment)
            .where(CmaPricingAdjustment.cma_report_id == int(report_id))
            .order_by(CmaPricingAdjustment.id)
        ).all()
    )


def get_complete_report(db: Session, report_id: int) -> CompleteReport:
    return CompleteReport(
        report=get_report(db, report_id),
        comparables=get_comparables(db, report_id),
        insights=get_insights(db, report_id),
        pricing_adjustments=get_pricing_adjustments(db, report_id),
    )


def list_user_reports(db: Session, user_id: int) -> list[CmaReport]:
    return list(
        db.scalars(
            select(CmaReport)
            .where(CmaReport.user_id == int(user_id))
            .order_by(desc(CmaReport.report_date), desc(CmaReport.id))
        ).all()
    )


# -----------------------------------------------------------------------------
# Maintenance
# -----------------------------------------------------------------------------


def delete_report(db: Session, report_id: int) -> None:
    report = get_report(db, report_id)
    db.delete(report)
    db.commit()
    log.info("cma report deleted", extra={"report_id": int(report_id)})


def reap_stale_reports(
    db: Session,
    *,
    older_than_minutes: Optional[int] = None,
    now: Optional[datetime] = None,
) -> int:
    """
    Move reports stuck in processing (crash, client disconnect) to error.

    The row is kept as an audit trail; the caller requests a new report.
    """
    now = now or _utcnow()
    minutes = settings.stale_report_minutes if older_than_minutes is None else int(older_than_minutes)
    cutoff = now - timedelta(minutes=minutes)

    stale = db.scalars(
        select(CmaReport)
        .where(CmaReport.status == "processing")
        .where(CmaReport.last_updated < cutoff)
    ).all()

    for report in stale:
        transition(report, "error", now=now)
        report.error_message = f"stale: still processing after {minutes} minutes"
        log.warning("reaped stale cma report", extra=_log_extra(report))

    db.commit()
    return len(stale)
