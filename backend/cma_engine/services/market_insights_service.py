# backend/cma_engine/services/market_insights_service.py
from __future__ import annotations

import json
import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..clients.sales_history import SalesHistorySource
from ..config import settings
from ..domain.cma_types import SubjectCriteria, months_before
from ..domain.market_insights import InsightDraft, default_insights, summarize_buckets
from ..models import CmaMarketInsight

log = logging.getLogger(__name__)


class MarketInsightSummarizer:
    """
    Quarterly trend insights for a report's zip/property type.

    Always returns at least two insights: any failure to read or summarize the
    trend data is logged and replaced by the default pair.
    """

    def __init__(self, source: SalesHistorySource) -> None:
        self.source = source

    def build_drafts(self, criteria: SubjectCriteria, *, as_of: date) -> list[InsightDraft]:
        buckets = self.source.quarterly_buckets(
            zip_code=criteria.zip_code,
            property_type=criteria.property_type,
            since=months_before(as_of, settings.insight_window_months),
            limit=settings.insight_max_buckets,
        )
        return summarize_buckets(buckets)

    def summarize(
        self,
        db: Session,
        *,
        report_id: int,
        criteria: SubjectCriteria,
        as_of: Optional[date] = None,
    ) -> list[CmaMarketInsight]:
        as_of = as_of or datetime.utcnow().date()

        try:
            drafts = self.build_drafts(criteria, as_of=as_of)
        except Exception:
            log.warning("market insight generation failed, using defaults", exc_info=True, extra={"report_id": report_id})
            drafts = default_insights()

        rows = [
            CmaMarketInsight(
                cma_report_id=report_id,
                insight_type=d.insight_type,
                title=d.title,
                description=d.description,
                data_json=json.dumps(d.data, ensure_ascii=False) if d.data is not None else None,
                importance=int(d.importance),
            )
            for d in drafts
        ]
        db.add_all(rows)
        db.flush()
        return rows
