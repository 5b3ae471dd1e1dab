# backend/cma_engine/services/comparables_service.py
from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..clients.sales_history import SalesHistorySource
from ..config import settings
from ..domain.cma_types import ComparableQuery, SaleRecord, SubjectCriteria, months_before
from ..domain.similarity import adjust, score
from ..domain.synthetic_comps import synthesize_sales
from ..domain.valuation import base_rate_value
from ..errors import SalesSourceError
from ..models import CmaComparable

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComparableSelection:
    comparables: list[CmaComparable]
    # True when the comps were synthesized; only used to lower confidence
    degraded: bool


def build_query(criteria: SubjectCriteria, max_count: int, as_of: date) -> ComparableQuery:
    return ComparableQuery(
        zip_code=criteria.zip_code,
        property_type=criteria.property_type,
        min_bedrooms=max(1, int(criteria.bedrooms) - 1),
        max_bedrooms=int(criteria.bedrooms) + 1,
        min_bathrooms=max(1, criteria.bathrooms - 1),
        max_bathrooms=criteria.bathrooms + 1,
        min_sqft=int(math.floor(criteria.sqft * 0.8)),
        max_sqft=int(math.ceil(criteria.sqft * 1.2)),
        subject_sqft=int(criteria.sqft),
        sold_since=months_before(as_of, settings.comparable_window_months),
        limit=int(max_count),
    )


def _to_row(report_id: int, criteria: SubjectCriteria, sale: SaleRecord) -> CmaComparable:
    return CmaComparable(
        cma_report_id=report_id,
        address=sale.address,
        city=sale.city,
        state=sale.state,
        zip_code=sale.zip_code,
        sale_price=int(sale.sale_price),
        sale_date=sale.sale_date,
        bedrooms=int(sale.bedrooms),
        bathrooms=float(sale.bathrooms),
        sqft=int(sale.sqft),
        price_per_sqft=sale.price_per_sqft,
        year_built=sale.year_built,
        lot_size=sale.lot_size,
        distance_from_subject=float(sale.distance_from_subject or 0.0),
        adjusted_price=adjust(criteria, sale),
        similarity=score(criteria, sale),
        image_url=sale.image_url,
    )


class ComparableSalesProvider:
    """
    Finds comparable sales for a report and persists them as its children.

    Never fails for lack of data: an empty result or an unreachable source
    switches to synthesized comps.
    """

    def __init__(self, source: SalesHistorySource, *, rng: Optional[random.Random] = None) -> None:
        self.source = source
        self._rng = rng

    def _primary(self, criteria: SubjectCriteria, max_count: int, as_of: date) -> list[SaleRecord]:
        return self.source.find_sales(build_query(criteria, max_count, as_of))

    def _synthetic(self, criteria: SubjectCriteria, max_count: int, as_of: date) -> list[SaleRecord]:
        return synthesize_sales(
            criteria,
            max_count,
            as_of=as_of,
            base_price=base_rate_value(criteria),
            rng=self._rng,
        )

    def find_comparables(
        self,
        db: Session,
        *,
        report_id: int,
        criteria: SubjectCriteria,
        max_count: Optional[int] = None,
        as_of: Optional[date] = None,
    ) -> ComparableSelection:
        max_count = int(max_count or settings.default_max_comparables)
        as_of = as_of or datetime.utcnow().date()

        degraded = False
        try:
            sales = self._primary(criteria, max_count, as_of)
        except SalesSourceError as e:
            log.warning(
                "comparables source unavailable, using synthetic comps: %s",
                e,
                extra={"report_id": report_id},
            )
            sales = []
            degraded = True

        if not sales:
            if not degraded:
                log.info(
                    "no comparable sales for zip=%s type=%s, using synthetic comps",
                    criteria.zip_code,
                    criteria.property_type,
                    extra={"report_id": report_id},
                )
            degraded = True
            sales = self._synthetic(criteria, max_count, as_of)

        rows = [_to_row(report_id, criteria, s) for s in sales[:max_count]]
        if degraded:
            rows.sort(key=lambda r: r.similarity, reverse=True)

        db.add_all(rows)
        db.flush()
        return ComparableSelection(comparables=rows, degraded=degraded)
