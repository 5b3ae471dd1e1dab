from __future__ import annotations

import statistics
from collections import defaultdict
from datetime import date
from typing import Callable, Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..db import SessionLocal
from ..domain.cma_types import ComparableQuery, QuarterBucket, SaleRecord
from ..errors import SalesSourceError
from ..models import PropertySale


def _quarter(d: date) -> int:
    return (d.month - 1) // 3 + 1


def bucket_by_quarter(
    sales: Iterable[tuple[date, int, Optional[int]]],
) -> list[QuarterBucket]:
    """
    (sale_date, sale_price, days_on_market) rows -> one bucket per (year, quarter), newest first.
    Days-on-market average ignores rows without a value.
    """
    prices: dict[tuple[int, int], list[int]] = defaultdict(list)
    doms: dict[tuple[int, int], list[int]] = defaultdict(list)

    for sale_date, price, dom in sales:
        key = (sale_date.year, _quarter(sale_date))
        prices[key].append(int(price))
        if dom is not None:
            doms[key].append(int(dom))

    out: list[QuarterBucket] = []
    for key in sorted(prices.keys(), reverse=True):
        p = prices[key]
        d = doms.get(key) or []
        out.append(
            QuarterBucket(
                year=key[0],
                quarter=key[1],
                avg_price=sum(p) / len(p),
                median_price=float(statistics.median(p)),
                sales_volume=len(p),
                avg_days_on_market=(sum(d) / len(d)) if d else None,
            )
        )
    return out


def _to_record(row: PropertySale) -> SaleRecord:
    return SaleRecord(
        address=row.address,
        city=row.city or "",
        state=row.state or "",
        zip_code=row.zip_code,
        sale_price=int(row.sale_price),
        sale_date=row.sale_date,
        bedrooms=int(row.bedrooms),
        bathrooms=float(row.bathrooms),
        sqft=int(row.square_feet),
        year_built=row.year_built,
        lot_size=row.lot_size,
        image_url=row.image_url,
    )


class DbSalesHistorySource:
    """
    Sales history read from the property_sales table.

    Opens a short-lived session per call so one instance can be shared by
    concurrent requests.
    """

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal) -> None:
        self._session_factory = session_factory

    def find_sales(self, query: ComparableQuery) -> list[SaleRecord]:
        stmt = (
            select(PropertySale)
            .where(PropertySale.zip_code == query.zip_code)
            .where(PropertySale.property_type == query.property_type)
            .where(PropertySale.bedrooms.between(query.min_bedrooms, query.max_bedrooms))
            .where(PropertySale.bathrooms.between(query.min_bathrooms, query.max_bathrooms))
            .where(PropertySale.square_feet.between(query.min_sqft, query.max_sqft))
            .where(PropertySale.sale_date >= query.sold_since)
            .order_by(
                PropertySale.sale_date.desc(),
                func.abs(PropertySale.square_feet - query.subject_sqft).asc(),
                PropertySale.id.asc(),
            )
            .limit(query.limit)
        )
        try:
            with self._session_factory() as db:
                rows = db.scalars(stmt).all()
                return [_to_record(r) for r in rows]
        except SQLAlchemyError as e:
            raise SalesSourceError(f"property_sales query failed: {e}") from e

    def quarterly_buckets(
        self,
        *,
        zip_code: str,
        property_type: str,
        since: date,
        limit: int,
    ) -> list[QuarterBucket]:
        stmt = (
            select(PropertySale.sale_date, PropertySale.sale_price, PropertySale.days_on_market)
            .where(PropertySale.zip_code == zip_code)
            .where(PropertySale.property_type == property_type)
            .where(PropertySale.sale_date >= since)
        )
        try:
            with self._session_factory() as db:
                rows = db.execute(stmt).all()
        except SQLAlchemyError as e:
            raise SalesSourceError(f"property_sales trend query failed: {e}") from e

        return bucket_by_quarter((r[0], r[1], r[2]) for r in rows)[: max(0, int(limit))]

    def close(self) -> None:
        # sessions are per call; the engine belongs to the application
        return None
