# backend/tests/conftest.py
from __future__ import annotations

import os
import tempfile
from datetime import date, datetime
from typing import Optional

import pytest

# engine is built at import time from settings; point it at a scratch file first
_TMP_DIR = tempfile.mkdtemp(prefix="cma_engine_tests_")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ.setdefault("SALES_SOURCE", "db")

from cma_engine.db import Base, SessionLocal, engine  # noqa: E402
from cma_engine import models  # noqa: E402,F401
from cma_engine.domain.cma_types import (  # noqa: E402
    ComparableQuery,
    QuarterBucket,
    SaleRecord,
    SubjectCriteria,
)
from cma_engine.errors import SalesSourceError  # noqa: E402

Base.metadata.create_all(bind=engine)


@pytest.fixture(autouse=True)
def _clean_tables():
    yield
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture
def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()


class FakeSalesSource:
    """In-memory sales history; set fail_* to simulate an unreachable source."""

    def __init__(
        self,
        sales: Optional[list[SaleRecord]] = None,
        buckets: Optional[list[QuarterBucket]] = None,
        *,
        fail_sales: bool = False,
        fail_buckets: bool = False,
    ) -> None:
        self.sales = list(sales or [])
        self.buckets = list(buckets or [])
        self.fail_sales = fail_sales
        self.fail_buckets = fail_buckets
        self.queries: list[ComparableQuery] = []
        self.closed = False

    def find_sales(self, query: ComparableQuery) -> list[SaleRecord]:
        self.queries.append(query)
        if self.fail_sales:
            raise SalesSourceError("connection refused")
        return self.sales[: query.limit]

    def quarterly_buckets(self, *, zip_code: str, property_type: str, since: date, limit: int):
        if self.fail_buckets:
            raise SalesSourceError("trend endpoint down")
        return self.buckets[:limit]

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def subject() -> SubjectCriteria:
    return SubjectCriteria(
        zip_code="48201",
        property_type="single_family",
        bedrooms=3,
        bathrooms=2.0,
        sqft=2000,
        year_built=2000,
    )


def make_sale(**overrides) -> SaleRecord:
    base = dict(
        address="100 Main St",
        city="Detroit",
        state="MI",
        zip_code="48201",
        sale_price=500_000,
        sale_date=date(2024, 5, 1),
        bedrooms=3,
        bathrooms=2.0,
        sqft=2000,
        year_built=2000,
    )
    base.update(overrides)
    return SaleRecord(**base)


def make_report(db, subject: SubjectCriteria, *, user_id: int = 1, status: str = "processing"):
    now = datetime.utcnow()
    r = models.CmaReport(
        user_id=user_id,
        zip_code=subject.zip_code,
        property_type=subject.property_type,
        bedrooms=subject.bedrooms,
        bathrooms=subject.bathrooms,
        sqft=subject.sqft,
        status=status,
        pricing_tier="basic",
        report_date=now,
        last_updated=now,
    )
    db.add(r)
    db.commit()
    return r
