from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class SubjectCriteria:
    zip_code: str
    property_type: str
    bedrooms: int
    bathrooms: float
    sqft: int
    year_built: Optional[int] = None
    lot_size: Optional[int] = None

    def as_dict(self) -> dict:
        return {
            "zip_code": self.zip_code,
            "property_type": self.property_type,
            "bedrooms": self.bedrooms,
            "bathrooms": self.bathrooms,
            "sqft": self.sqft,
            "year_built": self.year_built,
            "lot_size": self.lot_size,
        }


@dataclass(frozen=True)
class SaleRecord:
    """One sold property as returned by a sales history source (or synthesized)."""

    address: str
    zip_code: str
    sale_price: int
    sale_date: date
    bedrooms: int
    bathrooms: float
    sqft: int
    city: str = ""
    state: str = ""
    year_built: Optional[int] = None
    lot_size: Optional[int] = None
    distance_from_subject: float = 0.0
    image_url: Optional[str] = None

    @property
    def price_per_sqft(self) -> float:
        if self.sqft <= 0:
            return 0.0
        return round(self.sale_price / self.sqft, 2)


@dataclass(frozen=True)
class ComparableQuery:
    zip_code: str
    property_type: str
    min_bedrooms: int
    max_bedrooms: int
    min_bathrooms: float
    max_bathrooms: float
    min_sqft: int
    max_sqft: int
    subject_sqft: int
    sold_since: date
    limit: int


@dataclass(frozen=True)
class QuarterBucket:
    year: int
    quarter: int
    avg_price: float
    median_price: float
    sales_volume: int
    avg_days_on_market: Optional[float] = None

    @property
    def period(self) -> str:
        return f"{self.year} Q{self.quarter}"

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.year, self.quarter)


@dataclass(frozen=True)
class ValuationResult:
    estimated_value: int
    confidence_score: float


def months_before(d: date, months: int) -> date:
    """Same day-of-month `months` earlier, clipped to the month's last day."""
    idx = d.year * 12 + (d.month - 1) - int(months)
    year, month = divmod(idx, 12)
    month += 1
    return date(year, month, min(d.day, calendar.monthrange(year, month)[1]))
