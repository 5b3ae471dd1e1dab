# backend/cma_engine/schemas.py
from __future__ import annotations

import json
from datetime import date, datetime
from typing import Annotated, Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator
from pydantic.alias_generators import to_camel

from .domain.cma_types import SubjectCriteria


class _CamelModel(BaseModel):
    # camelCase on the wire, snake_case accepted on input
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _CamelOrmModel(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# -------------------- Requests --------------------

# stripped before the length check, so padding cannot satisfy it
ZipCode = Annotated[str, StringConstraints(strip_whitespace=True, min_length=5)]
NonBlankStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class CmaGenerateIn(_CamelModel):
    property_id: Optional[int] = None
    zip_code: ZipCode
    property_type: NonBlankStr
    bedrooms: int = Field(ge=1)
    bathrooms: float = Field(ge=1)
    sqft: int = Field(ge=100)
    year_built: Optional[int] = None
    lot_size: Optional[int] = None
    pricing_tier: Literal["basic", "premium", "enterprise"] = "basic"
    max_comparables: Optional[int] = Field(default=None, ge=3, le=10)

    def to_criteria(self) -> SubjectCriteria:
        return SubjectCriteria(
            zip_code=self.zip_code,
            property_type=self.property_type,
            bedrooms=self.bedrooms,
            bathrooms=self.bathrooms,
            sqft=self.sqft,
            year_built=self.year_built,
            lot_size=self.lot_size,
        )


# -------------------- Responses --------------------

class CmaReportOut(_CamelOrmModel):
    id: int
    user_id: int
    property_id: Optional[int] = None
    zip_code: str
    property_type: str
    bedrooms: int
    bathrooms: float
    sqft: int
    year_built: Optional[int] = None
    lot_size: Optional[int] = None
    estimated_value: int
    confidence_score: float
    status: str
    pricing_tier: str
    error_message: Optional[str] = None
    report_date: datetime
    last_updated: datetime


class CmaComparableOut(_CamelOrmModel):
    id: int
    cma_report_id: int
    address: str
    city: str
    state: str
    zip_code: str
    sale_price: int
    sale_date: date
    bedrooms: int
    bathrooms: float
    sqft: int
    price_per_sqft: float
    year_built: Optional[int] = None
    lot_size: Optional[int] = None
    distance_from_subject: float
    adjusted_price: int
    similarity: float
    image_url: Optional[str] = None


class CmaMarketInsightOut(_CamelOrmModel):
    id: int
    cma_report_id: int
    insight_type: str
    title: str
    description: str
    data: Optional[Any] = Field(default=None, validation_alias="data_json")
    importance: int

    @field_validator("data", mode="before")
    @classmethod
    def _parse_data(cls, v: Any) -> Any:
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return {"_raw": v}
        return v


class CmaPricingAdjustmentOut(_CamelOrmModel):
    id: int
    cma_report_id: int
    factor: str
    per_unit_value: int
    direction: str
    description: str


class CmaCompleteOut(_CamelModel):
    report: CmaReportOut
    comparables: List[CmaComparableOut] = Field(default_factory=list)
    insights: List[CmaMarketInsightOut] = Field(default_factory=list)
    pricing_adjustments: List[CmaPricingAdjustmentOut] = Field(default_factory=list)
