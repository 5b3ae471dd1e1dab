# backend/cma_engine/models.py
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import (
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


# -----------------------------
# CMA reports and their children
# -----------------------------
class CmaReport(Base):
    __tablename__ = "cma_reports"
    __table_args__ = (Index("ix_cma_reports_user_report_date", "user_id", "report_date"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    property_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # criteria snapshot
    zip_code: Mapped[str] = mapped_column(String(10), nullable=False)
    property_type: Mapped[str] = mapped_column(String(60), nullable=False)
    bedrooms: Mapped[int] = mapped_column(Integer, nullable=False)
    bathrooms: Mapped[float] = mapped_column(Float, nullable=False)
    sqft: Mapped[int] = mapped_column(Integer, nullable=False)
    year_built: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    lot_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    estimated_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    confidence_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="processing", index=True)
    pricing_tier: Mapped[str] = mapped_column(String(20), nullable=False, default="basic")
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    report_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    last_updated: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    comparables: Mapped[List["CmaComparable"]] = relationship(
        back_populates="report", cascade="all, delete-orphan"
    )
    insights: Mapped[List["CmaMarketInsight"]] = relationship(
        back_populates="report", cascade="all, delete-orphan"
    )
    pricing_adjustments: Mapped[List["CmaPricingAdjustment"]] = relationship(
        back_populates="report", cascade="all, delete-orphan"
    )


class CmaComparable(Base):
    __tablename__ = "cma_comparables"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    cma_report_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("cma_reports.id", ondelete="CASCADE"), nullable=False, index=True
    )

    address: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    state: Mapped[str] = mapped_column(String(2), nullable=False, default="")
    zip_code: Mapped[str] = mapped_column(String(10), nullable=False)

    sale_price: Mapped[int] = mapped_column(Integer, nullable=False)
    sale_date: Mapped[date] = mapped_column(Date, nullable=False)

    bedrooms: Mapped[int] = mapped_column(Integer, nullable=False)
    bathrooms: Mapped[float] = mapped_column(Float, nullable=False)
    sqft: Mapped[int] = mapped_column(Integer, nullable=False)
    price_per_sqft: Mapped[float] = mapped_column(Float, nullable=False)
    year_built: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    lot_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    distance_from_subject: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    adjusted_price: Mapped[int] = mapped_column(Integer, nullable=False)
    similarity: Mapped[float] = mapped_column(Float, nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    report: Mapped["CmaReport"] = relationship(back_populates="comparables")


class CmaMarketInsight(Base):
    __tablename__ = "cma_market_insights"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    cma_report_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("cma_reports.id", ondelete="CASCADE"), nullable=False, index=True
    )

    insight_type: Mapped[str] = mapped_column(String(40), nullable=False)
    title: Mapped[str] = mapped_column(String(160), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    data_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    importance: Mapped[int] = mapped_column(Integer, nullable=False, default=3)

    report: Mapped["CmaReport"] = relationship(back_populates="insights")


class CmaPricingAdjustment(Base):
    __tablename__ = "cma_pricing_adjustments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    cma_report_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("cma_reports.id", ondelete="CASCADE"), nullable=False, index=True
    )

    factor: Mapped[str] = mapped_column(String(20), nullable=False)  # bedroom|bathroom|sqft
    per_unit_value: Mapped[int] = mapped_column(Integer, nullable=False)
    direction: Mapped[str] = mapped_column(String(10), nullable=False, default="positive")
    description: Mapped[str] = mapped_column(String(255), nullable=False)

    report: Mapped["CmaReport"] = relationship(back_populates="pricing_adjustments")


# -----------------------------
# Local sales history (read by DbSalesHistorySource)
# -----------------------------
class PropertySale(Base):
    __tablename__ = "property_sales"
    __table_args__ = (
        Index("ix_property_sales_zip_type_date", "zip_code", "property_type", "sale_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    address: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    state: Mapped[str] = mapped_column(String(2), nullable=False, default="")
    zip_code: Mapped[str] = mapped_column(String(10), nullable=False)
    property_type: Mapped[str] = mapped_column(String(60), nullable=False)

    sale_price: Mapped[int] = mapped_column(Integer, nullable=False)
    sale_date: Mapped[date] = mapped_column(Date, nullable=False)

    bedrooms: Mapped[int] = mapped_column(Integer, nullable=False)
    bathrooms: Mapped[float] = mapped_column(Float, nullable=False)
    square_feet: Mapped[int] = mapped_column(Integer, nullable=False)
    year_built: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    lot_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    days_on_market: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    source: Mapped[str] = mapped_column(String(40), nullable=False, default="csv")
    fingerprint: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
