# backend/cma_engine/cli/commands.py
from __future__ import annotations

import argparse
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from cma_engine.clients.sales_history import build_sales_source
from cma_engine.db import SessionLocal
from cma_engine.domain.cma_types import SubjectCriteria
from cma_engine.services.cma_report_service import CmaReportOrchestrator, reap_stale_reports
from cma_engine.services.sales_import_service import ImportResult, import_sales_csv


@dataclass(frozen=True)
class GenerateResult:
    report_id: int
    status: str
    estimated_value: int
    confidence_score: float


def cmd_import_sales(csv_path: Path, *, source: str = "csv") -> ImportResult:
    data = Path(csv_path).read_bytes()
    db = SessionLocal()
    try:
        return import_sales_csv(db, data, source=source)
    finally:
        db.close()


def cmd_reap_stale(*, older_than_minutes: Optional[int] = None) -> int:
    db = SessionLocal()
    try:
        return reap_stale_reports(db, older_than_minutes=older_than_minutes)
    finally:
        db.close()


def cmd_generate(args: argparse.Namespace) -> GenerateResult:
    criteria = SubjectCriteria(
        zip_code=args.zip_code,
        property_type=args.property_type,
        bedrooms=args.bedrooms,
        bathrooms=args.bathrooms,
        sqft=args.sqft,
        year_built=args.year_built,
        lot_size=args.lot_size,
    )
    source = build_sales_source()
    db = SessionLocal()
    try:
        report = CmaReportOrchestrator(source).generate(
            db,
            user_id=args.user_id,
            criteria=criteria,
            pricing_tier=args.pricing_tier,
            max_comparables=args.max_comparables,
        )
        return GenerateResult(
            report_id=report.id,
            status=report.status,
            estimated_value=report.estimated_value,
            confidence_score=report.confidence_score,
        )
    finally:
        db.close()
        source.close()
