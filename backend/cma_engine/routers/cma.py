from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response
from sqlalchemy.orm import Session

from ..clients.sales_history import SalesHistorySource
from ..config import settings
from ..db import get_db
from ..errors import ReportGenerationFailed, ReportNotFound
from ..schemas import (
    CmaCompleteOut,
    CmaComparableOut,
    CmaGenerateIn,
    CmaMarketInsightOut,
    CmaPricingAdjustmentOut,
    CmaReportOut,
)
from ..services.cma_report_service import (
    CmaReportOrchestrator,
    delete_report,
    get_comparables,
    get_complete_report,
    get_insights,
    get_report,
    list_user_reports,
)

log = logging.getLogger(__name__)

router = APIRouter(prefix="/cma", tags=["cma"])

NOT_FOUND = "CMA report not found"


def get_sales_source(request: Request) -> SalesHistorySource:
    return request.app.state.sales_source


def current_user_id(x_user_id: Optional[int] = Header(default=None)) -> int:
    return int(x_user_id) if x_user_id is not None else int(settings.default_user_id)


@router.post("/generate", response_model=CmaReportOut, status_code=201)
def generate_cma_report(
    payload: CmaGenerateIn,
    db: Session = Depends(get_db),
    source: SalesHistorySource = Depends(get_sales_source),
    user_id: int = Depends(current_user_id),
):
    orchestrator = CmaReportOrchestrator(source)
    try:
        return orchestrator.generate(
            db,
            user_id=user_id,
            criteria=payload.to_criteria(),
            pricing_tier=payload.pricing_tier,
            property_id=payload.property_id,
            max_comparables=payload.max_comparables,
        )
    except Exception as e:
        raise ReportGenerationFailed(e) from e


@router.get("/reports/{report_id}", response_model=CmaReportOut)
def read_report(report_id: int, db: Session = Depends(get_db)):
    try:
        return get_report(db, report_id)
    except ReportNotFound:
        raise HTTPException(status_code=404, detail=NOT_FOUND)


@router.get("/reports/{report_id}/comparables", response_model=List[CmaComparableOut])
def read_comparables(report_id: int, db: Session = Depends(get_db)):
    try:
        return get_comparables(db, report_id)
    except ReportNotFound:
        raise HTTPException(status_code=404, detail=NOT_FOUND)


@router.get("/reports/{report_id}/insights", response_model=List[CmaMarketInsightOut])
def read_insights(report_id: int, db: Session = Depends(get_db)):
    try:
        return get_insights(db, report_id)
    except ReportNotFound:
        raise HTTPException(status_code=404, detail=NOT_FOUND)


@router.get("/reports/{report_id}/complete", response_model=CmaCompleteOut)
def read_complete_report(report_id: int, db: Session = Depends(get_db)):
    try:
        full = get_complete_report(db, report_id)
    except ReportNotFound:
        raise HTTPException(status_code=404, detail=NOT_FOUND)

    return CmaCompleteOut(
        report=CmaReportOut.model_validate(full.report),
        comparables=[CmaComparableOut.model_validate(c) for c in full.comparables],
        insights=[CmaMarketInsightOut.model_validate(i) for i in full.insights],
        pricing_adjustments=[CmaPricingAdjustmentOut.model_validate(a) for a in full.pricing_adjustments],
    )


@router.delete("/reports/{report_id}", status_code=204)
def remove_report(report_id: int, db: Session = Depends(get_db)):
    try:
        delete_report(db, report_id)
    except ReportNotFound:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return Response(status_code=204)


@router.get("/user/reports", response_model=List[CmaReportOut])
def read_user_reports(db: Session = Depends(get_db), user_id: int = Depends(current_user_id)):
    return list_user_reports(db, user_id)
