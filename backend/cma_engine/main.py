# backend/cma_engine/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .clients.sales_history import SalesHistorySource, build_sales_source
from .config import settings
from .errors import ReportGenerationFailed
from .logging_config import configure_logging
from .middleware.request_context import RequestContextMiddleware
from .routers.cma import router as cma_router
from .routers.health import router as health_router

API_PREFIX = "/api"

log = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    val = getattr(settings, "cors_allow_origins", ["*"])
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # rejected before any report row exists
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid request data", "errors": jsonable_encoder(exc.errors())},
    )


async def _generation_failed_handler(request: Request, exc: ReportGenerationFailed) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"message": "Failed to generate CMA report", "error": str(exc.cause)},
    )


def create_app(sales_source: Optional[SalesHistorySource] = None) -> FastAPI:
    """
    Build the API.

    sales_source: injected source (tests, embedding). When omitted one is
    built from settings at startup and closed at shutdown. An injected source
    is never closed here; its owner does that.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = sales_source is None
        app.state.sales_source = sales_source if sales_source is not None else build_sales_source()
        try:
            yield
        finally:
            if owned:
                app.state.sales_source.close()

    app = FastAPI(
        title="CMA Valuation Engine",
        version="1.0.0",
        lifespan=lifespan,
    )
    if sales_source is not None:
        # available even when the lifespan is not run (plain TestClient(app))
        app.state.sales_source = sales_source

    app.add_middleware(RequestContextMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(ReportGenerationFailed, _generation_failed_handler)

    app.include_router(health_router, prefix=API_PREFIX)
    app.include_router(cma_router, prefix=API_PREFIX)

    return app


configure_logging()
app = create_app()
