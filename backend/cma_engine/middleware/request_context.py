# backend/cma_engine/middleware/request_context.py
from __future__ import annotations

import json
import logging
import time
import uuid
from contextvars import ContextVar
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

log = logging.getLogger("cma_engine.request")

REQUEST_ID_HEADER = "X-Request-ID"

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)


def get_request_id() -> str | None:
    return request_id_ctx.get()


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with an id and writes one JSON access line for it.

    The id comes from X-Request-ID when the caller sends one (any header
    casing), otherwise a UUID4. It lives in a ContextVar for the duration of
    the request so engine log records pick it up, and is echoed back on the
    response.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        token = request_id_ctx.set(rid)
        t0 = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = rid
            return response
        finally:
            log.info(
                json.dumps(
                    {
                        "event": "http_request",
                        "method": request.method,
                        "path": request.url.path,
                        "status_code": status_code,
                        "latency_ms": int((time.perf_counter() - t0) * 1000),
                        "user_id": request.headers.get("X-User-Id"),
                    }
                )
            )
            request_id_ctx.reset(token)
