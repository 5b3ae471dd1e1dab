"""
Exception types for the CMA engine.

Routes stay thin: they map these to HTTP status codes and nothing else.
"""
from __future__ import annotations


class CmaError(Exception):
    """Base class for engine errors."""


class SalesSourceError(CmaError):
    """
    The sales history source could not answer (unreachable, timeout, bad payload).

    Always recovered locally by the degraded paths; never reaches a caller.
    """


class ReportNotFound(CmaError):
    def __init__(self, report_id: int) -> None:
        super().__init__(f"CMA report {report_id} not found")
        self.report_id = report_id


class ReportStateError(CmaError):
    """Illegal report status transition."""

    def __init__(self, report_id: int | None, current: str, requested: str) -> None:
        super().__init__(f"report {report_id}: cannot move from {current!r} to {requested!r}")
        self.report_id = report_id
        self.current = current
        self.requested = requested


class ReportGenerationFailed(CmaError):
    """Generation raised; the report row is already persisted with status=error."""

    def __init__(self, cause: Exception) -> None:
        super().__init__(str(cause))
        self.cause = cause
