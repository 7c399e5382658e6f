"""Request-id propagation and per-request timing."""

from __future__ import annotations

import time
from uuid import uuid4

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from smile_report.observability.logger import get_logger

logger = get_logger("middleware")

REQUEST_ID_HEADER = "X-Request-ID"
DURATION_HEADER = "X-Duration-MS"


def _elapsed_ms(start: float) -> float:
    return round((time.monotonic() - start) * 1000, 2)


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """Reuses a caller-supplied request id so report runs can be correlated upstream."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, path=request.url.path)
        start = time.monotonic()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error("request_failed", method=request.method, error=str(e), duration_ms=_elapsed_ms(start))
            raise

        duration_ms = _elapsed_ms(start)
        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers[DURATION_HEADER] = str(duration_ms)

        settings = getattr(request.app.state, "settings", None)
        slow = settings is not None and duration_ms > settings.slow_request_ms
        (logger.warning if slow else logger.info)(
            "request_slow" if slow else "request_completed",
            method=request.method,
            status=response.status_code,
            duration_ms=duration_ms,
        )
        return response
