"""Request logging middleware.

Every request gets a correlation ID (the gateway's X-Correlation-ID, or a
fresh UUID) that is bound into the structlog context and echoed on the
response. Request lines name the calling actor as the gateway reported it,
before any authorization runs, so denied calls can still be traced to a
caller. Health checks log at debug so orchestrator polling stays quiet.
"""

from __future__ import annotations

import time
import uuid
from typing import TYPE_CHECKING

from starlette.middleware.base import BaseHTTPMiddleware

from review_engine.logging import clear_request_context, get_logger, set_correlation_id

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from starlette.requests import Request
    from starlette.responses import Response

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"
HEALTH_PREFIX = "/health"


def caller_of(request: Request) -> str:
    """Actor label for request logs: the member id, "machine" or "anonymous"."""
    if (request.headers.get("X-Actor-Machine") or "").lower() == "true":
        return "machine"
    return request.headers.get("X-Actor-Id") or "anonymous"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request with caller, status and duration."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        set_correlation_id(correlation_id)
        path = request.url.path
        log = logger.bind(method=request.method, path=path, caller=caller_of(request))
        emit = log.debug if path.startswith(HEALTH_PREFIX) else log.info
        start_time = time.perf_counter()

        emit("request_started", query=str(request.url.query) or None)

        try:
            response = await call_next(request)
            emit(
                "request_completed",
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            response.headers[CORRELATION_HEADER] = correlation_id
            return response
        except Exception as exc:
            log.error(
                "request_failed",
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                error=str(exc),
                exc_info=True,
            )
            raise
        finally:
            set_correlation_id(None)
            clear_request_context()
