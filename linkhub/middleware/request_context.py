"""Request context middleware.

Every request gets an ID, taken from the client's X-Request-ID header or
generated.  It is stored in a ContextVar (per-task, so concurrent requests
on the same event loop never see each other's ID), stamped onto every log
record by _RequestContextFilter, and echoed back in the X-Request-ID
response header.  A one-line summary with status and duration is logged
when the response is ready.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class _RequestContextFilter(logging.Filter):
    """Adds the current request_id to each LogRecord."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("-")  # type: ignore[attr-defined]
        return True


# Handler-level filters see records from every logger; logger-level filters
# on root would not see records propagated from child loggers.
_context_filter = _RequestContextFilter()


def install_request_context_filter() -> None:
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, _RequestContextFilter) for f in handler.filters):
            handler.addFilter(_context_filter)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assigns a request ID, times the request, logs a summary line."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request_id_var.set(req_id)

        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        logger.info(
            "%s %s → %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra={
                "request_id": req_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        response.headers["X-Request-ID"] = req_id
        return response
