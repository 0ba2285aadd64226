"""Request context middleware: request ID, timing, one log line per request.

A scrape that fails upstream logs an ERROR from the collector while the
request itself still completes with 200.  The request ID ties the two
lines together:

  ERROR nexmo_exporter.core.metrics  Can't get balance: HTTP status 500
  INFO  nexmo_exporter.middleware.request_context  GET /metrics → 200 (41.3ms)

The ID lives in a ContextVar and a root-logger filter copies it onto
every LogRecord.  Starlette copies the context into the threadpool that
runs the sync metrics handler, so the collector's log lines carry it too.
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
    """Attach the current request_id to every LogRecord."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("-")  # type: ignore[attr-defined]
        return True


def install_log_filter() -> None:
    """Install the request-id filter on the root handlers (idempotent).

    Filters on a logger only apply to records created on that logger, so
    the filter goes on the handlers, which see records from every logger.
    """
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, _RequestContextFilter) for f in handler.filters):
            handler.addFilter(_RequestContextFilter())


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a request ID, time the request, log a summary on completion.

    1. Reads X-Request-ID (if the caller sent one) or generates a UUID
    2. Stores it in a ContextVar
    3. Logs method, path, status and duration
    4. Echoes X-Request-ID on the response
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        token = request_id_var.set(req_id)

        try:
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
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                },
            )
        finally:
            request_id_var.reset(token)

        response.headers["X-Request-ID"] = req_id
        return response
