"""Request context middleware: assigns a unique ID to every request.

WHY REQUEST IDs
-----------------
Scrapers from several Prometheus replicas hit the exporter at the same
moment, and a heavy-tier rebuild logs from several collectors.  Without
an ID those lines interleave with nothing to tie them together:

  DEBUG Rebuilt heavy tier
  WARNING Collector failed context={"collector": "database_size", ...}
  INFO  GET /metrics → 200

With one, every line of a single scrape carries the same request_id.

WHY CONTEXT VARIABLES (NOT THREAD-LOCALS)
-------------------------------------------
Under asyncio many requests run concurrently on the SAME thread, so
threading.local() would leak state between them.  A ContextVar gives
each request task its own value.

CLIENT IP
----------
The summary line also records the client IP exactly as the rate limiter
keys it (proxy headers first, "unknown" for private addresses), so a
429 in the log can be matched to the counter that produced it.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from pressmetrics.api.client_ip import resolve_client_ip
from pressmetrics.api.request_view import MetricsRequest

logger = logging.getLogger(__name__)

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class _RequestContextFilter(logging.Filter):
    """Logging filter that injects the current request_id into every LogRecord.

    A formatter can only read fields already on the record; a filter can
    add them.  Installed on the root logger so every module inherits it.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("-")  # type: ignore[attr-defined]
        return True


# Guard against duplicate installation across module reloads.
root_logger = logging.getLogger()
if not any(isinstance(f, _RequestContextFilter) for f in root_logger.filters):
    root_logger.addFilter(_RequestContextFilter())


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a request ID, time the request and log one summary line.

    1. Reads X-Request-ID (if the client sent one) or generates a UUID
    2. Stores it in a ContextVar for every log line of this request
    3. Logs method, path, client IP, status and duration on completion
    4. Echoes X-Request-ID on the response
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request_id_var.set(req_id)
        client_ip = resolve_client_ip(MetricsRequest.from_starlette(request))

        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        # Never log the query string: it may carry api_key
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
                "client_ip": client_ip,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        response.headers["X-Request-ID"] = req_id

        return response
