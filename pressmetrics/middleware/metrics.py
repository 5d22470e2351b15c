"""Prometheus self-metrics middleware: instruments every HTTP request.

For each request, this middleware:
  1. Increments the ACTIVE_REQUESTS gauge (decrement on completion)
  2. Times the request duration
  3. On completion: increments REQUEST_COUNT (by method/endpoint/status)
     and observes the duration in the REQUEST_DURATION histogram

ENDPOINT LABELS
----------------
The metrics resource answers on many URLs, including query markers on
arbitrary paths.  Labelling by raw path would let any client mint a new
time series per request (/a?pressmetrics, /b?pressmetrics ...), so
matched metrics requests are labelled by route name ("metrics:rest",
"metrics:clean_path" ...), other routed requests by their path template
and everything else (scanners, typos) as "other".

The /internal/metrics endpoint itself is skipped so scrapes of the
self-metrics do not inflate the request count.
"""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Match

from pressmetrics.api.routes_table import match_metrics_route
from pressmetrics.core.metrics import ACTIVE_REQUESTS, REQUEST_COUNT, REQUEST_DURATION

SELF_METRICS_PATH = "/internal/metrics"
UNMATCHED_ENDPOINT = "other"


def endpoint_label(request: Request) -> str:
    route = match_metrics_route(request.url.path, request.query_params)
    if route is not None:
        return f"metrics:{route}"
    for app_route in request.app.router.routes:
        match, _ = app_route.matches(request.scope)
        if match == Match.FULL:
            return getattr(app_route, "path", UNMATCHED_ENDPOINT)
    return UNMATCHED_ENDPOINT


class MetricsMiddleware(BaseHTTPMiddleware):
    """Collect Prometheus metrics for every HTTP request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path == SELF_METRICS_PATH:
            return await call_next(request)

        endpoint = endpoint_label(request)
        ACTIVE_REQUESTS.inc()
        start = time.monotonic()
        status_code: str | None = None

        try:
            response = await call_next(request)
            status_code = str(response.status_code)
        except Exception:
            # Starlette turns an unhandled exception into a 500; record it.
            status_code = "500"
            raise
        finally:
            duration = time.monotonic() - start
            ACTIVE_REQUESTS.dec()
            REQUEST_COUNT.labels(
                method=request.method,
                endpoint=endpoint,
                status_code=status_code if status_code is not None else "500",
            ).inc()
            REQUEST_DURATION.labels(
                method=request.method,
                endpoint=endpoint,
            ).observe(duration)

        return response
