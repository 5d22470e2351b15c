"""Request dispatcher for the metrics resource.

Runs as middleware rather than as a route because several of the URL
shapes in routes_table (query markers on any path, the rewrite variable)
cannot be expressed as FastAPI path operations.  A matched request never
reaches the router:

  rate limiter  →  auth gate  →  tiered cache  →  text/plain response

Exceptions raised inside middleware bypass FastAPI's exception handlers,
so AuthError and RateLimitError are turned into responses here with the
same helper the handlers in main use.
"""

from __future__ import annotations

import logging

from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from pressmetrics.api.client_ip import resolve_client_ip
from pressmetrics.api.request_view import MetricsRequest
from pressmetrics.api.routes_table import match_metrics_route
from pressmetrics.core.errors import AuthError, ExporterError, RateLimitError
from pressmetrics.core.metrics import AUTH_FAILURES, RATE_LIMIT_HITS
from pressmetrics.services.exporter import Exporter

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "no-referrer",
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

SERVED_METHODS = ("GET", "HEAD")


def error_response(exc: ExporterError) -> JSONResponse:
    """JSON body and headers for an error that reaches the client."""
    status_code = getattr(exc, "status_code", 500)
    if isinstance(exc, (AuthError, RateLimitError)):
        body = exc.to_body()
    else:
        body = {"error": str(exc)}
    headers = exc.headers() if isinstance(exc, RateLimitError) else None
    return JSONResponse(body, status_code=status_code, headers=headers)


async def serve_metrics(exporter: Exporter, request: MetricsRequest) -> Response:
    """Rate limit, authenticate, then answer with the cached payload.

    Raises RateLimitError or AuthError; the caller renders them.
    """
    client_ip = resolve_client_ip(request)

    result = await exporter.rate_limiter.hit(client_ip)
    if not result.allowed:
        RATE_LIMIT_HITS.inc()
        logger.info(
            "Rate limit exceeded for %s", client_ip, extra={"client_ip": client_ip}
        )
        raise RateLimitError(result)

    try:
        await exporter.auth_gate.check(request)
    except AuthError:
        AUTH_FAILURES.inc()
        raise

    payload = await exporter.cache.get_metrics()
    charset = exporter.settings.charset
    return Response(
        content=payload.encode(charset, errors="replace"),
        status_code=200,
        media_type=f"text/plain; charset={charset}",
        headers=SECURITY_HEADERS,
    )


class MetricsDispatchMiddleware(BaseHTTPMiddleware):
    """Intercept every URL shape that means "serve metrics"."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.method not in SERVED_METHODS:
            return await call_next(request)

        route = match_metrics_route(request.url.path, request.query_params)
        if route is None:
            return await call_next(request)

        exporter: Exporter = request.app.state.exporter
        try:
            return await serve_metrics(exporter, MetricsRequest.from_starlette(request))
        except (AuthError, RateLimitError) as exc:
            return error_response(exc)
