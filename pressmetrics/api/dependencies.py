"""FastAPI dependencies shared by the routers.

The metrics resource itself is served by the dispatch middleware; these
dependencies guard the ordinary routes (operator API, self-metrics).
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from pressmetrics.api.request_view import MetricsRequest
from pressmetrics.core.errors import AuthError
from pressmetrics.services.exporter import Exporter


def get_exporter(request: Request) -> Exporter:
    return request.app.state.exporter


def require_operator(
    request: Request,
    exporter: Annotated[Exporter, Depends(get_exporter)],
) -> MetricsRequest:
    """Only callers holding the host's administrative capability.

    Scrape credentials are not enough: the operator API can mint new ones.
    """
    view = MetricsRequest.from_starlette(request)
    if not exporter.host.operators.is_operator(view):
        raise AuthError()
    return view


async def require_scrape_auth(
    request: Request,
    exporter: Annotated[Exporter, Depends(get_exporter)],
) -> MetricsRequest:
    """Same credentials as the metrics resource: bearer, api_key or operator."""
    view = MetricsRequest.from_starlette(request)
    await exporter.auth_gate.check(view)
    return view
