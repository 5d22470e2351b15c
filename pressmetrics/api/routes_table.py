"""URL shapes that mean "serve the metrics payload".

Scrapers are configured once and then forgotten, and hosts differ in
what survives their URL rewriting.  So the same resource answers on
several shapes, checked in order:

  1. query markers on any path      /anything?pressmetrics
                                    /anything?pressmetrics_metrics
  2. clean paths                    /pressmetrics/metrics, /pressmetrics, /metrics
                                    (trailing slash optional)
  3. rewrite query variable         ?pressmetrics_endpoint=metrics
  4. REST route                     /api/pressmetrics/v1/metrics

A path with characters outside [a-zA-Z0-9/_-] never matches any shape,
query markers included.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass

logger = logging.getLogger(__name__)

REST_METRICS_PATH = "/api/pressmetrics/v1/metrics"

QUERY_MARKERS = ("pressmetrics", "pressmetrics_metrics")
CLEAN_PATHS = ("pressmetrics/metrics", "pressmetrics", "metrics")
REWRITE_VAR = "pressmetrics_endpoint"

_SAFE_PATH_RE = re.compile(r"^[a-zA-Z0-9/_-]+$")


@dataclass(frozen=True, slots=True)
class RouteMatcher:
    name: str
    matches: Callable[[str, Mapping[str, str]], bool]


def _query_marker(path: str, params: Mapping[str, str]) -> bool:
    return any(marker in params for marker in QUERY_MARKERS)


def _clean_path(path: str, params: Mapping[str, str]) -> bool:
    return path.strip("/") in CLEAN_PATHS


def _rewrite_var(path: str, params: Mapping[str, str]) -> bool:
    return params.get(REWRITE_VAR) == "metrics"


def _rest_route(path: str, params: Mapping[str, str]) -> bool:
    return path.rstrip("/") == REST_METRICS_PATH


ROUTES: tuple[RouteMatcher, ...] = (
    RouteMatcher("query_marker", _query_marker),
    RouteMatcher("clean_path", _clean_path),
    RouteMatcher("rewrite_var", _rewrite_var),
    RouteMatcher("rest", _rest_route),
)


def is_safe_path(path: str) -> bool:
    trimmed = path.strip("/")
    return not trimmed or _SAFE_PATH_RE.fullmatch(trimmed) is not None


def match_metrics_route(
    path: str,
    params: Mapping[str, str],
    routes: tuple[RouteMatcher, ...] = ROUTES,
) -> str | None:
    """Name of the first matching route, or None."""
    if not is_safe_path(path):
        # DEBUG: every favicon.ico and openapi.json lands here
        logger.debug("Invalid characters in request path", extra={"path": path})
        return None
    for route in routes:
        if route.matches(path, params):
            return route.name
    return None
