"""Self-metrics endpoint.

Not to be confused with the site metrics the exporter publishes.  This
returns prometheus_client's default registry: the exporter's own request
counts, latencies, cache hit ratio, rejected requests and collector
failures (see pressmetrics.core.metrics), plus the process and GC
collectors the client library registers by default.

Example output:
  # HELP pressmetrics_cache_operations_total Tier cache lookups by result
  # TYPE pressmetrics_cache_operations_total counter
  pressmetrics_cache_operations_total{result="hit",tier="fast"} 1432.0
  pressmetrics_cache_operations_total{result="miss",tier="fast"} 17.0

Guarded by the same credentials as the metrics resource: request rates
and collector failures reveal how the host is being polled.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from pressmetrics.api.dependencies import require_scrape_auth

router = APIRouter(tags=["observability"])


@router.get(
    "/internal/metrics",
    include_in_schema=False,
    dependencies=[Depends(require_scrape_auth)],
)
async def self_metrics() -> Response:
    """Expose the exporter's own Prometheus metrics."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
