"""Health and readiness endpoints.

LIVENESS vs READINESS
----------------------
  /health (liveness):
    "Is this process alive?"  Always 200 while the event loop answers.
    The body reports each dependency so a human can see what is wrong,
    but a degraded dependency never fails liveness: restarting the
    exporter does not bring Redis back.

  /ready (readiness):
    "Can this instance serve a scrape right now?"  503 when a configured
    Redis or database is unreachable.  Redis carries the credentials and
    the cache, so without it every scrape would fail; the database only
    feeds heavy-tier storage metrics, but an exporter reporting a broken
    database as healthy would hide exactly the outage it should expose.

Neither endpoint requires authentication and neither touches the host
collectors: probes must stay cheap and must not warm or evict the cache.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response

from pressmetrics.db import engine as db_engine
from pressmetrics.db.redis import redis_pool

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _dependency_checks() -> dict[str, str]:
    checks: dict[str, str] = {}

    if redis_pool is not None:
        try:
            await redis_pool.ping()  # type: ignore[misc]
            checks["redis"] = "ok"
        except Exception as exc:
            logger.warning("Redis health check failed: %s", exc)
            checks["redis"] = "degraded"
    else:
        checks["redis"] = "not_configured"

    if db_engine.engine is not None:
        try:
            await db_engine.ping_database()
            checks["database"] = "ok"
        except Exception as exc:
            logger.warning("Database health check failed: %s", exc)
            checks["database"] = "degraded"
    else:
        checks["database"] = "not_configured"

    return checks


@router.get("/health")
async def health() -> dict:
    """Liveness probe + dependency status.

    Returns 200 even when degraded; the status field says so.
    """
    checks = await _dependency_checks()
    overall = "degraded" if "degraded" in checks.values() else "ok"
    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    """Readiness probe: 503 when a configured dependency is unreachable."""
    checks = await _dependency_checks()
    if "degraded" in checks.values():
        return Response(status_code=503)
    return Response(status_code=200)
