"""Redis connection management.

This module mirrors the pattern in engine.py: when REDIS_URL is
configured, we create a real connection pool; when it's None (local dev,
tests, a single exporter process), the transient and option stores fall
back to in-memory implementations and no Redis server is needed.

WHY REDIS?
----------
The exporter keeps two kinds of state:
  - Ephemeral: tier cache payloads and per-client rate-limit counters.
    Both carry a TTL and Redis expires them for us (SETEX, INCR+EXPIRE).
  - Long-lived: the encrypted bearer token, the encrypted API key and the
    encryption key.  Stored without expiry.

With several exporter replicas behind a load balancer, keeping that state
in Redis means every replica serves the same cached payload, counts the
same rate-limit window and accepts the same credentials.

The trade-off: Redis data is less durable than a database.  Enable
persistence on the server or a restart regenerates every secret and
scrapers lose access until reconfigured.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from pressmetrics.core.config import SETTINGS

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Conditional Redis client (None when REDIS_URL is not set)
# ---------------------------------------------------------------------------
# Every consumer of redis_pool checks for None and falls back to in-memory.

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,  # return str instead of bytes: less casting
        max_connections=10,
    )
else:
    redis_pool = None


@asynccontextmanager
async def lifespan_redis():
    """Startup/shutdown hook for Redis: mirrors lifespan_db()."""
    if redis_pool is None:
        logger.info("No REDIS_URL configured, cache, counters and options are in-memory")
        yield
        return

    try:
        await redis_pool.ping()  # type: ignore[misc]  # redis stubs mistype async ping as bool
        logger.info("Redis connected")
    except Exception:
        # Keep serving; /ready reports the outage and requests that touch
        # Redis will fail until it is back.
        logger.exception("Redis connection failed on startup")
        yield
        return

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
