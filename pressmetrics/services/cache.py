"""Transient (TTL-bearing) key-value store.

Two consumers share this store:

  1. The tiered metrics cache: one entry per volatility class
     (fast / heavy / static), each with its own TTL.
  2. The rate limiter: one counter per client IP, expiring at the end
     of its window.

Neither consumer takes a lock.  Both rely on the store's own atomic
operations: SETEX for cache entries, INCR + EXPIRE (in one Lua script on
Redis) for counters.  Expiry is the only invalidation mechanism the rate
limiter needs; the metrics cache also supports an explicit flush.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Protocol, runtime_checkable


@runtime_checkable
class TransientStore(Protocol):
    async def get(self, key: str) -> str | None:
        """Fetch a value.  Returns None when missing or expired."""
        ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store a value that expires after ttl_seconds."""
        ...

    async def delete(self, key: str) -> None: ...

    async def delete_pattern(self, pattern: str) -> None:
        """Delete all keys matching a trailing-glob pattern (e.g. 'cache:*')."""
        ...

    async def incr(self, key: str, ttl_seconds: int) -> tuple[int, int]:
        """Increment a counter, starting its TTL on creation.

        Returns (new_count, seconds_until_expiry).  The TTL is NOT
        extended by later increments, so the counter describes a fixed
        window that began with the first increment.
        """
        ...


class InMemoryTransientStore:
    """Single-process store with TTL enforcement.

    The clock is injectable so tests can step past a TTL without
    sleeping.  Expired entries are dropped lazily on access.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        # key -> (value, expires_at)
        self._store: dict[str, tuple[str, float]] = {}

    def _live(self, key: str) -> tuple[str, float] | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        if entry[1] <= self._clock():
            del self._store[key]
            return None
        return entry

    async def get(self, key: str) -> str | None:
        entry = self._live(key)
        return entry[0] if entry else None

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._store[key] = (value, self._clock() + ttl_seconds)

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    async def delete_pattern(self, pattern: str) -> None:
        prefix = pattern.rstrip("*")
        for k in [k for k in self._store if k.startswith(prefix)]:
            del self._store[k]

    async def incr(self, key: str, ttl_seconds: int) -> tuple[int, int]:
        now = self._clock()
        entry = self._live(key)
        if entry is None:
            expires_at = now + ttl_seconds
            count = 1
        else:
            count = int(entry[0]) + 1
            expires_at = entry[1]
        self._store[key] = (str(count), expires_at)
        return count, max(0, int(round(expires_at - now)))

    def clear(self) -> None:
        self._store.clear()


class RedisTransientStore:
    """Redis-backed store: shared across exporter instances."""

    # Key prefix prevents collisions with the option store and with
    # whatever else the host keeps in the same Redis database.
    _PREFIX = "pressmetrics:transient:"

    # KEYS[1] = counter key, ARGV[1] = window seconds
    # Returns: {count, ttl_seconds}
    _INCR_SCRIPT = """
    local count = redis.call('INCR', KEYS[1])
    if count == 1 then
        redis.call('EXPIRE', KEYS[1], tonumber(ARGV[1]))
    end
    local ttl = redis.call('TTL', KEYS[1])
    if ttl < 0 then
        -- Counter survived without an expiry (e.g. restored snapshot)
        redis.call('EXPIRE', KEYS[1], tonumber(ARGV[1]))
        ttl = tonumber(ARGV[1])
    end
    return {count, ttl}
    """

    def __init__(self, redis_client) -> None:
        self._redis = redis_client
        self._script = None

    def _get_script(self):
        if self._script is None:
            self._script = self._redis.register_script(self._INCR_SCRIPT)
        return self._script

    async def get(self, key: str) -> str | None:
        return await self._redis.get(f"{self._PREFIX}{key}")

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._redis.setex(f"{self._PREFIX}{key}", ttl_seconds, value)

    async def delete(self, key: str) -> None:
        await self._redis.delete(f"{self._PREFIX}{key}")

    async def delete_pattern(self, pattern: str) -> None:
        # SCAN rather than KEYS: cursor-based, never blocks the server
        cursor = 0
        while True:
            cursor, keys = await self._redis.scan(
                cursor, match=f"{self._PREFIX}{pattern}", count=100
            )
            if keys:
                await self._redis.delete(*keys)
            if cursor == 0:
                break

    async def incr(self, key: str, ttl_seconds: int) -> tuple[int, int]:
        script = self._get_script()
        count, ttl = await script(keys=[f"{self._PREFIX}{key}"], args=[ttl_seconds])
        return int(count), int(ttl)
