"""Persistent option storage.

Holds the three long-lived values the exporter owns: the encrypted
bearer token, the encrypted API key and, when no key is supplied via the
environment, the encryption key itself.  Each is a single opaque string.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class OptionStore(Protocol):
    async def get(self, name: str) -> str | None: ...

    async def set(self, name: str, value: str) -> None: ...

    async def delete(self, name: str) -> None: ...


class InMemoryOptionStore:
    """Per-process options, for tests and single-instance dev."""

    def __init__(self) -> None:
        self._options: dict[str, str] = {}

    async def get(self, name: str) -> str | None:
        return self._options.get(name)

    async def set(self, name: str, value: str) -> None:
        self._options[name] = value

    async def delete(self, name: str) -> None:
        self._options.pop(name, None)

    def clear(self) -> None:
        self._options.clear()


class RedisOptionStore:
    """Options in Redis without expiry.

    Enable persistence (AOF or RDB) on the Redis server, otherwise a
    restart regenerates every secret and scrapers lose access.
    """

    _PREFIX = "pressmetrics:option:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def get(self, name: str) -> str | None:
        return await self._redis.get(f"{self._PREFIX}{name}")

    async def set(self, name: str, value: str) -> None:
        await self._redis.set(f"{self._PREFIX}{name}", value)

    async def delete(self, name: str) -> None:
        await self._redis.delete(f"{self._PREFIX}{name}")
