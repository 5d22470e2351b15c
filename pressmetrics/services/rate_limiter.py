"""Per-client rate limiting with a fixed window counter.

A scraper polls every 15-60 seconds.  Anything hitting the metrics
resource more than once a second for a full minute is misconfigured or
hostile, so the policy is deliberately blunt:

  - one counter per client IP, created by the first request
  - every request increments it, allowed or not
  - the counter expires 60 seconds after it was created
  - request number 61 inside that window is rejected

FIXED WINDOW, NOT TOKEN BUCKET
--------------------------------
A fixed window lets a client send 60 requests at the end of one window
and 60 more at the start of the next.  For a soft limit in front of a
cached payload that burst is harmless, and the fixed window needs
nothing but INCR and a TTL from the transient store: no timestamps, no
refill arithmetic, no cleanup.  Window resets are implicit in the
store's expiry.

Under concurrent requests near the window boundary the counter may be
off by a few.  That is accepted for a soft limit.
"""

from __future__ import annotations

import hashlib
import time
from collections.abc import Callable
from dataclasses import dataclass

from pressmetrics.services.cache import TransientStore


@dataclass(frozen=True, slots=True)
class RateLimitResult:
    """The outcome of a rate limit check.

    allowed:    True if the request may proceed.
    remaining:  Requests left in the current window.
    limit:      Requests allowed per window.
    window:     Window length in seconds (also the Retry-After value).
    reset_at:   Unix timestamp at which the current window ends.
    """

    allowed: bool
    remaining: int
    limit: int
    window: int
    reset_at: float


@dataclass(frozen=True, slots=True)
class RateLimitConfig:
    limit: int = 60
    window: int = 60


def rate_limit_key(client_ip: str) -> str:
    # Hashing keeps IPv6 colons and "unknown" out of the key namespace
    digest = hashlib.md5(client_ip.encode(), usedforsecurity=False).hexdigest()
    return f"ratelimit:{digest}"


class FixedWindowRateLimiter:
    def __init__(
        self,
        store: TransientStore,
        config: RateLimitConfig | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self.config = config or RateLimitConfig()
        self._clock = clock

    async def hit(self, client_ip: str) -> RateLimitResult:
        count, ttl = await self._store.incr(
            rate_limit_key(client_ip), self.config.window
        )
        allowed = count <= self.config.limit
        return RateLimitResult(
            allowed=allowed,
            remaining=max(0, self.config.limit - count),
            limit=self.config.limit,
            window=self.config.window,
            reset_at=self._clock() + ttl,
        )

    async def allow(self, client_ip: str) -> bool:
        return (await self.hit(client_ip)).allowed

    async def reset(self, client_ip: str) -> None:
        await self._store.delete(rate_limit_key(client_ip))
