"""Tiered cache for the exposition payload.

Host data changes at very different speeds.  User and post counts move
every few seconds; database and directory sizes are expensive to compute
and nobody needs them fresher than a few minutes; the platform version
changes on upgrade.  So the payload is split into three volatility
classes, each cached as finished text under its own key and TTL:

  fast    users, posts, plugins, comments/taxonomies/media   TTL 10s
  heavy   autoload, database size, directories, health       TTL 300s
  static  platform version, runtime configuration           TTL 3600s

get_metrics() checks each tier independently, rebuilds only the tiers
that missed and concatenates fast + heavy + static.

NO SINGLE-FLIGHT
-----------------
Two requests that miss the same tier at the same moment both rebuild it
and both write it back.  Collectors are pure reads of host state, so the
second write stores an equivalent payload; the cost is one extra rebuild
per TTL per concurrent scraper, which is bounded.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from pressmetrics.collectors.base import Collector, CollectorContext, run_collector
from pressmetrics.collectors.registry import (
    FAST_COLLECTORS,
    HEAVY_COLLECTORS,
    STATIC_COLLECTORS,
)
from pressmetrics.core.logging import log_collection_error
from pressmetrics.core.metrics import CACHE_OPERATIONS, COLLECTOR_ERRORS
from pressmetrics.services.cache import TransientStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TierSpec:
    name: str
    ttl: int
    collectors: Sequence[Collector]


def default_tiers(
    fast_ttl: int = 10, heavy_ttl: int = 300, static_ttl: int = 3600
) -> tuple[TierSpec, ...]:
    return (
        TierSpec("fast", fast_ttl, FAST_COLLECTORS),
        TierSpec("heavy", heavy_ttl, HEAVY_COLLECTORS),
        TierSpec("static", static_ttl, STATIC_COLLECTORS),
    )


class MetricsCache:
    def __init__(
        self,
        ctx: CollectorContext,
        store: TransientStore,
        tiers: Sequence[TierSpec] | None = None,
        *,
        prefix: str = "pressmetrics_cache",
    ) -> None:
        self._ctx = ctx
        self._store = store
        self.tiers = tuple(tiers) if tiers is not None else default_tiers()
        self.prefix = prefix

    def key(self, tier: str) -> str:
        return f"{self.prefix}:{tier}"

    async def get_metrics(self) -> str:
        parts = [await self.tier_payload(tier) for tier in self.tiers]
        return "".join(parts)

    async def tier_payload(self, tier: TierSpec) -> str:
        key = self.key(tier.name)
        cached = await self._store.get(key)
        if cached is not None:
            CACHE_OPERATIONS.labels(tier=tier.name, result="hit").inc()
            return cached

        CACHE_OPERATIONS.labels(tier=tier.name, result="miss").inc()
        payload = await self.build(tier)
        await self._store.set(key, payload, tier.ttl)
        logger.debug(
            "Rebuilt %s tier (%d bytes, ttl=%ds)",
            tier.name,
            len(payload),
            tier.ttl,
            extra={"tier": tier.name},
        )
        return payload

    async def build(self, tier: TierSpec) -> str:
        blocks = []
        for collector in tier.collectors:
            result = await run_collector(collector, self._ctx)
            if not result.ok:
                COLLECTOR_ERRORS.labels(collector=result.name).inc()
                log_collection_error(
                    logger,
                    "Collector failed",
                    {
                        "collector": result.name,
                        "tier": tier.name,
                        "error": str(result.error.cause) if result.error else "",
                    },
                    verbose=self._ctx.verbose,
                )
                continue
            blocks.append(result.text)
        return "".join(blocks)

    async def flush(self) -> None:
        await self._store.delete_pattern(f"{self.prefix}:*")
        logger.info("Metrics cache flushed")
