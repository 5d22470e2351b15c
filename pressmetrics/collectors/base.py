"""Shared plumbing for data collectors.

A collector is an async function taking a CollectorContext and returning
exposition text for one host subsystem.  Collectors only read host state;
running one twice in a row yields the same text unless the host changed.

Collectors are allowed to raise.  run_collector() turns the outcome into
a CollectorResult, so the caller (the tiered cache) sees failures as
values and decides what to do with them instead of every collector
swallowing its own exceptions.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass

from pressmetrics.core.errors import CollectionError
from pressmetrics.exposition.formatter import MetricBlock
from pressmetrics.host.interfaces import HostPlatform
from pressmetrics.services.cache import TransientStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CollectorContext:
    host: HostPlatform
    site: str
    prefix: str = "cms"
    store: TransientStore | None = None
    cache_prefix: str = "pressmetrics_cache"
    verbose: bool = False

    def metric(self, suffix: str) -> str:
        return f"{self.prefix}_{suffix}"

    def block(self) -> MetricBlock:
        return MetricBlock(site=self.site)


Collector = Callable[[CollectorContext], Awaitable[str]]


@dataclass(frozen=True, slots=True)
class CollectorResult:
    name: str
    text: str = ""
    error: CollectionError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def collector_name(collector: Collector) -> str:
    return getattr(collector, "__name__", repr(collector)).removeprefix("collect_")


async def run_collector(collector: Collector, ctx: CollectorContext) -> CollectorResult:
    name = collector_name(collector)
    try:
        text = await collector(ctx)
    except Exception as exc:
        return CollectorResult(name=name, error=CollectionError(name, exc))
    return CollectorResult(name=name, text=text)


def as_count(value: object) -> int:
    """Best-effort integer for host-supplied counts; anything odd is 0."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return max(0, value)
    if isinstance(value, float):
        return max(0, int(value))
    if isinstance(value, str):
        try:
            return max(0, int(float(value.strip())))
        except ValueError:
            return 0
    return 0


def is_numeric(value: object) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    if isinstance(value, str):
        try:
            float(value.strip())
        except ValueError:
            return False
        return True
    return False


def mapping_or_empty(value: object) -> Mapping[str, object]:
    return value if isinstance(value, Mapping) else {}
