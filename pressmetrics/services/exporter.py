"""The exporter's object graph.

Everything a metrics request touches hangs off one Exporter: the host it
reads, the stores it writes, and the three request-path components
(rate limiter, auth gate, tiered cache).  main.create_app() puts it on
app.state so middleware and routes share a single instance, and tests
build their own with a fake host and in-memory stores.
"""

from __future__ import annotations

from dataclasses import dataclass

from pressmetrics.api.auth_gate import AuthGate
from pressmetrics.collectors.base import CollectorContext
from pressmetrics.core.config import Settings
from pressmetrics.host.interfaces import HostPlatform
from pressmetrics.services.cache import InMemoryTransientStore, TransientStore
from pressmetrics.services.credentials import CredentialStore
from pressmetrics.services.metrics_cache import MetricsCache, default_tiers
from pressmetrics.services.option_store import InMemoryOptionStore, OptionStore
from pressmetrics.services.rate_limiter import FixedWindowRateLimiter, RateLimitConfig


@dataclass
class Exporter:
    settings: Settings
    host: HostPlatform
    transient: TransientStore
    options: OptionStore
    credentials: CredentialStore
    rate_limiter: FixedWindowRateLimiter
    auth_gate: AuthGate
    cache: MetricsCache


def build_exporter(
    settings: Settings,
    host: HostPlatform,
    *,
    transient: TransientStore | None = None,
    options: OptionStore | None = None,
) -> Exporter:
    transient = transient if transient is not None else InMemoryTransientStore()
    options = options if options is not None else InMemoryOptionStore()

    credentials = CredentialStore(
        options,
        encryption_key_env=settings.encryption_key_env,
        bearer_token_env=settings.bearer_token_env,
    )
    ctx = CollectorContext(
        host=host,
        site=settings.site_name,
        prefix=settings.metric_prefix,
        store=transient,
        cache_prefix=settings.cache_prefix,
        verbose=settings.debug_log,
    )
    cache = MetricsCache(
        ctx,
        transient,
        default_tiers(
            settings.cache_ttl_fast, settings.cache_ttl_heavy, settings.cache_ttl_static
        ),
        prefix=settings.cache_prefix,
    )
    return Exporter(
        settings=settings,
        host=host,
        transient=transient,
        options=options,
        credentials=credentials,
        rate_limiter=FixedWindowRateLimiter(
            transient,
            RateLimitConfig(limit=settings.rate_limit, window=settings.rate_limit_window),
        ),
        auth_gate=AuthGate(credentials, host.operators),
        cache=cache,
    )
