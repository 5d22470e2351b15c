"""The exporter's own process metrics, via the Prometheus client library.

Two kinds of metrics live in this service and they must not be confused:

1. SITE METRICS: what the exporter exists to publish (users, posts,
   plugins, health checks ...).  They describe the host application and
   are rendered by hand in pressmetrics.exposition, because every sample
   carries the site label and the payload is cached as text per tier.

2. SELF METRICS: defined here.  They describe the exporter itself:
   how many scrapes it answered, how long they took, how often the
   cache was hit and which collectors failed.  They are served on
   /internal/metrics by prometheus_client's own generate_latest().

Keeping them apart means a broken site collector never corrupts the
exporter's own telemetry, and vice versa.

METRIC TYPES USED
-----------------
COUNTER   Only goes up.  Scrapes served, cache hits, rejected requests.
            Query with rate(): rate(pressmetrics_cache_operations_total[5m]).
GAUGE     Goes up and down.  Requests in flight right now.
HISTOGRAM Request durations in buckets, so Prometheus can compute
            percentiles with histogram_quantile().  A cached scrape is a
            few milliseconds; a heavy-tier rebuild walks directories and
            can take seconds, so the buckets reach 10s.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "pressmetrics_http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "pressmetrics_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    # 5ms..50ms   cached payload
    # 100ms..1s   fast/static tier rebuild
    # 2.5s+       heavy tier rebuild (directory walks, schema queries)
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

ACTIVE_REQUESTS = Gauge(
    "pressmetrics_http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Exporter pipeline metrics
# ---------------------------------------------------------------------------
# Incremented in the modules that own the behavior.

RATE_LIMIT_HITS = Counter(
    "pressmetrics_rate_limit_hits_total",
    "Metrics requests rejected by rate limiting (429s)",
)

AUTH_FAILURES = Counter(
    "pressmetrics_auth_failures_total",
    "Metrics requests rejected by the authentication gate (401s)",
)

CACHE_OPERATIONS = Counter(
    "pressmetrics_cache_operations_total",
    "Tier cache lookups by result",
    ["tier", "result"],  # tier: fast/heavy/static, result: hit/miss
)

COLLECTOR_ERRORS = Counter(
    "pressmetrics_collector_errors_total",
    "Collector runs that raised and contributed nothing",
    ["collector"],
)
