#!/usr/bin/env python3
"""Load test script: demonstrates the scrape rate limit.

RUN:  PRESSMETRICS_TOKEN=<bearer> python scripts/load_test_rate_limit.py

Sends TOTAL_REQUESTS to the metrics resource in rapid succession and
prints how many were served (200), throttled (429) or refused (401).

Prerequisites:
  - The exporter must be running: uvicorn pressmetrics.main:app --port 8000
  - A bearer token: set PRESSMETRICS_BEARER_TOKEN and
    PRESSMETRICS_ENCRYPTION_KEY on the server, and pass the same token
    here as PRESSMETRICS_TOKEN.  Without one every request is a 401,
    which still shows the limiter (it runs before authentication).

Requests from localhost resolve to client "unknown", so every request
in this script shares one counter.
"""

from __future__ import annotations

import os
import time

import httpx

BASE_URL = os.environ.get("PRESSMETRICS_URL", "http://localhost:8000")
METRICS_PATH = "/api/pressmetrics/v1/metrics"
TOTAL_REQUESTS = 100


def main() -> None:
    print("Scrape Rate Limit Load Test")
    print("=" * 50)
    print(f"Target: {BASE_URL}{METRICS_PATH}")
    print(f"Total requests: {TOTAL_REQUESTS}")
    print()

    token = os.environ.get("PRESSMETRICS_TOKEN", "")
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    if not token:
        print("No PRESSMETRICS_TOKEN set, expect 401s before the limit kicks in")
        print()

    results: dict[int, int] = {}
    retry_after = None
    start = time.monotonic()

    with httpx.Client(base_url=BASE_URL, timeout=30) as client:
        for i in range(TOTAL_REQUESTS):
            resp = client.get(METRICS_PATH, headers=headers)
            results[resp.status_code] = results.get(resp.status_code, 0) + 1
            if resp.status_code == 429 and retry_after is None:
                retry_after = resp.headers.get("Retry-After")

            if (i + 1) % 20 == 0:
                print(f"  Sent {i + 1}/{TOTAL_REQUESTS} requests...")

    elapsed = time.monotonic() - start

    print()
    print(f"Results after {TOTAL_REQUESTS} requests ({elapsed:.2f}s):")
    print("─" * 40)

    served = results.get(200, 0)
    refused = results.get(401, 0)
    throttled = results.get(429, 0)
    other = sum(v for k, v in results.items() if k not in (200, 401, 429))

    print(f"  Served   (200): {served:>4}")
    print(f"  Refused  (401): {refused:>4}")
    print(f"  Throttled(429): {throttled:>4}")
    if other:
        print(f"  Other:          {other:>4}")

    print()
    print("Fixed window: 60 requests per 60 seconds (default)")
    print()

    if throttled > 0:
        print("Rate limiting is working correctly.")
        print(f"Request 61 onwards was throttled, Retry-After: {retry_after}")
    else:
        print("WARNING: No requests were throttled.")
        print("Check PRESSMETRICS_RATE_LIMIT, or a proxy header giving each request a new IP.")


if __name__ == "__main__":
    main()
