"""Client IP resolution for rate-limit keys.

Headers are checked in a fixed priority order before the connection
address.  The first comma-separated value wins (X-Forwarded-For lists the
original client first).  Private and reserved addresses are rejected so
an internal hop never becomes the key; when nothing valid is found the
key is "unknown", shared by all such clients.

KNOWN GAP: these headers are trusted without checking that the request
actually came through a trusted proxy.  A client talking to the exporter
directly can forge X-Forwarded-For and get a fresh counter per request.
"""

from __future__ import annotations

import ipaddress

from pressmetrics.api.request_view import MetricsRequest

UNKNOWN_CLIENT = "unknown"

IP_SERVER_VARS = (
    "HTTP_CF_CONNECTING_IP",  # Cloudflare
    "HTTP_X_REAL_IP",  # nginx
    "HTTP_X_FORWARDED_FOR",
    "HTTP_X_FORWARDED",
    "HTTP_X_CLUSTER_CLIENT_IP",
    "HTTP_CLIENT_IP",
    "REMOTE_ADDR",
)


def is_public_ip(candidate: str) -> bool:
    try:
        ip = ipaddress.ip_address(candidate)
    except ValueError:
        return False
    return not (
        ip.is_private
        or ip.is_reserved
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_unspecified
        or ip.is_multicast
    )


def resolve_client_ip(request: MetricsRequest) -> str:
    for var in IP_SERVER_VARS:
        raw = request.server_vars.get(var, "").strip()
        if not raw:
            continue
        candidate = raw.split(",", 1)[0].strip()
        if is_public_ip(candidate):
            return candidate
    return UNKNOWN_CLIENT
