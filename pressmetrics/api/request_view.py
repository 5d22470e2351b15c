"""Normalized view of an inbound metrics request.

The metrics resource is reachable through several URL shapes (REST route,
clean paths, query markers).  Whatever the shape, the rate limiter and
the auth gate see the same MetricsRequest, so neither of them depends on
Starlette.

server_vars mirrors the CGI-style environment a PHP or WSGI host exposes
(HTTP_AUTHORIZATION, HTTP_X_FORWARDED_FOR, REMOTE_ADDR, ...).  Proxies
and rewrite rules sometimes only preserve credentials there, which is
why the auth gate and the client-IP resolver both consult it.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from starlette.requests import Request


def _server_var_name(header: str) -> str:
    return "HTTP_" + header.upper().replace("-", "_")


@dataclass(frozen=True)
class MetricsRequest:
    method: str
    path: str
    headers: Mapping[str, str] = field(default_factory=dict)
    params: Mapping[str, str] = field(default_factory=dict)
    raw_headers: tuple[tuple[str, str], ...] = ()
    server_vars: Mapping[str, str] = field(default_factory=dict)
    client_host: str | None = None
    cookies: Mapping[str, str] = field(default_factory=dict)

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())

    def param(self, name: str) -> str | None:
        return self.params.get(name)

    @classmethod
    def build(
        cls,
        *,
        method: str = "GET",
        path: str = "/",
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, str] | None = None,
        client_host: str | None = None,
        cookies: Mapping[str, str] | None = None,
    ) -> MetricsRequest:
        """Construct a view from plain mappings (used by tests and adapters)."""
        raw = tuple((k, v) for k, v in (headers or {}).items())
        server_vars = {_server_var_name(k): v for k, v in raw}
        if client_host:
            server_vars["REMOTE_ADDR"] = client_host
        return cls(
            method=method.upper(),
            path=path,
            headers={k.lower(): v for k, v in raw},
            params=dict(params or {}),
            raw_headers=raw,
            server_vars=server_vars,
            client_host=client_host,
            cookies=dict(cookies or {}),
        )

    @classmethod
    def from_starlette(cls, request: Request) -> MetricsRequest:
        raw = tuple(
            (k.decode("latin-1"), v.decode("latin-1"))
            for k, v in request.scope.get("headers", [])
        )
        client_host = request.client.host if request.client else None
        server_vars = {_server_var_name(k): v for k, v in raw}
        if client_host:
            server_vars["REMOTE_ADDR"] = client_host
        return cls(
            method=request.method,
            path=request.url.path,
            headers={k.lower(): v for k, v in raw},
            params=dict(request.query_params),
            raw_headers=raw,
            server_vars=server_vars,
            client_host=client_host,
            cookies=dict(request.cookies),
        )
