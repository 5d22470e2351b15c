"""Authentication gate for the metrics resource.

Three independent schemes, tried in strict order; the first success wins:

  1. Bearer token in the Authorization header
  2. api_key request parameter
  3. An operator session on the host (administrative capability)

Anything else raises AuthError, which the app turns into a 401 JSON body.
The gate itself neither logs failures nor mutates state: a scraper with a
stale token would otherwise fill the log every scrape interval.  The
dispatcher decides what to record.

Secrets are compared with hmac.compare_digest so the comparison time
does not depend on how many leading characters match.
"""

from __future__ import annotations

import hmac
import re

from pressmetrics.api.request_view import MetricsRequest
from pressmetrics.core.errors import AuthError
from pressmetrics.host.interfaces import NoOperatorSessions, OperatorSessions
from pressmetrics.services.credentials import CredentialStore

_BEARER_RE = re.compile(r"Bearer\s+(.+)", re.DOTALL)


def extract_auth_header(request: MetricsRequest) -> str | None:
    """Find the Authorization header, trying every place hosts hide it.

    Rewrite rules and CGI bridges commonly strip or rename it, so:
      1. the canonical header accessor
      2. a raw "HTTP_AUTHORIZATION" header forwarded verbatim
      3. the CGI-style server variables (including Apache's REDIRECT_ copy)
      4. a case-insensitive scan of every raw header
    """
    value = request.header("authorization")
    if not value:
        value = request.header("http_authorization")
    if not value:
        value = request.server_vars.get("HTTP_AUTHORIZATION") or request.server_vars.get(
            "REDIRECT_HTTP_AUTHORIZATION"
        )
    if not value:
        for name, raw in request.raw_headers:
            if name.lower() == "authorization" and raw:
                value = raw
                break
    return value or None


def _matches(secret: str | None, presented: str) -> bool:
    if not secret or not presented:
        return False
    return hmac.compare_digest(secret.encode(), presented.encode())


class AuthGate:
    def __init__(
        self,
        credentials: CredentialStore,
        operators: OperatorSessions | None = None,
    ) -> None:
        self._credentials = credentials
        self._operators = operators or NoOperatorSessions()

    async def check(self, request: MetricsRequest) -> None:
        """Return None when authorized, raise AuthError otherwise."""
        header = extract_auth_header(request)
        if header:
            match = _BEARER_RE.search(header)
            if match and _matches(
                await self._credentials.bearer_token(), match.group(1).strip()
            ):
                return

        api_key = request.param("api_key")
        if api_key and _matches(await self._credentials.api_key(), api_key):
            return

        if self._operators.is_operator(request):
            return

        raise AuthError()
