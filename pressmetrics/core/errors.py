"""Exception taxonomy.

Only AuthError, RateLimitError and CredentialError ever reach a client;
they are translated to JSON bodies by the handlers in pressmetrics.main.
CollectionError and EncryptionError are raised and recovered inside the
exporter: a scrape always gets whatever metrics could be gathered.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pressmetrics.services.rate_limiter import RateLimitResult


class ExporterError(Exception):
    """Base class for every error raised by pressmetrics."""


class AuthError(ExporterError):
    """Missing or invalid credential.  Never retried."""

    status_code = 401

    def __init__(
        self,
        code: str = "rest_forbidden",
        message: str = "Authentication required for metrics endpoint.",
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def to_body(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "data": {"status": self.status_code},
        }


class RateLimitError(ExporterError):
    """Client exceeded its request budget for the current window."""

    status_code = 429

    def __init__(self, result: RateLimitResult) -> None:
        super().__init__("Rate limit exceeded. Please try again later.")
        self.result = result

    def to_body(self) -> dict:
        return {"error": str(self)}

    def headers(self) -> dict[str, str]:
        return {
            "Retry-After": str(self.result.window),
            "X-RateLimit-Limit": str(self.result.limit),
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": str(int(self.result.reset_at)),
        }


class CollectionError(ExporterError):
    """A single data source failed; its block is omitted from the payload."""

    def __init__(self, collector: str, cause: BaseException) -> None:
        super().__init__(f"collector {collector!r} failed: {cause}")
        self.collector = collector
        self.cause = cause


class EncryptionError(ExporterError):
    """Cipher support is unavailable; secrets degrade to reversible encoding."""


class CredentialError(ExporterError):
    """An operator asked for something the credential source cannot do."""

    status_code = 409
