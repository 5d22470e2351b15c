from __future__ import annotations

from pressmetrics.core.errors import (
    AuthError,
    CollectionError,
    CredentialError,
    ExporterError,
    RateLimitError,
)
from pressmetrics.services.rate_limiter import RateLimitResult


def test_auth_error_body() -> None:
    exc = AuthError()
    assert exc.status_code == 401
    assert exc.to_body() == {
        "code": "rest_forbidden",
        "message": "Authentication required for metrics endpoint.",
        "data": {"status": 401},
    }


def test_rate_limit_error_headers() -> None:
    exc = RateLimitError(
        RateLimitResult(
            allowed=False, remaining=0, limit=60, window=60, reset_at=1_700_000_060.7
        )
    )
    assert exc.status_code == 429
    assert exc.to_body() == {"error": "Rate limit exceeded. Please try again later."}
    assert exc.headers() == {
        "Retry-After": "60",
        "X-RateLimit-Limit": "60",
        "X-RateLimit-Remaining": "0",
        "X-RateLimit-Reset": "1700000060",
    }


def test_collection_error_keeps_cause() -> None:
    cause = RuntimeError("boom")
    exc = CollectionError("users", cause)
    assert exc.collector == "users"
    assert exc.cause is cause
    assert "users" in str(exc)


def test_taxonomy() -> None:
    for cls in (AuthError, RateLimitError, CollectionError, CredentialError):
        assert issubclass(cls, ExporterError)
    assert CredentialError.status_code == 409
