"""Authentication gate: scheme order and header fallbacks."""

from __future__ import annotations

import pytest

from pressmetrics.api.auth_gate import AuthGate, extract_auth_header
from pressmetrics.api.request_view import MetricsRequest
from pressmetrics.core.errors import AuthError
from pressmetrics.services.credentials import CredentialStore
from pressmetrics.services.option_store import InMemoryOptionStore
from tests.conftest import CookieOperators, OPERATOR_COOKIE, run


@pytest.fixture
def credentials() -> CredentialStore:
    tokens = iter(["bearer-secret", "key-secret"])
    store = CredentialStore(InMemoryOptionStore(), token_factory=tokens.__next__)
    run(store.ensure_tokens())
    return store


@pytest.fixture
def gate(credentials: CredentialStore) -> AuthGate:
    return AuthGate(credentials, CookieOperators())


def _request(**kwargs) -> MetricsRequest:
    return MetricsRequest.build(path="/metrics", **kwargs)


def test_bearer_token(gate: AuthGate) -> None:
    run(gate.check(_request(headers={"Authorization": "Bearer bearer-secret"})))


def test_bearer_token_is_trimmed(gate: AuthGate) -> None:
    run(gate.check(_request(headers={"Authorization": "Bearer   bearer-secret  "})))


def test_wrong_bearer_rejected(gate: AuthGate) -> None:
    with pytest.raises(AuthError) as excinfo:
        run(gate.check(_request(headers={"Authorization": "Bearer nope"})))
    assert excinfo.value.code == "rest_forbidden"
    assert excinfo.value.to_body()["data"] == {"status": 401}


def test_non_bearer_scheme_rejected(gate: AuthGate) -> None:
    with pytest.raises(AuthError):
        run(gate.check(_request(headers={"Authorization": "Basic bearer-secret"})))


def test_api_key_parameter(gate: AuthGate) -> None:
    run(gate.check(_request(params={"api_key": "key-secret"})))


def test_api_key_is_not_a_bearer(gate: AuthGate) -> None:
    with pytest.raises(AuthError):
        run(gate.check(_request(headers={"Authorization": "Bearer key-secret"})))


def test_wrong_bearer_falls_through_to_api_key(gate: AuthGate) -> None:
    run(
        gate.check(
            _request(
                headers={"Authorization": "Bearer nope"}, params={"api_key": "key-secret"}
            )
        )
    )


def test_operator_session(gate: AuthGate) -> None:
    run(gate.check(_request(cookies={OPERATOR_COOKIE: "operator-session"})))


def test_nothing_presented(gate: AuthGate) -> None:
    with pytest.raises(AuthError):
        run(gate.check(_request()))


def test_env_bearer_token_accepted() -> None:
    credentials = CredentialStore(
        InMemoryOptionStore(), encryption_key_env="a2V5", bearer_token_env="env-token"
    )
    gate = AuthGate(credentials)
    run(gate.check(_request(headers={"Authorization": "Bearer env-token"})))


def test_header_fallback_http_authorization() -> None:
    request = _request(headers={"HTTP_AUTHORIZATION": "Bearer x"})
    assert extract_auth_header(request) == "Bearer x"


def test_header_fallback_redirect_server_var() -> None:
    request = MetricsRequest(
        method="GET",
        path="/metrics",
        server_vars={"REDIRECT_HTTP_AUTHORIZATION": "Bearer y"},
    )
    assert extract_auth_header(request) == "Bearer y"


def test_header_fallback_raw_scan() -> None:
    request = MetricsRequest(
        method="GET", path="/metrics", raw_headers=(("AUTHORIZATION", "Bearer z"),)
    )
    assert extract_auth_header(request) == "Bearer z"


def test_no_header() -> None:
    assert extract_auth_header(_request()) is None
