"""Operator API: credential management and cache flush."""

from __future__ import annotations

import dataclasses

from fastapi.testclient import TestClient

from pressmetrics.api.routes_table import REST_METRICS_PATH
from pressmetrics.main import create_app
from pressmetrics.services.exporter import build_exporter

ADMIN = "/api/pressmetrics/v1/admin"


def test_requires_operator_session(client: TestClient, bearer_token: str) -> None:
    resp = client.get(
        f"{ADMIN}/credentials", headers={"Authorization": f"Bearer {bearer_token}"}
    )
    assert resp.status_code == 401
    assert resp.json()["code"] == "rest_forbidden"


def test_list_credentials_masks_values(
    client: TestClient, operator_cookies: dict[str, str], bearer_token: str, api_key: str
) -> None:
    client.cookies.update(operator_cookies)
    resp = client.get(f"{ADMIN}/credentials")
    assert resp.status_code == 200
    body = resp.json()
    assert body["encryption_key_source"] == "option"
    assert body["bearer_token"]["source"] == "option"
    masked = body["bearer_token"]["masked"]
    assert masked.startswith(bearer_token[:4])
    assert masked.endswith(bearer_token[-4:])
    assert bearer_token not in resp.text
    assert api_key not in resp.text


def test_regenerate_bearer_token_invalidates_old(
    client: TestClient, operator_cookies: dict[str, str], bearer_token: str
) -> None:
    client.cookies.update(operator_cookies)
    resp = client.post(f"{ADMIN}/credentials/bearer_token/regenerate")
    assert resp.status_code == 200
    new_token = resp.json()["value"]
    assert len(new_token) == 64
    assert new_token != bearer_token

    client.cookies.clear()
    old = client.get(REST_METRICS_PATH, headers={"Authorization": f"Bearer {bearer_token}"})
    assert old.status_code == 401
    new = client.get(REST_METRICS_PATH, headers={"Authorization": f"Bearer {new_token}"})
    assert new.status_code == 200


def test_regenerate_unknown_credential_is_422(
    client: TestClient, operator_cookies: dict[str, str]
) -> None:
    client.cookies.update(operator_cookies)
    resp = client.post(f"{ADMIN}/credentials/password/regenerate")
    assert resp.status_code == 422


def test_rotate_key_keeps_tokens_valid(
    client: TestClient, operator_cookies: dict[str, str], bearer_token: str, api_key: str
) -> None:
    client.cookies.update(operator_cookies)
    resp = client.post(f"{ADMIN}/credentials/rotate-key")
    assert resp.status_code == 200
    assert resp.json() == {"status": "rotated"}

    client.cookies.clear()
    assert (
        client.get(
            REST_METRICS_PATH, headers={"Authorization": f"Bearer {bearer_token}"}
        ).status_code
        == 200
    )
    assert client.get(REST_METRICS_PATH, params={"api_key": api_key}).status_code == 200


def test_environment_credentials_are_read_only(settings, host, store) -> None:
    exporter = build_exporter(
        dataclasses.replace(
            settings, encryption_key_env="a2V5LW1hdGVyaWFs", bearer_token_env="env-token"
        ),
        host,
        transient=store,
    )
    client = TestClient(create_app(exporter))
    client.cookies.set("pressmetrics_operator", "operator-session")

    listed = client.get(f"{ADMIN}/credentials").json()
    assert listed["encryption_key_source"] == "environment"
    assert listed["bearer_token"]["source"] == "environment"

    assert client.post(f"{ADMIN}/credentials/bearer_token/regenerate").status_code == 409
    assert client.post(f"{ADMIN}/credentials/rotate-key").status_code == 409
    assert client.post(f"{ADMIN}/credentials/api_key/regenerate").status_code == 200


def test_flush_cache_forces_rebuild(
    client: TestClient,
    operator_cookies: dict[str, str],
    bearer_token: str,
    snapshot_host,
) -> None:
    headers = {"Authorization": f"Bearer {bearer_token}"}
    client.get(REST_METRICS_PATH, headers=headers)
    snapshot_host.snapshot.users.total = 77

    client.cookies.update(operator_cookies)
    assert client.post(f"{ADMIN}/cache/flush").json() == {"status": "flushed"}
    client.cookies.clear()

    resp = client.get(REST_METRICS_PATH, headers=headers)
    assert 'role="total"} 77' in resp.text
