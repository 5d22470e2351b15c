from __future__ import annotations

import dataclasses
import json
from pathlib import Path

import pydantic
import pytest

from pressmetrics.core.config import Settings
from pressmetrics.host.interfaces import (
    ContentCounter,
    HealthDiagnostics,
    NoOperatorSessions,
    PluginRegistry,
    RuntimeInfo,
    StorageInspector,
    UserDirectory,
)
from pressmetrics.host.provider import build_host
from pressmetrics.host.snapshot import HostSnapshot, SnapshotHost, load_snapshot
from tests.conftest import make_snapshot, run


def test_snapshot_host_satisfies_protocols() -> None:
    host = SnapshotHost(make_snapshot())
    for protocol in (
        UserDirectory,
        ContentCounter,
        PluginRegistry,
        HealthDiagnostics,
        RuntimeInfo,
        StorageInspector,
    ):
        assert isinstance(host, protocol)


def test_empty_snapshot_has_safe_defaults() -> None:
    host = SnapshotHost(HostSnapshot())
    assert host.count_users().total == 0
    assert host.count_posts("post") == {}
    assert host.count_terms("category") == 0
    assert not host.available()
    assert host.config_value("memory_limit") is None
    assert run(host.autoload_stats()) is None
    assert run(host.ping()) is True


def test_load_snapshot_from_file(tmp_path: Path) -> None:
    path = tmp_path / "host.json"
    path.write_text(
        json.dumps(
            {
                "platform_version": "6.4",
                "plugins": {"installed": ["a"], "active": ["a"]},
                "health_tests": [{"test": "https_status", "status": "good"}],
            }
        )
    )
    snapshot = load_snapshot(path)
    host = SnapshotHost(snapshot)
    assert host.platform_version() == "6.4"
    assert host.active_plugins() == ["a"]
    assert host.available()
    assert host.run_tests()[0].test == "https_status"


def test_load_snapshot_rejects_bad_types(tmp_path: Path) -> None:
    path = tmp_path / "host.json"
    path.write_text(json.dumps({"users": {"total": "many"}}))
    with pytest.raises(pydantic.ValidationError):
        load_snapshot(path)


def test_build_host_from_settings(tmp_path: Path, settings: Settings) -> None:
    path = tmp_path / "host.json"
    path.write_text(json.dumps({"users": {"total": 3}}))
    host = build_host(dataclasses.replace(settings, host_snapshot_path=str(path)))
    assert host.users.count_users().total == 3
    assert isinstance(host.operators, NoOperatorSessions)


def test_build_host_without_snapshot_serves_empty_site(settings: Settings) -> None:
    host = build_host(dataclasses.replace(settings, host_snapshot_path=None))
    assert host.users.count_users().total == 0
    assert host.runtime.platform_version() == "unknown"
