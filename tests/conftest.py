from __future__ import annotations

import asyncio
import dataclasses
import logging
import os
import sys
from pathlib import Path

# Ensure repo root is on sys.path so `import pressmetrics` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Settings are read at import time; keep tests off real backends.
os.environ["APP_ENV"] = "test"
for _var in (
    "REDIS_URL",
    "DATABASE_URL",
    "PRESSMETRICS_HOST_SNAPSHOT",
    "PRESSMETRICS_ENCRYPTION_KEY",
    "PRESSMETRICS_BEARER_TOKEN",
):
    os.environ.pop(_var, None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from pressmetrics.api.request_view import MetricsRequest  # noqa: E402
from pressmetrics.collectors.base import CollectorContext  # noqa: E402
from pressmetrics.core.config import SETTINGS, Settings  # noqa: E402
from pressmetrics.host.interfaces import HostPlatform  # noqa: E402
from pressmetrics.host.snapshot import HostSnapshot, SnapshotHost  # noqa: E402
from pressmetrics.main import app, create_app  # noqa: E402
from pressmetrics.services.cache import InMemoryTransientStore  # noqa: E402
from pressmetrics.services.exporter import Exporter, build_exporter  # noqa: E402
from pressmetrics.services.option_store import InMemoryOptionStore  # noqa: E402

OPERATOR_COOKIE = "pressmetrics_operator"


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CookieOperators:
    """Operator session = a fixed cookie value, standing in for a host login."""

    def __init__(self, value: str = "operator-session") -> None:
        self.value = value

    def is_operator(self, request: MetricsRequest) -> bool:
        return request.cookies.get(OPERATOR_COOKIE) == self.value


def make_snapshot(**overrides: object) -> HostSnapshot:
    """A small, fully populated site."""
    data: dict[str, object] = {
        "platform_version": "6.5.2",
        "runtime_version": "3.12.4",
        "users": {"total": 12, "by_role": {"administrator": 2, "editor": 10}},
        "posts": {
            "post": {"publish": 40, "draft": 3, "trash": 7},
            "page": {"publish": 5, "draft": 1},
            "attachment": {"inherit": 20},
        },
        "comments": {
            "approved": 30,
            "awaiting_moderation": 2,
            "spam": 4,
            "trash": 1,
            "post-trashed": 0,
            "total_comments": 37,
        },
        "terms": {"category": 6, "post_tag": 15},
        "plugins": {
            "installed": ["akismet", "hello", "jetpack"],
            "active": ["akismet", "jetpack"],
            "with_updates": ["akismet"],
        },
        "themes": [
            {"slug": "twentytwentyfour"},
            {"slug": "twentytwentyfour-child", "is_child": True},
        ],
        "config": {
            "memory_limit": "256M",
            "upload_max_filesize": "64M",
            "post_max_size": "64M",
            "max_execution_time": "30",
            "max_input_vars": "1000",
            "max_input_time": "60",
        },
        "flags": {"file_editing_disabled": True, "is_https": True},
        "database": {
            "name": "site_db",
            "size_bytes": 52428800,
            "autoload": {"total_count": 300, "size_bytes": 819200, "transient_count": 12},
        },
    }
    data.update(overrides)
    return HostSnapshot.model_validate(data)


def run(coro):
    """Drive a coroutine from a sync test."""
    return asyncio.run(coro)


@pytest.fixture(autouse=True)
def reset_app_exporter() -> None:
    """Clear the module-level app's in-memory stores between tests."""
    exporter: Exporter = app.state.exporter
    if hasattr(exporter.transient, "clear"):
        exporter.transient.clear()  # type: ignore[union-attr]
    if hasattr(exporter.options, "clear"):
        exporter.options.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo root-logger changes (level, handlers) made by setup_logging tests."""
    root = logging.getLogger()
    level, handlers = root.level, list(root.handlers)
    yield
    root.setLevel(level)
    root.handlers[:] = handlers


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> InMemoryTransientStore:
    return InMemoryTransientStore(clock=clock)


@pytest.fixture
def settings() -> Settings:
    return dataclasses.replace(
        SETTINGS,
        app_env="test",
        site_name="test-site",
        metric_prefix="cms",
        charset="UTF-8",
        encryption_key_env=None,
        bearer_token_env=None,
        rate_limit=60,
        rate_limit_window=60,
        debug_log=True,
    )


@pytest.fixture
def snapshot_host() -> SnapshotHost:
    return SnapshotHost(make_snapshot())


@pytest.fixture
def host(snapshot_host: SnapshotHost) -> HostPlatform:
    platform = snapshot_host.platform()
    platform.operators = CookieOperators()
    return platform


@pytest.fixture
def ctx(host: HostPlatform, store: InMemoryTransientStore) -> CollectorContext:
    return CollectorContext(host=host, site="test-site", store=store, verbose=True)


@pytest.fixture
def exporter(
    settings: Settings, host: HostPlatform, store: InMemoryTransientStore
) -> Exporter:
    return build_exporter(settings, host, transient=store, options=InMemoryOptionStore())


@pytest.fixture
def client(exporter: Exporter) -> TestClient:
    return TestClient(create_app(exporter))


@pytest.fixture
def bearer_token(exporter: Exporter) -> str:
    return run(exporter.credentials.regenerate("bearer_token"))


@pytest.fixture
def api_key(exporter: Exporter) -> str:
    return run(exporter.credentials.regenerate("api_key"))


@pytest.fixture
def operator_cookies() -> dict[str, str]:
    return {OPERATOR_COOKIE: "operator-session"}
