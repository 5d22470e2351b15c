"""Host backed by a JSON snapshot of its state.

Running the exporter next to a host rather than inside it needs some way
to see the host's data.  The host (or a cron job on its box) dumps its
counts to a JSON file; this module validates that file with pydantic and
serves it through the host Protocols.  Example:

  {
    "platform_version": "6.5.2",
    "runtime_version": "3.12.4",
    "users": {"total": 12, "by_role": {"administrator": 2, "editor": 10}},
    "posts": {"post": {"publish": 40, "draft": 3}, "page": {"publish": 5}},
    "plugins": {"installed": ["a", "b", "c"], "active": ["a", "b"],
                "with_updates": ["a"]},
    "config": {"memory_limit": "256M"},
    "flags": {"is_https": true}
  }

Every section is optional.  Missing counts become 0.

The database section only matters when no DATABASE_URL is configured;
otherwise pressmetrics.host.storage inspects the live database.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import BaseModel, Field

from pressmetrics.host.interfaces import (
    AutoloadStats,
    HealthTestResult,
    HostPlatform,
    SiteDirectories,
    ThemeInfo,
    UserCounts,
)

logger = logging.getLogger(__name__)


class SnapshotUsers(BaseModel):
    total: int = 0
    by_role: dict[str, int] = Field(default_factory=dict)


class SnapshotTheme(BaseModel):
    slug: str
    is_child: bool = False


class SnapshotPlugins(BaseModel):
    installed: list[str] = Field(default_factory=list)
    active: list[str] = Field(default_factory=list)
    with_updates: list[str] = Field(default_factory=list)


class SnapshotHealthTest(BaseModel):
    test: str
    status: str
    description: str = ""


class SnapshotFlags(BaseModel):
    file_editing_disabled: bool = False
    debug_enabled: bool = False
    is_https: bool = False
    core_update_available: bool = False


class SnapshotDirectories(BaseModel):
    uploads: str | None = None
    themes: str | None = None
    plugins: str | None = None


class SnapshotAutoload(BaseModel):
    total_count: int = 0
    size_bytes: int = 0
    transient_count: int = 0


class SnapshotDatabase(BaseModel):
    name: str | None = None
    size_bytes: float = 0
    reachable: bool = True
    autoload: SnapshotAutoload | None = None


class HostSnapshot(BaseModel):
    platform_version: str = "unknown"
    runtime_version: str = "0.0.0"
    users: SnapshotUsers = Field(default_factory=SnapshotUsers)
    # post type -> status -> count
    posts: dict[str, dict[str, int]] = Field(default_factory=dict)
    attachments_listed: int = 0
    comments: dict[str, int] = Field(default_factory=dict)
    terms: dict[str, int] = Field(default_factory=dict)
    plugins: SnapshotPlugins = Field(default_factory=SnapshotPlugins)
    themes: list[SnapshotTheme] = Field(default_factory=list)
    # None: the host has no diagnostic subsystem, use the built-in checks
    health_tests: list[SnapshotHealthTest] | None = None
    config: dict[str, str] = Field(default_factory=dict)
    flags: SnapshotFlags = Field(default_factory=SnapshotFlags)
    directories: SnapshotDirectories = Field(default_factory=SnapshotDirectories)
    database: SnapshotDatabase = Field(default_factory=SnapshotDatabase)


class SnapshotHost:
    """Implements every read-only host Protocol from one HostSnapshot."""

    def __init__(self, snapshot: HostSnapshot) -> None:
        self.snapshot = snapshot

    # UserDirectory
    def count_users(self) -> UserCounts:
        return UserCounts(
            total=self.snapshot.users.total, by_role=dict(self.snapshot.users.by_role)
        )

    # ContentCounter
    def count_posts(self, post_type: str) -> dict[str, int]:
        return dict(self.snapshot.posts.get(post_type, {}))

    def count_attachments_listing(self) -> int:
        return self.snapshot.attachments_listed

    # PluginRegistry
    def installed_plugins(self) -> list[str]:
        return list(self.snapshot.plugins.installed)

    def active_plugins(self) -> list[str]:
        return list(self.snapshot.plugins.active)

    def plugins_with_updates(self) -> list[str]:
        return list(self.snapshot.plugins.with_updates)

    # ThemeRegistry
    def installed_themes(self) -> list[ThemeInfo]:
        return [ThemeInfo(slug=t.slug, is_child=t.is_child) for t in self.snapshot.themes]

    # CommentCounter
    def count_comments(self) -> dict[str, int]:
        return dict(self.snapshot.comments)

    # TaxonomyCounter
    def count_terms(self, taxonomy: str) -> int:
        return self.snapshot.terms.get(taxonomy, 0)

    # HealthDiagnostics
    def available(self) -> bool:
        return self.snapshot.health_tests is not None

    def run_tests(self) -> list[HealthTestResult]:
        return [
            HealthTestResult(test=t.test, status=t.status, description=t.description)
            for t in self.snapshot.health_tests or ()
        ]

    # RuntimeInfo
    def platform_version(self) -> str:
        return self.snapshot.platform_version

    def core_update_available(self) -> bool:
        return self.snapshot.flags.core_update_available

    def runtime_version(self) -> str:
        return self.snapshot.runtime_version

    def config_value(self, key: str) -> str | None:
        return self.snapshot.config.get(key)

    def file_editing_disabled(self) -> bool:
        return self.snapshot.flags.file_editing_disabled

    def debug_enabled(self) -> bool:
        return self.snapshot.flags.debug_enabled

    def is_https(self) -> bool:
        return self.snapshot.flags.is_https

    def directories(self) -> SiteDirectories:
        d = self.snapshot.directories
        return SiteDirectories(uploads=d.uploads, themes=d.themes, plugins=d.plugins)

    # StorageInspector
    def database_name(self) -> str | None:
        return self.snapshot.database.name

    async def database_size_bytes(self, database: str) -> float:
        return self.snapshot.database.size_bytes

    async def autoload_stats(self) -> AutoloadStats | None:
        autoload = self.snapshot.database.autoload
        if autoload is None:
            return None
        return AutoloadStats(
            total_count=autoload.total_count,
            size_bytes=autoload.size_bytes,
            transient_count=autoload.transient_count,
        )

    async def ping(self) -> bool:
        return self.snapshot.database.reachable

    def platform(self) -> HostPlatform:
        return HostPlatform(
            users=self,
            content=self,
            plugins=self,
            themes=self,
            comments=self,
            taxonomies=self,
            health=self,
            runtime=self,
            storage=self,
        )


def load_snapshot(path: str | Path) -> HostSnapshot:
    """Read and validate a snapshot file.

    Raises FileNotFoundError, json.JSONDecodeError or
    pydantic.ValidationError; a broken snapshot is a deployment error and
    the service should refuse to start.
    """
    raw = Path(path).read_text(encoding="utf-8")
    snapshot = HostSnapshot.model_validate(json.loads(raw))
    logger.info("Loaded host snapshot from %s", path)
    return snapshot
