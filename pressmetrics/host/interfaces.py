"""Read-only views of the host application.

The exporter owns no data.  Everything it reports comes from the content
management application it is embedded in, reached through the narrow
Protocols below.  Each one can be satisfied by a live host adapter, by
the snapshot host in pressmetrics.host.snapshot, or by a test fake.

Providers may return partial data: collectors treat a missing count as 0
and a missing collection as empty.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pressmetrics.api.request_view import MetricsRequest


@dataclass(frozen=True, slots=True)
class UserCounts:
    total: int = 0
    by_role: Mapping[str, int] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ThemeInfo:
    slug: str
    is_child: bool = False


@dataclass(frozen=True, slots=True)
class HealthTestResult:
    """One diagnostic as reported by the host's own health subsystem.

    status uses the host's vocabulary; the health collector normalizes it
    and derives the category from the test name.
    """

    test: str
    status: str
    description: str = ""


@dataclass(frozen=True, slots=True)
class SiteDirectories:
    uploads: str | None = None
    themes: str | None = None
    plugins: str | None = None


@dataclass(frozen=True, slots=True)
class AutoloadStats:
    total_count: int = 0
    size_bytes: int = 0
    transient_count: int = 0


@runtime_checkable
class UserDirectory(Protocol):
    def count_users(self) -> UserCounts: ...


@runtime_checkable
class ContentCounter(Protocol):
    def count_posts(self, post_type: str) -> Mapping[str, object]:
        """Status -> count for a content type ("post", "page", "attachment")."""
        ...

    def count_attachments_listing(self) -> int:
        """Slow path: number of attachment records of any status."""
        ...


@runtime_checkable
class PluginRegistry(Protocol):
    def installed_plugins(self) -> Iterable[str]: ...

    def active_plugins(self) -> Iterable[str]: ...

    def plugins_with_updates(self) -> Iterable[str]: ...


@runtime_checkable
class ThemeRegistry(Protocol):
    def installed_themes(self) -> Iterable[ThemeInfo]: ...


@runtime_checkable
class CommentCounter(Protocol):
    def count_comments(self) -> Mapping[str, object]: ...


@runtime_checkable
class TaxonomyCounter(Protocol):
    def count_terms(self, taxonomy: str) -> int: ...


@runtime_checkable
class HealthDiagnostics(Protocol):
    def available(self) -> bool:
        """True when the host ships its own diagnostic subsystem."""
        ...

    def run_tests(self) -> Iterable[HealthTestResult]: ...


@runtime_checkable
class RuntimeInfo(Protocol):
    def platform_version(self) -> str: ...

    def core_update_available(self) -> bool: ...

    def runtime_version(self) -> str:
        """Interpreter version string, e.g. "3.12.4"."""
        ...

    def config_value(self, key: str) -> str | None: ...

    def file_editing_disabled(self) -> bool: ...

    def debug_enabled(self) -> bool: ...

    def is_https(self) -> bool: ...

    def directories(self) -> SiteDirectories: ...


@runtime_checkable
class StorageInspector(Protocol):
    def database_name(self) -> str | None: ...

    async def database_size_bytes(self, database: str) -> float: ...

    async def autoload_stats(self) -> AutoloadStats | None: ...

    async def ping(self) -> bool: ...


@runtime_checkable
class OperatorSessions(Protocol):
    def is_operator(self, request: MetricsRequest) -> bool:
        """True when the caller holds the host's administrative capability."""
        ...


class NoOperatorSessions:
    """Default when the exporter runs outside a host: nobody is an operator."""

    def is_operator(self, request: MetricsRequest) -> bool:
        return False


@dataclass
class HostPlatform:
    """Everything the collectors and the auth gate need from the host."""

    users: UserDirectory
    content: ContentCounter
    plugins: PluginRegistry
    themes: ThemeRegistry
    comments: CommentCounter
    taxonomies: TaxonomyCounter
    health: HealthDiagnostics
    runtime: RuntimeInfo
    storage: StorageInspector
    operators: OperatorSessions = field(default_factory=NoOperatorSessions)
