"""Collector groups by volatility class.

Order inside a group is the order blocks appear in the exposition.
"""

from __future__ import annotations

from pressmetrics.collectors.base import Collector
from pressmetrics.collectors.content import collect_content, collect_posts
from pressmetrics.collectors.health import collect_health
from pressmetrics.collectors.plugins import collect_plugins
from pressmetrics.collectors.runtime import collect_runtime, collect_version
from pressmetrics.collectors.storage import (
    collect_autoload,
    collect_database_size,
    collect_directory_sizes,
)
from pressmetrics.collectors.users import collect_users

FAST_COLLECTORS: tuple[Collector, ...] = (
    collect_users,
    collect_posts,
    collect_plugins,
    collect_content,
)

HEAVY_COLLECTORS: tuple[Collector, ...] = (
    collect_autoload,
    collect_database_size,
    collect_directory_sizes,
    collect_health,
)

STATIC_COLLECTORS: tuple[Collector, ...] = (
    collect_version,
    collect_runtime,
)
