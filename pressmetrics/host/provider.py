"""Assemble the HostPlatform the exporter reads from.

Data sources, by concern:
  counts, flags, config   the snapshot file (PRESSMETRICS_HOST_SNAPSHOT)
  database inspection     the live database when DATABASE_URL is set,
                          otherwise the snapshot's database section

Without a snapshot file the exporter still starts, reporting an empty
site; that keeps /health and /ready usable while the host side is being
wired up.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncEngine

from pressmetrics.core.config import Settings
from pressmetrics.host.interfaces import HostPlatform, OperatorSessions
from pressmetrics.host.snapshot import HostSnapshot, SnapshotHost, load_snapshot
from pressmetrics.host.storage import SqlStorageInspector

logger = logging.getLogger(__name__)


def build_host(
    settings: Settings,
    *,
    engine: AsyncEngine | None = None,
    operators: OperatorSessions | None = None,
) -> HostPlatform:
    if settings.host_snapshot_path:
        snapshot = load_snapshot(settings.host_snapshot_path)
    else:
        logger.warning("PRESSMETRICS_HOST_SNAPSHOT not set, serving an empty host")
        snapshot = HostSnapshot()

    platform = SnapshotHost(snapshot).platform()
    if engine is not None:
        platform.storage = SqlStorageInspector(engine, options_table=settings.options_table)
    if operators is not None:
        platform.operators = operators
    return platform
