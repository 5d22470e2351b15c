"""Heavy storage collectors: autoloaded options, database and directory sizes.

These are the expensive queries (an information_schema aggregate, full
recursive directory walks), which is why they live in the heavy tier and
are rebuilt at most every few minutes.
"""

from __future__ import annotations

import logging
import os

from starlette.concurrency import run_in_threadpool

from pressmetrics.collectors.base import CollectorContext, as_count
from pressmetrics.core.config import IDENTIFIER_RE
from pressmetrics.core.logging import log_collection_error

logger = logging.getLogger(__name__)


def is_valid_database_name(name: str | None) -> bool:
    return bool(name) and IDENTIFIER_RE.fullmatch(name) is not None  # type: ignore[arg-type]


async def collect_autoload(ctx: CollectorContext) -> str:
    stats = await ctx.host.storage.autoload_stats()
    if stats is None:
        return ""

    block = ctx.block()
    for metric, help_text, value in (
        ("autoload_options_total", "Number of autoloaded options.", stats.total_count),
        (
            "autoload_size_bytes",
            "Size of autoloaded options in bytes.",
            stats.size_bytes,
        ),
        (
            "autoload_transients_total",
            "Number of autoloaded transients.",
            stats.transient_count,
        ),
    ):
        name = ctx.metric(metric)
        block.declare(name, help_text, "gauge")
        block.add(name, None, as_count(value))
    return block.render()


async def collect_database_size(ctx: CollectorContext) -> str:
    storage = ctx.host.storage
    database = storage.database_name()
    if not database:
        log_collection_error(
            logger, "Database name not available for size calculation", verbose=ctx.verbose
        )
        return ""
    if not is_valid_database_name(database):
        log_collection_error(
            logger,
            "Database name contains invalid characters",
            {"db_name": database},
            verbose=ctx.verbose,
        )
        return ""

    size = float(await storage.database_size_bytes(database) or 0)
    if size <= 0:
        return ""

    name = ctx.metric("database_size_bytes")
    block = ctx.block()
    block.declare(name, "Database size in bytes.", "gauge")
    block.add(name, None, size)
    return block.render()


def directory_size(path: str) -> int:
    """Sum of regular file sizes below path, in bytes.

    Symlinks are not followed.  Unreadable entries are skipped; the walk
    always returns what it managed to accumulate.
    """
    total = 0
    pending = [path]
    while pending:
        current = pending.pop()
        try:
            entries = list(os.scandir(current))
        except OSError as exc:
            logger.debug("Skipping unreadable directory %s: %s", current, exc)
            continue
        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    pending.append(entry.path)
                elif entry.is_file(follow_symlinks=False):
                    total += entry.stat(follow_symlinks=False).st_size
            except OSError as exc:
                logger.debug("Skipping unreadable entry %s: %s", entry.path, exc)
    return total


async def collect_directory_sizes(ctx: CollectorContext) -> str:
    dirs = ctx.host.runtime.directories()
    sizes: dict[str, int] = {}
    for label, path in (
        ("uploads", dirs.uploads),
        ("themes", dirs.themes),
        ("plugins", dirs.plugins),
    ):
        if path and os.path.isdir(path):
            # The walk is blocking I/O; keep it off the event loop
            sizes[label] = await run_in_threadpool(directory_size, path)

    if not sizes:
        return ""
    sizes["total"] = sum(sizes.values())

    name = ctx.metric("directory_size_bytes")
    block = ctx.block()
    block.declare(name, "Directory sizes in bytes.", "gauge")
    for label, size in sizes.items():
        block.add(name, {"directory": label}, size)
    return block.render()
