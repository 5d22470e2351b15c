"""Async SQLAlchemy engine for host database inspection.

When DATABASE_URL is configured, provides:
- an async engine (postgresql+asyncpg or mysql+aiomysql)
- a FastAPI lifespan hook for startup/shutdown

When DATABASE_URL is None, engine is None and storage metrics come from
the host snapshot instead.

The exporter only ever reads.  There are no ORM models, sessions or
migrations here: the schema belongs to the host application.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine

from pressmetrics.core.config import SETTINGS

logger = logging.getLogger(__name__)


if SETTINGS.database_url:
    engine = create_async_engine(
        SETTINGS.database_url,
        echo=False,
        # A scrape needs one connection at a time; heavy-tier rebuilds
        # are the only queries and they run at most every few minutes.
        pool_size=2,
        max_overflow=2,
        pool_pre_ping=True,
    )
else:
    engine = None


async def ping_database() -> bool:
    if engine is None:
        return False
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    return True


@asynccontextmanager
async def lifespan_db():
    """Startup/shutdown hook for the database engine.

    Call from FastAPI's lifespan context manager.
    """
    if engine is None:
        logger.info("No DATABASE_URL configured, storage metrics come from the host snapshot")
        yield
        return

    logger.info("Database engine created: %s", engine.url.render_as_string(hide_password=True))
    yield
    await engine.dispose()
    logger.info("Database engine disposed")
