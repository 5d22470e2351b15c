"""Live database inspection through the async SQLAlchemy engine.

Only three read-only questions are asked of the host database:

  - how big is it?           information_schema on MySQL/MariaDB,
                             pg_total_relation_size() of every base
                             table on PostgreSQL
  - what is autoloaded?      one aggregate over the options table
  - is it reachable at all?  SELECT 1

User input never reaches these queries, but the database and table names
come from configuration, and identifiers cannot be bound as parameters.
Both are validated against [A-Za-z0-9_] and the table name is quoted by
the dialect's identifier preparer before being interpolated.
"""

from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from pressmetrics.core.config import IDENTIFIER_RE
from pressmetrics.host.interfaces import AutoloadStats

logger = logging.getLogger(__name__)

_MYSQL_SIZE_SQL = text(
    "SELECT COALESCE(SUM(data_length + index_length), 0) AS size_bytes "
    "FROM information_schema.TABLES "
    "WHERE table_schema = :schema AND table_type = 'BASE TABLE'"
)

_POSTGRES_SIZE_SQL = text(
    "SELECT COALESCE(SUM(pg_total_relation_size("
    "quote_ident(table_schema) || '.' || quote_ident(table_name))), 0) AS size_bytes "
    "FROM information_schema.tables "
    "WHERE table_catalog = :schema AND table_type = 'BASE TABLE' "
    "AND table_schema NOT IN ('pg_catalog', 'information_schema')"
)


class SqlStorageInspector:
    def __init__(
        self,
        engine: AsyncEngine,
        *,
        options_table: str = "options",
        database: str | None = None,
    ) -> None:
        if not IDENTIFIER_RE.fullmatch(options_table):
            raise ValueError(f"invalid options table name {options_table!r}")
        self._engine = engine
        self._options_table = options_table
        self._database = database or engine.url.database

    @property
    def dialect(self) -> str:
        return self._engine.dialect.name

    def database_name(self) -> str | None:
        return self._database

    async def database_size_bytes(self, database: str) -> float:
        if self.dialect in ("mysql", "mariadb"):
            statement = _MYSQL_SIZE_SQL
        elif self.dialect == "postgresql":
            statement = _POSTGRES_SIZE_SQL
        else:
            logger.debug("Database size not supported for dialect %s", self.dialect)
            return 0.0

        async with self._engine.connect() as conn:
            result = await conn.execute(statement, {"schema": database})
            value = result.scalar()
        return float(value or 0)

    async def autoload_stats(self) -> AutoloadStats | None:
        table = self._engine.dialect.identifier_preparer.quote(self._options_table)
        statement = text(
            "SELECT COUNT(*) AS total_count, "
            "COALESCE(SUM(LENGTH(option_value)), 0) AS size_bytes, "
            "COALESCE(SUM(CASE WHEN option_name LIKE :pattern THEN 1 ELSE 0 END), 0) "
            "AS transient_count "
            f"FROM {table} WHERE autoload = :autoload"
        )
        async with self._engine.connect() as conn:
            result = await conn.execute(
                statement, {"pattern": "%transient%", "autoload": "yes"}
            )
            row = result.mappings().first()
        if row is None:
            return None
        return AutoloadStats(
            total_count=max(0, int(row["total_count"] or 0)),
            size_bytes=max(0, int(row["size_bytes"] or 0)),
            transient_count=max(0, int(row["transient_count"] or 0)),
        )

    async def ping(self) -> bool:
        async with self._engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
