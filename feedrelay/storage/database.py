"""
asyncpg pool shared by the subscriber registry and delivery history.

Repositories never hold a connection across awaits of their own; each
call borrows one from the pool. Multi-statement writes go through
``transaction()``.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import asyncpg

from feedrelay.config.settings import get_settings

logger = logging.getLogger(__name__)

# Seconds before a single statement is cancelled
STATEMENT_TIMEOUT = 30


class Database:
    """
    Pooled Postgres access for feedrelay repositories.

    Pool bounds default to ``DB_POOL_MIN_SIZE``/``DB_POOL_MAX_SIZE``.

    Usage:
        db = Database()
        await db.connect()
        status = await db.execute("DELETE FROM subscribers WHERE chat_id = $1", chat_id)
        removed = rows_affected(status)
    """

    def __init__(
        self,
        database_url: str | None = None,
        min_size: int | None = None,
        max_size: int | None = None,
    ):
        settings = get_settings()
        self._dsn = database_url or str(settings.database_url)
        self._pool_bounds = (
            min_size or settings.db_pool_min_size,
            max_size or settings.db_pool_max_size,
        )
        self._pool: asyncpg.Pool | None = None

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    async def connect(self) -> None:
        if self._pool is not None:
            return

        low, high = self._pool_bounds
        try:
            self._pool = await asyncpg.create_pool(
                self._dsn,
                min_size=low,
                max_size=high,
                command_timeout=STATEMENT_TIMEOUT,
            )
        except (OSError, asyncpg.PostgresError) as e:
            logger.error("Could not open Postgres pool: %s", e)
            raise
        logger.info("Postgres pool open (%d-%d connections)", low, high)

    async def close(self) -> None:
        pool, self._pool = self._pool, None
        if pool is not None:
            await pool.close()
            logger.info("Postgres pool closed")

    async def __aenter__(self) -> "Database":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _require_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._pool

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        """Borrow a connection with an open transaction; commits on clean exit."""
        async with self._require_pool().acquire() as conn:
            async with conn.transaction():
                yield conn

    async def execute(self, query: str, *args: Any) -> str:
        """Run a statement. Returns the command tag, e.g. ``"UPDATE 1"``."""
        return await self._require_pool().execute(query, *args)

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        return await self._require_pool().fetch(query, *args)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        return await self._require_pool().fetchrow(query, *args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        return await self._require_pool().fetchval(query, *args)

    async def health_check(self) -> bool:
        try:
            return await self.fetchval("SELECT 1") == 1
        except (RuntimeError, OSError, asyncpg.PostgresError) as e:
            logger.warning("Postgres health check failed: %s", e)
            return False


def rows_affected(status: str) -> int:
    """Row count from a command tag.

    ``"DELETE 3"`` -> 3, ``"INSERT 0 1"`` -> 1, ``"UPDATE 0"`` -> 0.
    """
    _, _, count = (status or "").rpartition(" ")
    return int(count) if count.isdigit() else 0
