"""Database repository for the delivered_items table."""

import logging

from feedrelay.dedup.base import DedupStore
from feedrelay.dedup.schemas import Fingerprint
from feedrelay.fetching.schemas import FeedItem
from feedrelay.storage.database import Database, rows_affected

logger = logging.getLogger(__name__)

# seq gives a strict insertion order; delivered_at alone can tie.
_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS delivered_items (
    chat_id       TEXT NOT NULL,
    source_url    TEXT NOT NULL,
    link          TEXT NOT NULL,
    title         TEXT NOT NULL DEFAULT '',
    delivered_at  TIMESTAMPTZ NOT NULL DEFAULT clock_timestamp(),
    seq           BIGSERIAL,
    PRIMARY KEY (chat_id, source_url, link)
);

CREATE INDEX IF NOT EXISTS idx_delivered_items_recent
    ON delivered_items(chat_id, source_url, seq DESC);
CREATE INDEX IF NOT EXISTS idx_delivered_items_source
    ON delivered_items(source_url);
"""

_SELECT_RECENT_SQL = """
SELECT title, link, delivered_at FROM delivered_items
WHERE chat_id = $1 AND source_url = $2
ORDER BY seq DESC
LIMIT $3
"""

_CONTAINS_SQL = """
SELECT EXISTS (
    SELECT 1 FROM delivered_items
    WHERE chat_id = $1 AND source_url = $2 AND link = $3
)
"""

_INSERT_SQL = """
INSERT INTO delivered_items (chat_id, source_url, link, title)
VALUES ($1, $2, $3, $4)
ON CONFLICT (chat_id, source_url, link) DO NOTHING
"""

_TRIM_SQL = """
DELETE FROM delivered_items
WHERE chat_id = $1 AND source_url = $2
  AND seq NOT IN (
      SELECT seq FROM delivered_items
      WHERE chat_id = $1 AND source_url = $2
      ORDER BY seq DESC
      LIMIT $3
  )
"""


def _record_to_fingerprint(record) -> Fingerprint:
    """Convert an asyncpg Record to a Fingerprint."""
    return Fingerprint(
        title=record["title"],
        link=record["link"],
        delivered_at=record["delivered_at"],
    )


class DedupRepository(DedupStore):
    """Postgres-backed delivery history.

    ``commit`` runs insert-if-absent and truncate-to-capacity in one
    transaction, so concurrent commits for the same pair never leave
    more than ``history_size`` rows visible.
    """

    def __init__(self, database: Database, history_size: int = 50) -> None:
        super().__init__(history_size)
        self._db = database

    async def create_table(self) -> None:
        """Create the delivered_items table and indexes (idempotent)."""
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Delivered items table ensured")

    async def get_recent(self, chat_id: str, source: str) -> list[Fingerprint]:
        rows = await self._db.fetch(
            _SELECT_RECENT_SQL, chat_id, source, self._history_size
        )
        return [_record_to_fingerprint(r) for r in rows]

    async def contains(self, chat_id: str, source: str, link: str) -> bool:
        return bool(await self._db.fetchval(_CONTAINS_SQL, chat_id, source, link))

    async def commit(self, chat_id: str, source: str, item: FeedItem) -> bool:
        async with self._db.transaction() as conn:
            status = await conn.execute(
                _INSERT_SQL, chat_id, source, item.link, item.title
            )
            if rows_affected(status) == 0:
                return False
            await conn.execute(_TRIM_SQL, chat_id, source, self._history_size)
        return True

    async def discard(self, chat_id: str, source: str) -> None:
        await self._db.execute(
            "DELETE FROM delivered_items WHERE chat_id = $1 AND source_url = $2",
            chat_id, source,
        )

    async def discard_source(self, source: str) -> int:
        status = await self._db.execute(
            "DELETE FROM delivered_items WHERE source_url = $1", source
        )
        return rows_affected(status)

    async def discard_subscriber(self, chat_id: str) -> int:
        status = await self._db.execute(
            "DELETE FROM delivered_items WHERE chat_id = $1", chat_id
        )
        return rows_affected(status)
