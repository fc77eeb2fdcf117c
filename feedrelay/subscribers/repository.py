"""Database repository for the subscribers table."""

import logging

from feedrelay.storage.database import Database, rows_affected
from feedrelay.subscribers.base import SubscriberRegistry
from feedrelay.subscribers.schemas import Subscriber

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS subscribers (
    chat_id     TEXT PRIMARY KEY,
    sources     TEXT[] NOT NULL DEFAULT '{}',
    topic_id    BIGINT,
    is_paused   BOOLEAN NOT NULL DEFAULT FALSE,
    created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_subscribers_sources
    ON subscribers USING GIN (sources);
"""

# The WHERE on the conflict branch makes the append a no-op when the
# source is already present, so the set stays unique without a read.
_ADD_SOURCE_SQL = """
INSERT INTO subscribers (chat_id, sources)
VALUES ($1, ARRAY[$2::text])
ON CONFLICT (chat_id) DO UPDATE SET
    sources = array_append(subscribers.sources, $2::text),
    updated_at = NOW()
WHERE NOT ($2::text = ANY(subscribers.sources))
RETURNING chat_id
"""

_REMOVE_SOURCE_SQL = """
UPDATE subscribers
SET sources = array_remove(sources, $2::text), updated_at = NOW()
WHERE chat_id = $1 AND $2::text = ANY(sources)
"""

_REMOVE_SOURCE_EVERYWHERE_SQL = """
UPDATE subscribers
SET sources = array_remove(sources, $1::text), updated_at = NOW()
WHERE $1::text = ANY(sources)
RETURNING chat_id
"""

_CLEAR_SOURCES_SQL = """
UPDATE subscribers AS s
SET sources = '{}', updated_at = NOW()
FROM (
    SELECT chat_id, sources FROM subscribers WHERE chat_id = $1 FOR UPDATE
) AS old
WHERE s.chat_id = old.chat_id
RETURNING old.sources
"""

_SET_TOPIC_SQL = """
INSERT INTO subscribers (chat_id, topic_id)
VALUES ($1, $2)
ON CONFLICT (chat_id) DO UPDATE SET
    topic_id = EXCLUDED.topic_id,
    updated_at = NOW()
"""

_SET_PAUSED_SQL = """
UPDATE subscribers
SET is_paused = $2, updated_at = NOW()
WHERE chat_id = $1 AND is_paused IS DISTINCT FROM $2
"""


def _record_to_subscriber(record) -> Subscriber:
    """Convert an asyncpg Record to a Subscriber dataclass."""
    return Subscriber(
        chat_id=record["chat_id"],
        sources=list(record["sources"] or []),
        topic_id=record["topic_id"],
        is_paused=record["is_paused"],
        created_at=record["created_at"],
        updated_at=record["updated_at"],
    )


class SubscriberRepository(SubscriberRegistry):
    """Postgres-backed subscriber registry."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the subscribers table and indexes (idempotent)."""
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Subscribers table ensured")

    async def get(self, chat_id: str) -> Subscriber | None:
        row = await self._db.fetchrow(
            "SELECT * FROM subscribers WHERE chat_id = $1", chat_id
        )
        return _record_to_subscriber(row) if row else None

    async def list_active(self) -> list[Subscriber]:
        rows = await self._db.fetch(
            "SELECT * FROM subscribers WHERE cardinality(sources) > 0 ORDER BY chat_id"
        )
        return [_record_to_subscriber(r) for r in rows]

    async def add_source(self, chat_id: str, source: str) -> bool:
        result = await self._db.fetchval(_ADD_SOURCE_SQL, chat_id, source)
        return result is not None

    async def remove_source(self, chat_id: str, source: str) -> bool:
        status = await self._db.execute(_REMOVE_SOURCE_SQL, chat_id, source)
        return rows_affected(status) > 0

    async def remove_source_everywhere(self, source: str) -> list[str]:
        rows = await self._db.fetch(_REMOVE_SOURCE_EVERYWHERE_SQL, source)
        chat_ids = [r["chat_id"] for r in rows]
        if chat_ids:
            logger.info("Removed source %s from %d subscribers", source, len(chat_ids))
        return chat_ids

    async def clear_sources(self, chat_id: str) -> list[str]:
        previous = await self._db.fetchval(_CLEAR_SOURCES_SQL, chat_id)
        return list(previous or [])

    async def remove(self, chat_id: str) -> bool:
        status = await self._db.execute(
            "DELETE FROM subscribers WHERE chat_id = $1", chat_id
        )
        return rows_affected(status) > 0

    async def set_topic(self, chat_id: str, topic_id: int | None) -> None:
        await self._db.execute(_SET_TOPIC_SQL, chat_id, topic_id)

    async def set_paused(self, chat_id: str, paused: bool) -> bool:
        status = await self._db.execute(_SET_PAUSED_SQL, chat_id, paused)
        return rows_affected(status) > 0
