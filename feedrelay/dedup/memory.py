"""In-process delivery history for local runs without Postgres."""

from datetime import datetime, timezone

from feedrelay.dedup.base import DedupStore
from feedrelay.dedup.novelty import push_fingerprint
from feedrelay.dedup.schemas import Fingerprint
from feedrelay.fetching.schemas import FeedItem


class InMemoryDedupStore(DedupStore):
    """Dict of newest-first fingerprint lists keyed by (chat_id, source)."""

    def __init__(self, history_size: int = 50) -> None:
        super().__init__(history_size)
        self._histories: dict[tuple[str, str], list[Fingerprint]] = {}

    async def get_recent(self, chat_id: str, source: str) -> list[Fingerprint]:
        return list(self._histories.get((chat_id, source), []))

    async def contains(self, chat_id: str, source: str, link: str) -> bool:
        return any(
            fp.link == link for fp in self._histories.get((chat_id, source), [])
        )

    async def commit(self, chat_id: str, source: str, item: FeedItem) -> bool:
        key = (chat_id, source)
        history = self._histories.get(key, [])
        fingerprint = Fingerprint(
            title=item.title,
            link=item.link,
            delivered_at=datetime.now(timezone.utc),
        )
        updated = push_fingerprint(history, fingerprint, self._history_size)
        if updated == history:
            return False
        self._histories[key] = updated
        return True

    async def discard(self, chat_id: str, source: str) -> None:
        self._histories.pop((chat_id, source), None)

    async def discard_source(self, source: str) -> int:
        return self._discard_where(lambda key: key[1] == source)

    async def discard_subscriber(self, chat_id: str) -> int:
        return self._discard_where(lambda key: key[0] == chat_id)

    def _discard_where(self, predicate) -> int:
        keys = [key for key in self._histories if predicate(key)]
        removed = 0
        for key in keys:
            removed += len(self._histories.pop(key))
        return removed
