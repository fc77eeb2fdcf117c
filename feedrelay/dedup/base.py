"""Abstract interface for delivery-history stores."""

from abc import ABC, abstractmethod

from feedrelay.dedup.schemas import Fingerprint
from feedrelay.fetching.schemas import FeedItem


class DedupStore(ABC):
    """Bounded, newest-first history of delivered links per (chat, source).

    Entries are only ever removed by capacity truncation or by the
    cascade deletes below; nothing is written before a confirmed send.
    """

    def __init__(self, history_size: int) -> None:
        if history_size < 1:
            raise ValueError(f"history_size must be >= 1, got {history_size}")
        self._history_size = history_size

    @property
    def history_size(self) -> int:
        return self._history_size

    @abstractmethod
    async def get_recent(self, chat_id: str, source: str) -> list[Fingerprint]:
        """Return the history newest first (empty if none)."""

    @abstractmethod
    async def contains(self, chat_id: str, source: str, link: str) -> bool:
        """Check whether a link has been delivered to this chat from this source."""

    @abstractmethod
    async def commit(self, chat_id: str, source: str, item: FeedItem) -> bool:
        """Record a delivered item.

        Inserts newest first and truncates to ``history_size``. Committing
        a link that is already present is a no-op.

        Returns:
            True if a new fingerprint was recorded.
        """

    @abstractmethod
    async def discard(self, chat_id: str, source: str) -> None:
        """Drop the history of one (chat, source) pair."""

    @abstractmethod
    async def discard_source(self, source: str) -> int:
        """Drop every history for a source. Returns fingerprints removed."""

    @abstractmethod
    async def discard_subscriber(self, chat_id: str) -> int:
        """Drop every history for a chat. Returns fingerprints removed."""
