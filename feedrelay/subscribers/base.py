"""
Abstract interface for subscriber registries.

Every mutating method maps to one atomic store operation: there are no
read-modify-write sequences, so commands and the cycle engine can touch
the same subscriber concurrently without losing updates.
"""

from abc import ABC, abstractmethod

from feedrelay.subscribers.schemas import Subscriber


class SubscriberRegistry(ABC):
    """Persistence for subscriber documents keyed by chat id."""

    @abstractmethod
    async def get(self, chat_id: str) -> Subscriber | None:
        """Fetch the current document of one subscriber."""

    @abstractmethod
    async def list_active(self) -> list[Subscriber]:
        """Return every subscriber with at least one source."""

    @abstractmethod
    async def add_source(self, chat_id: str, source: str) -> bool:
        """Add a source, creating the subscriber if needed.

        Returns:
            True if the source was added, False if already present.
        """

    @abstractmethod
    async def remove_source(self, chat_id: str, source: str) -> bool:
        """Remove one source from one subscriber.

        Returns:
            True if the source was present.
        """

    @abstractmethod
    async def remove_source_everywhere(self, source: str) -> list[str]:
        """Remove a source from every subscriber.

        Returns:
            Chat ids that were subscribed to it.
        """

    @abstractmethod
    async def clear_sources(self, chat_id: str) -> list[str]:
        """Drop all sources of a subscriber, returning the removed ones."""

    @abstractmethod
    async def remove(self, chat_id: str) -> bool:
        """Delete a subscriber document entirely."""

    @abstractmethod
    async def set_topic(self, chat_id: str, topic_id: int | None) -> None:
        """Set the routing thread/topic, creating the subscriber if needed."""

    @abstractmethod
    async def set_paused(self, chat_id: str, paused: bool) -> bool:
        """Set the paused flag.

        Returns:
            True if the flag changed, False if already in that state or
            the subscriber does not exist.
        """
