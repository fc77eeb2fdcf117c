"""Data models for the subscribers module."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Subscriber:
    """A delivery destination and the sources it follows.

    Attributes:
        chat_id: Opaque destination id (Telegram chat id as a string).
        sources: Subscribed feed URLs, unique, order irrelevant.
        topic_id: Optional thread/topic to post into.
        is_paused: When True the engine delivers nothing to this chat.
    """

    chat_id: str
    sources: list[str] = field(default_factory=list)
    topic_id: int | None = None
    is_paused: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def is_subscribed(self, source: str) -> bool:
        return source in self.sources

    @property
    def is_active(self) -> bool:
        """Has at least one source."""
        return bool(self.sources)
