"""In-process subscriber registry for local runs without Postgres."""

from dataclasses import replace
from datetime import datetime, timezone

from feedrelay.subscribers.base import SubscriberRegistry
from feedrelay.subscribers.schemas import Subscriber


class InMemorySubscriberRegistry(SubscriberRegistry):
    """Dict-backed registry.

    Methods contain no awaits between read and write, so each call is
    atomic with respect to other coroutines on the same loop. Returned
    Subscribers are copies; mutating them never changes stored state.
    """

    def __init__(self, subscribers: list[Subscriber] | None = None) -> None:
        self._subscribers: dict[str, Subscriber] = {}
        for sub in subscribers or []:
            self._subscribers[sub.chat_id] = _copy(sub)

    async def get(self, chat_id: str) -> Subscriber | None:
        sub = self._subscribers.get(chat_id)
        return _copy(sub) if sub else None

    async def list_active(self) -> list[Subscriber]:
        return [
            _copy(sub)
            for _, sub in sorted(self._subscribers.items())
            if sub.is_active
        ]

    async def add_source(self, chat_id: str, source: str) -> bool:
        sub = self._subscribers.get(chat_id)
        if sub is None:
            sub = Subscriber(chat_id=chat_id, created_at=_now())
            self._subscribers[chat_id] = sub
        if source in sub.sources:
            return False
        sub.sources.append(source)
        sub.updated_at = _now()
        return True

    async def remove_source(self, chat_id: str, source: str) -> bool:
        sub = self._subscribers.get(chat_id)
        if sub is None or source not in sub.sources:
            return False
        sub.sources.remove(source)
        sub.updated_at = _now()
        return True

    async def remove_source_everywhere(self, source: str) -> list[str]:
        affected = []
        for chat_id, sub in self._subscribers.items():
            if source in sub.sources:
                sub.sources.remove(source)
                sub.updated_at = _now()
                affected.append(chat_id)
        return affected

    async def clear_sources(self, chat_id: str) -> list[str]:
        sub = self._subscribers.get(chat_id)
        if sub is None:
            return []
        previous, sub.sources = sub.sources, []
        sub.updated_at = _now()
        return previous

    async def remove(self, chat_id: str) -> bool:
        return self._subscribers.pop(chat_id, None) is not None

    async def set_topic(self, chat_id: str, topic_id: int | None) -> None:
        sub = self._subscribers.get(chat_id)
        if sub is None:
            sub = Subscriber(chat_id=chat_id, created_at=_now())
            self._subscribers[chat_id] = sub
        sub.topic_id = topic_id
        sub.updated_at = _now()

    async def set_paused(self, chat_id: str, paused: bool) -> bool:
        sub = self._subscribers.get(chat_id)
        if sub is None or sub.is_paused == paused:
            return False
        sub.is_paused = paused
        sub.updated_at = _now()
        return True


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _copy(sub: Subscriber) -> Subscriber:
    return replace(sub, sources=list(sub.sources))
