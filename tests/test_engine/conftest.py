"""Shared fixtures for engine tests."""

import asyncio
from collections.abc import Awaitable, Callable

import pytest

from feedrelay.dedup.memory import InMemoryDedupStore
from feedrelay.delivery.rate_limiter import DeliveryRateLimiter
from feedrelay.delivery.transport import DeliveryTransport
from feedrelay.engine.config import EngineConfig
from feedrelay.engine.cycle import CycleEngine
from feedrelay.fetching.base import SourceFetcher
from feedrelay.fetching.schemas import FeedItem
from feedrelay.subscribers.memory import InMemorySubscriberRegistry


class FakeFetcher(SourceFetcher):
    """Serves canned feeds; a value that is an exception is raised instead."""

    def __init__(self) -> None:
        self.feeds: dict[str, list[FeedItem] | Exception] = {}
        self.calls: list[str] = []
        self.gate: asyncio.Event | None = None

    @property
    def name(self) -> str:
        return "fake"

    async def fetch(self, source: str) -> list[FeedItem]:
        self.calls.append(source)
        if self.gate is not None:
            await self.gate.wait()
        result = self.feeds.get(source, [])
        if isinstance(result, Exception):
            raise result
        return list(result)


class FakeTransport(DeliveryTransport):
    """Records sends; per-chat failures are raised instead of sending."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, int | None, str]] = []
        self.failures: dict[str, Exception] = {}
        self.after_send: Callable[[str, str], Awaitable[None]] | None = None

    @property
    def name(self) -> str:
        return "fake"

    async def deliver(self, chat_id: str, topic_id: int | None, content: str) -> int:
        error = self.failures.get(chat_id)
        if error is not None:
            raise error
        self.sent.append((chat_id, topic_id, content))
        if self.after_send is not None:
            await self.after_send(chat_id, content)
        return len(self.sent)

    def links_for(self, chat_id: str) -> list[str]:
        return [content for chat, _, content in self.sent if chat == chat_id]


@pytest.fixture
def registry() -> InMemorySubscriberRegistry:
    return InMemorySubscriberRegistry()


@pytest.fixture
def dedup() -> InMemoryDedupStore:
    return InMemoryDedupStore(history_size=50)


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def engine(registry, dedup, fetcher, transport) -> CycleEngine:
    """Engine rendering each item as its bare link, with no pacing."""
    return CycleEngine(
        registry=registry,
        dedup=dedup,
        fetcher=fetcher,
        transport=transport,
        limiter=DeliveryRateLimiter(min_interval=0),
        config=EngineConfig(pacing_delay_seconds=0),
        render=lambda feed_item: feed_item.link,
    )
