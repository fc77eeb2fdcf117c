"""Shared fixtures for subscribers tests."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from feedrelay.dedup.memory import InMemoryDedupStore
from feedrelay.delivery.rate_limiter import DeliveryRateLimiter
from feedrelay.subscribers.memory import InMemorySubscriberRegistry
from feedrelay.subscribers.schemas import Subscriber


@pytest.fixture
def mock_database() -> AsyncMock:
    """Mock Database instance matching the Database API."""
    db = AsyncMock()
    db.fetch = AsyncMock(return_value=[])
    db.fetchval = AsyncMock(return_value=None)
    db.fetchrow = AsyncMock(return_value=None)
    db.execute = AsyncMock(return_value="UPDATE 1")
    return db


@pytest.fixture
def sample_db_row() -> dict:
    """A dict mimicking an asyncpg Record for a subscriber."""
    return {
        "chat_id": "-100123",
        "sources": ["https://example.com/feed.xml", "https://blog.example.org/rss"],
        "topic_id": 42,
        "is_paused": False,
        "created_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
        "updated_at": datetime(2025, 1, 2, tzinfo=timezone.utc),
    }


@pytest.fixture
def registry() -> InMemorySubscriberRegistry:
    return InMemorySubscriberRegistry([
        Subscriber(chat_id="-100123", sources=["https://example.com/feed.xml"], topic_id=7),
    ])


@pytest.fixture
def dedup() -> InMemoryDedupStore:
    return InMemoryDedupStore(history_size=5)


@pytest.fixture
def mock_fetcher() -> AsyncMock:
    fetcher = AsyncMock()
    fetcher.fetch = AsyncMock(return_value=[])
    return fetcher


@pytest.fixture
def mock_transport() -> AsyncMock:
    transport = AsyncMock()
    transport.deliver = AsyncMock(return_value=1)
    return transport


@pytest.fixture
def limiter() -> DeliveryRateLimiter:
    return DeliveryRateLimiter(min_interval=0)
