"""Shared fixtures for command tests."""

from unittest.mock import AsyncMock

import pytest

from feedrelay.commands.schemas import CommandRequest
from feedrelay.dedup.memory import InMemoryDedupStore
from feedrelay.delivery.rate_limiter import DeliveryRateLimiter
from feedrelay.subscribers.memory import InMemorySubscriberRegistry
from feedrelay.subscribers.service import SubscriptionService


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
def subscription_service(mock_fetcher, mock_transport) -> SubscriptionService:
    return SubscriptionService(
        InMemorySubscriberRegistry(),
        InMemoryDedupStore(),
        mock_fetcher,
        mock_transport,
        DeliveryRateLimiter(min_interval=0),
    )


@pytest.fixture
def make_request():
    def _make(text: str, **kwargs) -> CommandRequest:
        kwargs.setdefault("caller_id", "u1")
        kwargs.setdefault("chat_id", "-100123")
        return CommandRequest.parse(text, **kwargs)
    return _make
