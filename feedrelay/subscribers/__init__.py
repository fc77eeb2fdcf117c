"""Subscribers: registry of destinations, their sources and delivery preferences."""

from feedrelay.subscribers.base import SubscriberRegistry
from feedrelay.subscribers.memory import InMemorySubscriberRegistry
from feedrelay.subscribers.repository import SubscriberRepository
from feedrelay.subscribers.schemas import Subscriber
from feedrelay.subscribers.service import (
    AlreadySubscribedError,
    BroadcastResult,
    EmptyFeedError,
    NotSubscribedError,
    SubscriptionError,
    SubscriptionService,
)

__all__ = [
    "AlreadySubscribedError",
    "BroadcastResult",
    "EmptyFeedError",
    "InMemorySubscriberRegistry",
    "NotSubscribedError",
    "Subscriber",
    "SubscriberRegistry",
    "SubscriberRepository",
    "SubscriptionError",
    "SubscriptionService",
]
