"""
Subscription management on top of the registry and delivery history.

Handles the caller-initiated side of the system: adding and removing
sources, routing to a topic, pausing, and owner broadcasts. Adding a
source delivers its newest item immediately and records it, which gives
the cycle engine a novelty baseline so the next cycle does not replay
the whole feed.
"""

from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from functools import partial

import structlog

from feedrelay.dedup.base import DedupStore
from feedrelay.delivery.rate_limiter import DeliveryRateLimiter
from feedrelay.delivery.transport import (
    DeliveryError,
    DeliveryTransport,
    PermanentDeliveryError,
    render_item_html,
)
from feedrelay.fetching.base import SourceFetcher
from feedrelay.fetching.schemas import FeedItem
from feedrelay.observability.metrics import get_metrics
from feedrelay.subscribers.base import SubscriberRegistry

logger = structlog.get_logger(__name__)


class SubscriptionError(Exception):
    """Base exception for subscription management failures."""


class AlreadySubscribedError(SubscriptionError):
    """The chat already follows this source."""


class NotSubscribedError(SubscriptionError):
    """The chat does not follow this source (or has no subscriptions)."""


class EmptyFeedError(SubscriptionError):
    """The source parsed but has no items to establish a baseline from."""


@dataclass
class BroadcastResult:
    """Outcome of a broadcast to all subscribers."""

    recipients: int = 0
    sent: int = 0
    failed: int = 0
    retired: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


class SubscriptionService:
    """
    Caller-facing operations on subscribers.

    Usage:
        service = SubscriptionService(registry, dedup, fetcher, transport, limiter)
        latest = await service.subscribe("-100123", "https://example.com/feed")
    """

    def __init__(
        self,
        registry: SubscriberRegistry,
        dedup: DedupStore,
        fetcher: SourceFetcher,
        transport: DeliveryTransport,
        limiter: DeliveryRateLimiter,
        render: Callable[[FeedItem], str] = render_item_html,
    ) -> None:
        self._registry = registry
        self._dedup = dedup
        self._fetcher = fetcher
        self._transport = transport
        self._limiter = limiter
        self._render = render

    async def subscribe(
        self,
        chat_id: str,
        source: str,
        topic_id: int | None = None,
    ) -> FeedItem:
        """Follow a source and deliver its newest item.

        The newest item is sent and recorded before the source is added,
        so a cycle never sees the source without a novelty baseline.

        Raises:
            AlreadySubscribedError: Source already followed.
            FetchError: Source could not be fetched.
            EmptyFeedError: Source has no items.
            DeliveryError: Newest item could not be sent; nothing is
                subscribed.
        """
        current = await self._registry.get(chat_id)
        if current is not None and current.is_subscribed(source):
            raise AlreadySubscribedError(source)

        items = await self._fetcher.fetch(source)
        if not items:
            raise EmptyFeedError(source)

        latest = items[0]
        if topic_id is None and current is not None:
            topic_id = current.topic_id
        content = self._render(latest)
        await self._limiter.send(
            chat_id,
            partial(self._transport.deliver, chat_id, topic_id, content),
        )
        await self._dedup.commit(chat_id, source, latest)

        # Lost a race with a concurrent subscribe; the committed item was
        # delivered, so it stays in the history.
        if not await self._registry.add_source(chat_id, source):
            raise AlreadySubscribedError(source)
        logger.info("Source added", chat_id=chat_id, source=source, latest=latest.link)
        return latest

    async def unsubscribe(self, chat_id: str, source: str) -> None:
        """Stop following a source and forget its delivery history."""
        removed = await self._registry.remove_source(chat_id, source)
        await self._dedup.discard(chat_id, source)
        if not removed:
            raise NotSubscribedError(source)
        logger.info("Source removed", chat_id=chat_id, source=source)

    async def unsubscribe_all(self, chat_id: str) -> list[str]:
        """Stop following every source. Returns the sources removed."""
        removed = await self._registry.clear_sources(chat_id)
        await self._dedup.discard_subscriber(chat_id)
        if removed:
            logger.info("All sources removed", chat_id=chat_id, count=len(removed))
        return removed

    async def set_topic(self, chat_id: str, topic_id: int) -> None:
        await self._registry.set_topic(chat_id, topic_id)
        logger.info("Topic set", chat_id=chat_id, topic_id=topic_id)

    async def pause(self, chat_id: str) -> bool:
        """Pause delivery. Returns False if already paused."""
        return await self._set_paused(chat_id, True)

    async def resume(self, chat_id: str) -> bool:
        """Resume delivery. Returns False if not paused."""
        return await self._set_paused(chat_id, False)

    async def _set_paused(self, chat_id: str, paused: bool) -> bool:
        if await self._registry.get(chat_id) is None:
            raise NotSubscribedError(chat_id)
        changed = await self._registry.set_paused(chat_id, paused)
        if changed:
            logger.info("Pause flag changed", chat_id=chat_id, paused=paused)
        return changed

    async def list_sources(self, chat_id: str) -> list[str]:
        subscriber = await self._registry.get(chat_id)
        return list(subscriber.sources) if subscriber else []

    async def broadcast(self, content: str) -> BroadcastResult:
        """Send one message to every subscriber, one chat at a time.

        Chats the transport reports as permanently gone are deleted along
        with their delivery history. Other failures are counted and the
        broadcast carries on.
        """
        result = BroadcastResult()
        metrics = get_metrics()

        for subscriber in await self._registry.list_active():
            chat_id = subscriber.chat_id
            result.recipients += 1
            send = partial(self._transport.deliver, chat_id, subscriber.topic_id, content)
            try:
                await self._limiter.send(chat_id, send)
            except PermanentDeliveryError as e:
                await self._registry.remove(chat_id)
                await self._dedup.discard_subscriber(chat_id)
                self._limiter.forget(chat_id)
                result.retired.append(chat_id)
                metrics.record_delivery("permanent")
                metrics.record_subscriber_retired()
                logger.info("Broadcast recipient gone, removed", chat_id=chat_id, error=str(e))
                continue
            except DeliveryError as e:
                result.failed += 1
                metrics.record_delivery("transient")
                logger.warning("Broadcast delivery failed", chat_id=chat_id, error=str(e))
                continue
            result.sent += 1
            metrics.record_delivery("sent")

        logger.info("Broadcast complete", **result.to_dict())
        return result
