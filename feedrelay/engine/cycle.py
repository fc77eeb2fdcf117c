"""
Cycle engine - one fetch-then-deliver pass over all subscribers.

Phases:
1. Load subscribers with at least one source.
2. Fetch every distinct source once (parallel, bounded) into a
   cycle-local cache.
3. Retire sources that failed permanently: removed from every
   subscriber, history discarded, before any delivery.
4. Per subscriber (parallel across subscribers, sequential within
   one): compute new items per source and deliver them oldest first,
   re-checking subscription and history before every send and
   committing each item only after the send is confirmed.

Failures are handled locally: a transient fetch skips the source this
cycle, a transient delivery abandons the rest of that source, a
permanent delivery failure deletes the subscriber.
"""

import asyncio
import enum
import time
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from functools import partial

import structlog

from feedrelay.dedup.base import DedupStore
from feedrelay.dedup.novelty import find_new_items
from feedrelay.delivery.rate_limiter import DeliveryRateLimiter
from feedrelay.delivery.transport import (
    DeliveryError,
    DeliveryTransport,
    PermanentDeliveryError,
    render_item_html,
)
from feedrelay.engine.config import EngineConfig
from feedrelay.fetching.base import (
    FetchError,
    PermanentFetchError,
    SourceFetcher,
    TransientFetchError,
)
from feedrelay.fetching.schemas import FeedItem
from feedrelay.observability.metrics import get_metrics
from feedrelay.subscribers.base import SubscriberRegistry
from feedrelay.subscribers.schemas import Subscriber

logger = structlog.get_logger(__name__)

FetchResult = list[FeedItem] | FetchError


class SourceOutcome(enum.Enum):
    """How processing of one (subscriber, source) pair ended."""
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    SUBSCRIBER_GONE = "subscriber_gone"


@dataclass
class CycleStats:
    """Counters for one cycle."""

    subscribers: int = 0
    sources_fetched: int = 0
    fetch_failures: int = 0
    sources_retired: int = 0
    subscribers_retired: int = 0
    delivered: int = 0
    delivery_failures: int = 0
    elapsed_seconds: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


class CycleEngine:
    """
    Orchestrates fetch, novelty, delivery and retirement for one cycle.

    Collaborators are injected; the engine holds no module-level state.
    ``run_cycle`` never overlaps itself: a call made while a cycle is in
    progress returns None immediately.

    Usage:
        engine = CycleEngine(registry, dedup, fetcher, transport, limiter)
        stats = await engine.run_cycle()
    """

    def __init__(
        self,
        registry: SubscriberRegistry,
        dedup: DedupStore,
        fetcher: SourceFetcher,
        transport: DeliveryTransport,
        limiter: DeliveryRateLimiter,
        config: EngineConfig | None = None,
        render: Callable[[FeedItem], str] = render_item_html,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._registry = registry
        self._dedup = dedup
        self._fetcher = fetcher
        self._transport = transport
        self._limiter = limiter
        self._config = config or EngineConfig()
        self._render = render
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._metrics = get_metrics()

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    async def run_cycle(self) -> CycleStats | None:
        """Run one complete pass.

        Returns:
            Cycle statistics, or None if another cycle was in progress.
        """
        if self._lock.locked():
            logger.warning("Cycle already in progress, skipping")
            self._metrics.record_cycle("skipped")
            return None

        async with self._lock:
            stats = CycleStats()
            started = time.monotonic()
            logger.info("Starting cycle")
            try:
                await self._run(stats)
            except Exception:
                self._metrics.record_cycle("failed", time.monotonic() - started)
                raise

            stats.elapsed_seconds = round(time.monotonic() - started, 3)
            self._metrics.record_cycle("completed", stats.elapsed_seconds)
            logger.info("Cycle complete", **stats.to_dict())
            return stats

    async def _run(self, stats: CycleStats) -> None:
        subscribers = await self._registry.list_active()
        stats.subscribers = len(subscribers)
        self._metrics.set_active_subscribers(len(subscribers))
        if not subscribers:
            return

        sources = list(dict.fromkeys(
            source for sub in subscribers for source in sub.sources
        ))
        feed_cache = await self._fetch_all(sources, stats)

        for source, result in feed_cache.items():
            if isinstance(result, PermanentFetchError):
                await self._retire_source(source, result, stats)

        semaphore = asyncio.Semaphore(self._config.delivery_concurrency)

        async def process(subscriber: Subscriber) -> None:
            async with semaphore:
                await self._process_subscriber(subscriber, feed_cache, stats)

        await asyncio.gather(*(process(sub) for sub in subscribers))

    # ── Fetch phase ─────────────────────────────────────────────

    async def _fetch_all(
        self,
        sources: list[str],
        stats: CycleStats,
    ) -> dict[str, FetchResult]:
        """Fetch each distinct source once; the result map lives for this cycle only."""
        semaphore = asyncio.Semaphore(self._config.fetch_concurrency)

        async def fetch_one(source: str) -> tuple[str, FetchResult]:
            async with semaphore:
                try:
                    items = await self._fetcher.fetch(source)
                except FetchError as e:
                    return source, e
                except Exception as e:
                    return source, TransientFetchError(
                        source, f"Unexpected fetch error: {type(e).__name__}: {e}"
                    )
                return source, items

        results = await asyncio.gather(*(fetch_one(s) for s in sources))

        feed_cache: dict[str, FetchResult] = {}
        for source, result in results:
            feed_cache[source] = result
            if isinstance(result, PermanentFetchError):
                stats.fetch_failures += 1
                self._metrics.record_fetch("permanent")
                logger.warning(
                    "Source failed permanently",
                    source=source, status=result.status_code, error=str(result),
                )
            elif isinstance(result, FetchError):
                stats.fetch_failures += 1
                self._metrics.record_fetch("transient")
                logger.warning("Source fetch failed", source=source, error=str(result))
            else:
                stats.sources_fetched += 1
                self._metrics.record_fetch("ok")
                logger.debug("Fetched source", source=source, items=len(result))

        return feed_cache

    # ── Delivery phase ──────────────────────────────────────────

    async def _process_subscriber(
        self,
        subscriber: Subscriber,
        feed_cache: dict[str, FetchResult],
        stats: CycleStats,
    ) -> None:
        chat_id = subscriber.chat_id

        for source in subscriber.sources:
            result = feed_cache.get(source)
            if not result or isinstance(result, FetchError):
                continue

            try:
                current = await self._registry.get(chat_id)
                if current is None:
                    return
                if current.is_paused:
                    logger.debug("Subscriber paused, skipping", chat_id=chat_id)
                    return
                if not current.is_subscribed(source):
                    logger.info(
                        "Subscriber no longer follows source, skipping",
                        chat_id=chat_id, source=source,
                    )
                    continue

                outcome = await self._deliver_source(current, source, result, stats)
                if outcome is SourceOutcome.SUBSCRIBER_GONE:
                    return
            except Exception:
                logger.exception(
                    "Unexpected error processing source",
                    chat_id=chat_id, source=source,
                )

    async def _deliver_source(
        self,
        subscriber: Subscriber,
        source: str,
        items: list[FeedItem],
        stats: CycleStats,
    ) -> SourceOutcome:
        chat_id = subscriber.chat_id
        known = await self._dedup.get_recent(chat_id, source)
        new_items = find_new_items(items, (fp.link for fp in known))
        if not new_items:
            return SourceOutcome.COMPLETED

        logger.debug(
            "New items found", chat_id=chat_id, source=source, count=len(new_items),
        )

        for item in new_items:
            # State may have changed during earlier sends or in another process
            current = await self._registry.get(chat_id)
            if current is None:
                return SourceOutcome.SUBSCRIBER_GONE
            if current.is_paused or not current.is_subscribed(source):
                logger.info(
                    "Subscription changed during delivery, stopping source",
                    chat_id=chat_id, source=source,
                )
                return SourceOutcome.ABANDONED
            if await self._dedup.contains(chat_id, source, item.link):
                self._metrics.record_delivery("skipped")
                logger.debug("Item already delivered", chat_id=chat_id, link=item.link)
                continue

            send = partial(
                self._transport.deliver, chat_id, current.topic_id, self._render(item),
            )
            try:
                await self._limiter.send(chat_id, send)
            except PermanentDeliveryError as e:
                self._metrics.record_delivery("permanent")
                await self._retire_subscriber(chat_id, e, stats)
                return SourceOutcome.SUBSCRIBER_GONE
            except DeliveryError as e:
                stats.delivery_failures += 1
                self._metrics.record_delivery("transient")
                logger.warning(
                    "Delivery failed, deferring source to next cycle",
                    chat_id=chat_id, source=source, error=str(e),
                    retry_after=e.retry_after,
                )
                return SourceOutcome.ABANDONED

            await self._dedup.commit(chat_id, source, item)
            stats.delivered += 1
            self._metrics.record_delivery("sent")
            logger.debug("Delivered item", chat_id=chat_id, source=source, link=item.link)

            if self._config.pacing_delay_seconds > 0:
                await self._sleep(self._config.pacing_delay_seconds)

        return SourceOutcome.COMPLETED

    # ── Retirement ──────────────────────────────────────────────

    async def _retire_source(
        self,
        source: str,
        error: PermanentFetchError,
        stats: CycleStats,
    ) -> None:
        try:
            chat_ids = await self._registry.remove_source_everywhere(source)
            await self._dedup.discard_source(source)
        except Exception:
            logger.exception("Failed to retire source", source=source)
            return

        stats.sources_retired += 1
        self._metrics.record_source_retired()
        logger.info(
            "Source retired",
            source=source, status=error.status_code, subscribers=len(chat_ids),
        )

    async def _retire_subscriber(
        self,
        chat_id: str,
        error: PermanentDeliveryError,
        stats: CycleStats,
    ) -> None:
        await self._registry.remove(chat_id)
        await self._dedup.discard_subscriber(chat_id)
        self._limiter.forget(chat_id)

        stats.subscribers_retired += 1
        self._metrics.record_subscriber_retired()
        logger.info(
            "Subscriber retired",
            chat_id=chat_id, error_code=error.error_code, description=error.description,
        )
