"""
Per-destination pacing for outbound messages.

Telegram floods out chats that receive more than about one message per
second. The limiter serializes sends per destination and enforces a
minimum spacing between them; different destinations never wait on
each other.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DeliveryRateLimiter:
    """
    Minimum-interval gate keyed by destination.

    Usage:
        limiter = DeliveryRateLimiter(min_interval=1.0)
        await limiter.send(chat_id, lambda: transport.deliver(chat_id, None, text))

    The action's return value and exceptions pass through unchanged. A
    failed send still counts as a send for spacing purposes.
    """

    def __init__(
        self,
        min_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if min_interval < 0:
            raise ValueError(f"min_interval must be >= 0, got {min_interval}")
        self._min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._locks: dict[str, asyncio.Lock] = {}
        self._last_sent: dict[str, float] = {}

    @property
    def min_interval(self) -> float:
        return self._min_interval

    def _lock_for(self, destination: str) -> asyncio.Lock:
        lock = self._locks.get(destination)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[destination] = lock
        return lock

    async def send(
        self,
        destination: str,
        action: Callable[[], Awaitable[T]],
    ) -> T:
        """Run ``action`` once the destination's spacing allows it."""
        async with self._lock_for(destination):
            last = self._last_sent.get(destination)
            if last is not None:
                wait = last + self._min_interval - self._clock()
                if wait > 0:
                    logger.debug("Pacing %s for %.2fs", destination, wait)
                    await self._sleep(wait)
            try:
                return await action()
            finally:
                self._last_sent[destination] = self._clock()

    def forget(self, destination: str) -> None:
        """Drop state for a destination that will not be sent to again."""
        self._last_sent.pop(destination, None)
        lock = self._locks.get(destination)
        if lock is not None and not lock.locked():
            del self._locks[destination]
