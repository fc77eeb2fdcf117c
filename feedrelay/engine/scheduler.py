"""
Periodic cycle scheduler.

Runs the engine back to back with a quiet interval between cycles. The
interval is measured from the end of one cycle to the start of the
next, so a slow cycle never overlaps the one after it. A failed cycle
is logged and the loop carries on.
"""

import asyncio

import structlog

from feedrelay.engine.cycle import CycleEngine
from feedrelay.observability.logging import cycle_context

logger = structlog.get_logger(__name__)


class CycleScheduler:
    """
    Drives ``CycleEngine.run_cycle`` until stopped.

    Usage:
        scheduler = CycleScheduler(engine, interval_seconds=10)
        loop.add_signal_handler(signal.SIGTERM, scheduler.stop)
        await scheduler.start()
    """

    def __init__(self, engine: CycleEngine, interval_seconds: float = 10.0) -> None:
        self._engine = engine
        self._interval = interval_seconds
        self._stop_event = asyncio.Event()
        self._running = False
        self._cycles = 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def cycles_run(self) -> int:
        return self._cycles

    async def start(self, max_cycles: int | None = None) -> None:
        """Run cycles until ``stop`` is called or ``max_cycles`` is reached."""
        if self._running:
            logger.warning("Scheduler already running")
            return

        self._running = True
        self._stop_event.clear()
        logger.info("Scheduler started", interval=self._interval)

        try:
            while not self._stop_event.is_set():
                self._cycles += 1
                with cycle_context(self._cycles):
                    try:
                        await self._engine.run_cycle()
                    except Exception:
                        logger.exception("Cycle failed")

                if max_cycles is not None and self._cycles >= max_cycles:
                    break
                if await self._wait(self._interval):
                    break
        finally:
            self._running = False
            logger.info("Scheduler stopped", cycles=self._cycles)

    def stop(self) -> None:
        """Request shutdown; an in-progress cycle finishes first."""
        logger.info("Scheduler stop requested")
        self._stop_event.set()

    async def _wait(self, timeout: float) -> bool:
        """Sleep for ``timeout`` seconds. Returns True if woken by stop."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            return False
