"""
Prometheus metrics for monitoring the delivery engine.

Defines and exposes metrics for:
- Cycle counts and duration
- Fetch outcomes per classification
- Delivery outcomes per classification
- Source and subscriber retirement
- Admission control decisions

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

from feedrelay.config.settings import get_settings

logger = logging.getLogger(__name__)

# Cycles are dominated by network waits and pacing delays
CYCLE_BUCKETS = (1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0, 1800.0)


class MetricsCollector:
    """
    Prometheus metrics collector for feedrelay.

    Usage:
        metrics = get_metrics()
        metrics.start_server()
        metrics.record_fetch("ok")
    """

    def __init__(self):
        """Initialize Prometheus metrics."""
        self.cycles = Counter(
            "feedrelay_cycles_total",
            "Total number of delivery cycles",
            ["status"],  # completed, failed, skipped
        )

        self.cycle_duration = Histogram(
            "feedrelay_cycle_duration_seconds",
            "Wall-clock duration of a delivery cycle",
            buckets=CYCLE_BUCKETS,
        )

        self.fetches = Counter(
            "feedrelay_fetches_total",
            "Source fetches by outcome",
            ["outcome"],  # ok, transient, permanent
        )

        self.deliveries = Counter(
            "feedrelay_deliveries_total",
            "Item deliveries by outcome",
            ["outcome"],  # sent, skipped, transient, permanent
        )

        self.sources_retired = Counter(
            "feedrelay_sources_retired_total",
            "Sources removed from all subscribers after a permanent fetch failure",
        )

        self.subscribers_retired = Counter(
            "feedrelay_subscribers_retired_total",
            "Subscribers removed after a permanent delivery failure",
        )

        self.admission_decisions = Counter(
            "feedrelay_admission_decisions_total",
            "Admission control decisions",
            ["decision"],  # allow, warn, block, reject, fault
        )

        self.active_subscribers = Gauge(
            "feedrelay_active_subscribers",
            "Subscribers with at least one source at the start of the last cycle",
        )

        self._server_started = False

    def start_server(self, port: int | None = None) -> None:
        """
        Start HTTP server for Prometheus scraping.

        Args:
            port: Port to listen on (defaults to settings.metrics_port)
        """
        if self._server_started:
            logger.warning("Metrics server already started")
            return

        port = port or get_settings().metrics_port
        start_http_server(port)
        self._server_started = True
        logger.info("Metrics server started on port %d", port)

    def record_cycle(self, status: str, duration: float | None = None) -> None:
        self.cycles.labels(status=status).inc()
        if duration is not None:
            self.cycle_duration.observe(duration)

    def record_fetch(self, outcome: str) -> None:
        self.fetches.labels(outcome=outcome).inc()

    def record_delivery(self, outcome: str) -> None:
        self.deliveries.labels(outcome=outcome).inc()

    def record_source_retired(self) -> None:
        self.sources_retired.inc()

    def record_subscriber_retired(self) -> None:
        self.subscribers_retired.inc()

    def record_admission(self, decision: str) -> None:
        self.admission_decisions.labels(decision=decision).inc()

    def set_active_subscribers(self, count: int) -> None:
        self.active_subscribers.set(count)


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
