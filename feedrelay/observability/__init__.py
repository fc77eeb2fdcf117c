"""Observability layer - logging and metrics."""

from feedrelay.observability.logging import setup_logging
from feedrelay.observability.metrics import MetricsCollector, get_metrics

__all__ = ["setup_logging", "MetricsCollector", "get_metrics"]
