"""Delivery: outbound transports, error classification and per-chat pacing.

Components:
- DeliveryTransport / TelegramTransport: send one rendered message
- LoggingTransport: logs messages instead of sending (local runs)
- DeliveryError / TransientDeliveryError / PermanentDeliveryError
- DeliveryRateLimiter: minimum spacing between sends per destination
- DeliveryConfig: DELIVERY_* settings
- render_item_html: default message body for a feed item
"""

from feedrelay.delivery.config import DeliveryConfig
from feedrelay.delivery.rate_limiter import DeliveryRateLimiter
from feedrelay.delivery.transport import (
    DeliveryError,
    DeliveryTransport,
    LoggingTransport,
    PermanentDeliveryError,
    TelegramTransport,
    TransientDeliveryError,
    classify_api_error,
    render_item_html,
)

__all__ = [
    "DeliveryConfig",
    "DeliveryError",
    "DeliveryRateLimiter",
    "DeliveryTransport",
    "LoggingTransport",
    "PermanentDeliveryError",
    "TelegramTransport",
    "TransientDeliveryError",
    "classify_api_error",
    "render_item_html",
]
