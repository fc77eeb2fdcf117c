"""Delivery transport and pacing configuration.

All settings can be overridden via ``DELIVERY_*`` environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DeliveryConfig(BaseSettings):
    """Configuration for outbound message delivery."""

    model_config = SettingsConfigDict(
        env_prefix="DELIVERY_",
        case_sensitive=False,
        extra="ignore",
    )

    min_interval_seconds: float = Field(
        default=1.0,
        ge=0.0,
        le=60.0,
        description="Minimum spacing between two messages to the same chat",
    )
    request_timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        le=120.0,
        description="HTTP timeout for a single sendMessage call",
    )
    disable_web_page_preview: bool = Field(
        default=False,
        description="Suppress link previews in delivered messages",
    )
