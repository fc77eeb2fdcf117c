"""Cycle engine configuration.

All settings can be overridden via ``ENGINE_*`` environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineConfig(BaseSettings):
    """Configuration for the fetch-and-deliver cycle."""

    model_config = SettingsConfigDict(
        env_prefix="ENGINE_",
        case_sensitive=False,
        extra="ignore",
    )

    cycle_interval_seconds: float = Field(
        default=10.0,
        ge=0.0,
        le=3600.0,
        description="Quiet period between the end of one cycle and the start of the next",
    )
    pacing_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        le=60.0,
        description="Pause after each successful delivery",
    )
    fetch_concurrency: int = Field(
        default=8,
        ge=1,
        le=256,
        description="Distinct sources fetched in parallel",
    )
    delivery_concurrency: int = Field(
        default=4,
        ge=1,
        le=256,
        description="Subscribers processed in parallel (each one stays sequential)",
    )
