"""Configuration for delivery history retention."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DedupConfig(BaseSettings):
    """Settings for per (chat, source) delivery history."""

    model_config = SettingsConfigDict(
        env_prefix="DEDUP_",
        case_sensitive=False,
        extra="ignore",
    )

    history_size: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Delivered links remembered per chat and source (oldest evicted first)",
    )
