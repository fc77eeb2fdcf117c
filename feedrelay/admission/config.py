"""Admission control configuration.

Window, threshold, warning cap and cooldown differ between deployments,
so all of them are settings. Override via ``ADMISSION_*`` environment
variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AdmissionConfig(BaseSettings):
    """Configuration for per-caller command admission."""

    model_config = SettingsConfigDict(
        env_prefix="ADMISSION_",
        case_sensitive=False,
        extra="ignore",
    )

    window_seconds: int = Field(
        default=60,
        ge=1,
        le=3600,
        description="Trailing window over which repeated commands are counted",
    )
    command_threshold: int = Field(
        default=4,
        ge=1,
        le=100,
        description="Prior uses of the same command in the window that trigger a warning",
    )
    warning_cap: int = Field(
        default=4,
        ge=1,
        le=100,
        description="Warnings at which the caller is blocked",
    )
    block_seconds: int = Field(
        default=3600,
        ge=60,
        le=7 * 86400,
        description="Cooldown applied when the warning cap is reached",
    )
    record_ttl_seconds: int = Field(
        default=86400,
        ge=60,
        description="Idle time after which a caller's record is forgotten",
    )
    key_prefix: str = Field(
        default="admission",
        description="Redis key prefix for caller records",
    )
