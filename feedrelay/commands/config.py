"""Command surface configuration.

Content filter lists can be overridden via ``CONTENT_FILTER_*``
environment variables (JSON arrays).
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BLOCKED_DOMAINS = [
    "pornhub.com",
    "xvideos.com",
    "xnxx.com",
    "redtube.com",
    "youporn.com",
    "xhamster.com",
    "spankbang.com",
    "onlyfans.com",
    "chaturbate.com",
    "livejasmin.com",
    "stripchat.com",
    "eporner.com",
]

DEFAULT_BLOCKED_KEYWORDS = [
    "porn",
    "xxx",
    "hentai",
    "nsfw",
    "onlyfans",
    "chaturbate",
]


class ContentFilterConfig(BaseSettings):
    """Sources rejected by ``add``."""

    model_config = SettingsConfigDict(
        env_prefix="CONTENT_FILTER_",
        case_sensitive=False,
        extra="ignore",
    )

    enabled: bool = Field(
        default=True,
        description="Reject blocked sources on add",
    )
    blocked_domains: list[str] = Field(
        default_factory=lambda: list(DEFAULT_BLOCKED_DOMAINS),
        description="Hosts rejected along with their subdomains",
    )
    blocked_keywords: list[str] = Field(
        default_factory=lambda: list(DEFAULT_BLOCKED_KEYWORDS),
        description="Substrings rejected anywhere in the source URL",
    )
