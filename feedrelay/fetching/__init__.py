"""Source fetching: normalized feed items and classified fetch failures."""

from feedrelay.config.settings import Settings
from feedrelay.fetching.base import (
    PERMANENT_STATUS_CODES,
    FetchError,
    PermanentFetchError,
    SourceFetcher,
    TransientFetchError,
)
from feedrelay.fetching.feed_fetcher import FeedparserFetcher
from feedrelay.fetching.parser_api import ParserAPIFetcher
from feedrelay.fetching.schemas import FeedItem


def create_fetcher(settings: Settings) -> SourceFetcher:
    """Build the fetcher backend selected by ``settings.fetcher``."""
    if settings.fetcher == "parser_api":
        return ParserAPIFetcher(
            base_url=settings.parser_api_url,
            timeout=settings.fetch_timeout_seconds,
        )
    return FeedparserFetcher(
        timeout=settings.fetch_timeout_seconds,
        user_agent=settings.fetch_user_agent,
    )


__all__ = [
    "FeedItem",
    "FeedparserFetcher",
    "FetchError",
    "PERMANENT_STATUS_CODES",
    "ParserAPIFetcher",
    "PermanentFetchError",
    "SourceFetcher",
    "TransientFetchError",
    "create_fetcher",
]
