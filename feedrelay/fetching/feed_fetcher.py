"""
RSS/Atom fetcher built on httpx and feedparser.

Downloads the feed document itself and lets feedparser normalize it.
No retries happen here: a failed fetch is classified and deferred to
the next cycle by the engine.
"""

import calendar
import logging
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

import feedparser
import httpx

from feedrelay.fetching.base import (
    SourceFetcher,
    TransientFetchError,
    classify_status,
    classify_transport_error,
)
from feedrelay.fetching.schemas import FeedItem

logger = logging.getLogger(__name__)


class FeedparserFetcher(SourceFetcher):
    """
    Fetches a feed URL over HTTP and parses it with feedparser.

    One ``httpx.AsyncClient`` is kept for the fetcher's lifetime so that
    connections to popular hosts are pooled across a cycle.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        user_agent: str = "feedrelay/0.1.0 (RSS Reader)",
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize fetcher.

        Args:
            timeout: Request timeout in seconds.
            user_agent: User-Agent header sent to feed hosts.
            client: Pre-built client (tests); created lazily otherwise.
        """
        self._timeout = timeout
        self._user_agent = user_agent
        self._client = client
        self._owns_client = client is None

    @property
    def name(self) -> str:
        return "feedparser"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
                headers={"User-Agent": self._user_agent},
            )
        return self._client

    async def fetch(self, source: str) -> list[FeedItem]:
        client = self._get_client()
        try:
            response = await client.get(source)
        except httpx.HTTPError as e:
            raise classify_transport_error(source, e) from e

        if response.status_code >= 400:
            raise classify_status(source, response.status_code)

        feed = feedparser.parse(response.content)
        entries = feed.get("entries", [])
        if feed.get("bozo") and not entries:
            raise TransientFetchError(
                source,
                f"Invalid or unsupported feed format at {source}: "
                f"{feed.get('bozo_exception')}",
            )

        items = [item for item in map(_entry_to_item, entries) if item is not None]
        logger.debug("Fetched %d items from %s", len(items), source)
        return items

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None


def _entry_to_item(entry: dict[str, Any]) -> FeedItem | None:
    """Convert a feedparser entry; entries without a link cannot be deduplicated."""
    link = (entry.get("link") or "").strip()
    if not link:
        return None
    title = (entry.get("title") or "").strip()
    return FeedItem(title=title, link=link, published=_parse_timestamp(entry))


def _parse_timestamp(entry: dict[str, Any]) -> datetime | None:
    """Parse the entry timestamp, preferring feedparser's parsed struct."""
    for field in ("published", "updated", "created"):
        parsed = entry.get(f"{field}_parsed")
        if parsed:
            try:
                return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)
            except (OverflowError, ValueError, TypeError):
                pass

        raw = entry.get(field)
        if raw:
            try:
                return parsedate_to_datetime(raw)
            except (TypeError, ValueError):
                pass

    return None
