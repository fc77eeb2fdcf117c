"""
Fetcher backed by an external feed-parsing HTTP service.

The service exposes ``GET {base}/parse?url=<feed>`` and answers with
``{"feed": {...}, "items": [...], "source": "..."}``. Errors carry a
``detail`` (FastAPI style) or ``error`` field.
"""

import logging
from datetime import datetime
from typing import Any

import httpx

from feedrelay.fetching.base import (
    SourceFetcher,
    TransientFetchError,
    classify_status,
    classify_transport_error,
)
from feedrelay.fetching.schemas import FeedItem

logger = logging.getLogger(__name__)


class ParserAPIFetcher(SourceFetcher):
    """Delegates feed parsing to a parser service and normalizes its items."""

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:5000",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    @property
    def name(self) -> str:
        return "parser_api"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def fetch(self, source: str) -> list[FeedItem]:
        client = self._get_client()
        try:
            response = await client.get(
                f"{self._base_url}/parse", params={"url": source}
            )
        except httpx.HTTPError as e:
            raise classify_transport_error(source, e) from e

        if response.status_code >= 400:
            raise classify_status(source, response.status_code, _error_detail(response))

        try:
            payload = response.json()
        except ValueError as e:
            raise TransientFetchError(
                source, f"Parser service returned invalid JSON for {source}"
            ) from e

        raw_items = (payload.get("items") or []) if isinstance(payload, dict) else None
        if not isinstance(raw_items, list):
            raise TransientFetchError(
                source, f"Parser service returned an unexpected payload for {source}"
            )
        items = [item for item in map(_to_item, raw_items) if item is not None]
        logger.debug("Parser service returned %d items for %s", len(items), source)
        return items

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        return str(body.get("detail") or body.get("error") or "")
    return ""


def _to_item(raw: Any) -> FeedItem | None:
    if not isinstance(raw, dict):
        return None
    link = (raw.get("link") or "").strip()
    if not link:
        return None

    published = None
    value = raw.get("published") or raw.get("pubDate")
    if isinstance(value, str):
        try:
            published = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            published = None

    return FeedItem(
        title=(raw.get("title") or "").strip(),
        link=link,
        published=published,
    )
