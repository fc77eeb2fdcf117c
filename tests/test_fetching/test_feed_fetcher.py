"""Tests for FeedparserFetcher."""

from datetime import datetime, timezone

import httpx
import pytest
import respx

from feedrelay.fetching.base import PermanentFetchError, TransientFetchError
from feedrelay.fetching.feed_fetcher import FeedparserFetcher

FEED_URL = "https://example.com/feed.xml"

RSS_BODY = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Example</title>
    <link>https://example.com</link>
    <description>Example feed</description>
    <item>
      <title>Third post</title>
      <link>https://example.com/posts/3</link>
      <pubDate>Mon, 03 Mar 2025 12:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Untitled link-less entry</title>
    </item>
    <item>
      <title>Second post</title>
      <link>https://example.com/posts/2</link>
    </item>
  </channel>
</rss>
"""


class TestFetchSuccess:
    """Tests for parsing a reachable feed."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_items_in_feed_order(self):
        respx.get(FEED_URL).mock(return_value=httpx.Response(200, content=RSS_BODY))
        fetcher = FeedparserFetcher()

        items = await fetcher.fetch(FEED_URL)
        await fetcher.close()

        assert [i.link for i in items] == [
            "https://example.com/posts/3",
            "https://example.com/posts/2",
        ]
        assert items[0].title == "Third post"

    @pytest.mark.asyncio
    @respx.mock
    async def test_parses_pubdate(self):
        respx.get(FEED_URL).mock(return_value=httpx.Response(200, content=RSS_BODY))
        fetcher = FeedparserFetcher()

        items = await fetcher.fetch(FEED_URL)
        await fetcher.close()

        assert items[0].published == datetime(2025, 3, 3, 12, 0, tzinfo=timezone.utc)
        assert items[1].published is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_sends_user_agent(self):
        route = respx.get(FEED_URL).mock(return_value=httpx.Response(200, content=RSS_BODY))
        fetcher = FeedparserFetcher(user_agent="relay-test/1.0")

        await fetcher.fetch(FEED_URL)
        await fetcher.close()

        assert route.calls.last.request.headers["User-Agent"] == "relay-test/1.0"

    def test_name(self):
        assert FeedparserFetcher().name == "feedparser"


class TestFetchClassification:
    """Tests for failure classification."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [403, 404, 410, 500])
    @respx.mock
    async def test_permanent_statuses(self, status):
        respx.get(FEED_URL).mock(return_value=httpx.Response(status))
        fetcher = FeedparserFetcher()

        with pytest.raises(PermanentFetchError) as exc_info:
            await fetcher.fetch(FEED_URL)
        await fetcher.close()

        assert exc_info.value.status_code == status
        assert exc_info.value.source == FEED_URL

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [429, 502, 503])
    @respx.mock
    async def test_transient_statuses(self, status):
        respx.get(FEED_URL).mock(return_value=httpx.Response(status))
        fetcher = FeedparserFetcher()

        with pytest.raises(TransientFetchError):
            await fetcher.fetch(FEED_URL)
        await fetcher.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_timeout_is_transient(self):
        respx.get(FEED_URL).mock(side_effect=httpx.ReadTimeout("timed out"))
        fetcher = FeedparserFetcher(timeout=1.0)

        with pytest.raises(TransientFetchError, match="Timed out"):
            await fetcher.fetch(FEED_URL)
        await fetcher.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_connection_error_is_transient(self):
        respx.get(FEED_URL).mock(side_effect=httpx.ConnectError("refused"))
        fetcher = FeedparserFetcher()

        with pytest.raises(TransientFetchError):
            await fetcher.fetch(FEED_URL)
        await fetcher.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_unparseable_body_is_transient(self):
        respx.get(FEED_URL).mock(
            return_value=httpx.Response(200, content=b"<html><body>not a feed")
        )
        fetcher = FeedparserFetcher()

        with pytest.raises(TransientFetchError):
            await fetcher.fetch(FEED_URL)
        await fetcher.close()
