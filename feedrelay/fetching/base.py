"""
Source fetcher interface and failure classification.

A fetcher turns a source identifier (a feed URL) into an ordered list of
FeedItems, newest first. Failures are classified at the fetcher boundary
so the cycle engine never has to inspect HTTP details:

- PermanentFetchError: the source is gone or refuses us for good
  (HTTP 403, 404, 410, 500). The engine retires the source.
- TransientFetchError: anything else (timeouts, connection errors,
  429, other 5xx, unparseable bodies). Retried next cycle.
"""

from abc import ABC, abstractmethod

import httpx

from feedrelay.fetching.schemas import FeedItem

PERMANENT_STATUS_CODES: frozenset[int] = frozenset({403, 404, 410, 500})


class FetchError(Exception):
    """Base exception for source fetch failures."""

    def __init__(
        self,
        source: str,
        message: str,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.source = source
        self.status_code = status_code


class TransientFetchError(FetchError):
    """Fetch failed for a reason that may clear up by the next cycle."""


class PermanentFetchError(FetchError):
    """Source no longer exists or permanently rejects requests."""


def classify_status(source: str, status_code: int, detail: str = "") -> FetchError:
    """Build the classified error for a non-success HTTP status."""
    message = f"HTTP {status_code} fetching {source}"
    if detail:
        message = f"{message}: {detail}"
    if status_code in PERMANENT_STATUS_CODES:
        return PermanentFetchError(source, message, status_code=status_code)
    return TransientFetchError(source, message, status_code=status_code)


def classify_transport_error(source: str, exc: httpx.HTTPError) -> FetchError:
    """Network-level failures (timeouts included) are always transient."""
    if isinstance(exc, httpx.TimeoutException):
        return TransientFetchError(source, f"Timed out fetching {source}")
    return TransientFetchError(
        source, f"{type(exc).__name__} fetching {source}: {exc}"
    )


class SourceFetcher(ABC):
    """Abstract base for source fetchers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend identifier used in logs."""

    @abstractmethod
    async def fetch(self, source: str) -> list[FeedItem]:
        """Fetch the current items of a source, newest first.

        Args:
            source: Feed URL.

        Returns:
            Items in feed order (newest first). May be empty.

        Raises:
            TransientFetchError: Retry next cycle.
            PermanentFetchError: Source should be retired.
        """

    async def close(self) -> None:
        """Release any held resources."""
