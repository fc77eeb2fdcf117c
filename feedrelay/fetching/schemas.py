"""Normalized feed item returned by every fetcher backend."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class FeedItem:
    """A single entry of a fetched feed.

    ``link`` is the fingerprint: two items with the same link are the
    same item regardless of title edits.

    Attributes:
        title: Entry title (may be empty for title-less feeds).
        link: Canonical entry URL, used as the dedup key.
        published: Publication time if the feed provides one.
    """

    title: str
    link: str
    published: datetime | None = None

    def __post_init__(self) -> None:
        if not self.link:
            raise ValueError("FeedItem requires a non-empty link")
