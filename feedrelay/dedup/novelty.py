"""
Stateless novelty and history functions.

Feeds list items newest first and only ever prepend, so the first item
we already delivered marks the boundary: everything after it is older
and was either delivered or predates the subscription.
"""

from collections.abc import Iterable, Sequence

from feedrelay.dedup.schemas import Fingerprint
from feedrelay.fetching.schemas import FeedItem


def find_new_items(
    items: Sequence[FeedItem],
    known_links: Iterable[str],
) -> list[FeedItem]:
    """Select undelivered items in delivery order.

    Args:
        items: Fetched items, newest first.
        known_links: Links already delivered to this chat from this source.

    Returns:
        New items, oldest first, so the chat reads them chronologically.
    """
    known = set(known_links)
    new_items: list[FeedItem] = []
    seen: set[str] = set()

    for item in items:
        if item.link in known:
            break
        # Feeds occasionally repeat an entry within one document
        if item.link in seen:
            continue
        seen.add(item.link)
        new_items.append(item)

    new_items.reverse()
    return new_items


def push_fingerprint(
    history: Sequence[Fingerprint],
    fingerprint: Fingerprint,
    capacity: int,
) -> list[Fingerprint]:
    """Prepend a fingerprint to a newest-first history, bounded to capacity.

    Idempotent: a link already present leaves the history unchanged.
    """
    if any(fp.link == fingerprint.link for fp in history):
        return list(history)
    return [fingerprint, *history][:capacity]
