"""Data models for delivery history."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Fingerprint:
    """Record of one item delivered to one chat from one source.

    ``link`` is the uniqueness key within a (chat, source) history.
    """

    title: str
    link: str
    delivered_at: datetime
