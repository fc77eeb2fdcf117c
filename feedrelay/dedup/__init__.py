"""Dedup: bounded per (chat, source) delivery history and the novelty algorithm.

Components:
- Fingerprint: one delivered item (title, link, delivered_at)
- DedupConfig: history size (DEDUP_* env vars)
- DedupStore: abstract store; DedupRepository (Postgres), InMemoryDedupStore
- find_new_items / push_fingerprint: stateless novelty and history helpers
"""

from feedrelay.dedup.base import DedupStore
from feedrelay.dedup.config import DedupConfig
from feedrelay.dedup.memory import InMemoryDedupStore
from feedrelay.dedup.novelty import find_new_items, push_fingerprint
from feedrelay.dedup.repository import DedupRepository
from feedrelay.dedup.schemas import Fingerprint

__all__ = [
    "DedupConfig",
    "DedupRepository",
    "DedupStore",
    "Fingerprint",
    "InMemoryDedupStore",
    "find_new_items",
    "push_fingerprint",
]
