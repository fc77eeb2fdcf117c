"""Storage layer for subscriber and delivery-history persistence."""

from feedrelay.storage.database import Database, rows_affected

__all__ = ["Database", "rows_affected"]
