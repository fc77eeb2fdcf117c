"""Shared fixtures for dedup tests."""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest


@pytest.fixture
def mock_connection() -> AsyncMock:
    """Connection yielded by Database.transaction()."""
    conn = AsyncMock()
    conn.execute = AsyncMock(return_value="INSERT 0 1")
    return conn


@pytest.fixture
def mock_database(mock_connection: AsyncMock) -> MagicMock:
    """Mock Database with a working transaction() context manager."""
    db = MagicMock()
    db.fetch = AsyncMock(return_value=[])
    db.fetchval = AsyncMock(return_value=None)
    db.execute = AsyncMock(return_value="DELETE 0")

    @asynccontextmanager
    async def transaction():
        yield mock_connection

    db.transaction = transaction
    return db
