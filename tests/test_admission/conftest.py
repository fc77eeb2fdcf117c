"""Shared fixtures for admission tests."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from feedrelay.admission.config import AdmissionConfig


class ManualClock:
    """Clock returning a fixed instant until advanced."""

    def __init__(self) -> None:
        self.now = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def admission_config() -> AdmissionConfig:
    """Threshold 3: the fourth repeat inside the window warns."""
    return AdmissionConfig(
        window_seconds=60,
        command_threshold=3,
        warning_cap=4,
        block_seconds=3600,
        record_ttl_seconds=86400,
    )


@pytest.fixture
def mock_redis() -> AsyncMock:
    redis = AsyncMock()
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock(return_value=True)
    return redis


class FakePipeline:
    """Pipeline in immediate mode until ``multi``, then buffering writes."""

    def __init__(self, data: dict[str, str]) -> None:
        self._data = data
        self.writes: list[tuple[str, str, int | None]] = []

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    def multi(self) -> None:
        pass

    def set(self, key: str, value: str, ex: int | None = None) -> "FakePipeline":
        self.writes.append((key, value, ex))
        return self


class FakeRedis:
    """Dict-backed Redis with optimistic WATCH/MULTI/EXEC semantics.

    ``interleave`` runs once, between a transaction's read and its
    commit, to simulate another client writing the watched key.
    """

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}
        self.attempts = 0
        self.interleave = None

    async def transaction(self, func, *watches, value_from_callable=False):
        while True:
            self.attempts += 1
            snapshot = {key: self.data.get(key) for key in watches}
            pipe = FakePipeline(self.data)
            value = await func(pipe)

            if self.interleave is not None:
                interleave, self.interleave = self.interleave, None
                interleave(self.data)
            if any(self.data.get(key) != seen for key, seen in snapshot.items()):
                continue  # WatchError: retry with fresh state

            for key, payload, ex in pipe.writes:
                self.data[key] = payload
                self.ttls[key] = ex
            return value if value_from_callable else [True] * len(pipe.writes)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()
