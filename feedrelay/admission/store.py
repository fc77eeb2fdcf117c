"""
Persistence for admission records.

Redis is the production backend: one JSON document per caller under
``{key_prefix}:{caller_id}`` with a TTL, so idle callers are swept by
Redis itself. ``apply`` runs read, evaluate and write as one optimistic
transaction (WATCH/MULTI), so two commands from the same caller never
overwrite each other's log entry or warning. Backend failures surface
as AdmissionFault.
"""

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from feedrelay.admission.schemas import AdmissionDecision, AdmissionRecord

logger = logging.getLogger(__name__)

# Evaluates an attempt against the caller's stored record (None for a new caller)
Evaluator = Callable[[AdmissionRecord | None], AdmissionDecision]


class AdmissionFault(Exception):
    """The admission store could not be read or written."""


class AdmissionStore(ABC):
    """Abstract base for admission record stores."""

    @abstractmethod
    async def get(self, caller_id: str) -> AdmissionRecord | None:
        """Load a caller's record, or None for a first-time caller."""

    @abstractmethod
    async def save(self, record: AdmissionRecord) -> None:
        """Replace a caller's record."""

    async def apply(self, caller_id: str, evaluate: Evaluator) -> AdmissionDecision:
        """Evaluate an attempt and persist the resulting record, if any.

        The default loads and saves with no await in between that could
        yield to another command, which is atomic for in-process stores.
        """
        decision = evaluate(await self.get(caller_id))
        if decision.record is not None:
            await self.save(decision.record)
        return decision


class RedisAdmissionStore(AdmissionStore):
    """Stores each record as a JSON string with an expiry."""

    def __init__(
        self,
        redis_client: Any,
        key_prefix: str = "admission",
        ttl_seconds: int = 86400,
    ) -> None:
        self._redis = redis_client
        self._key_prefix = key_prefix
        self._ttl_seconds = ttl_seconds

    def _key(self, caller_id: str) -> str:
        return f"{self._key_prefix}:{caller_id}"

    def _ttl_for(self, record: AdmissionRecord) -> int:
        ttl = self._ttl_seconds
        if record.block_until is not None:
            remaining = (record.block_until - datetime.now(timezone.utc)).total_seconds()
            ttl = max(ttl, int(remaining) + 1)
        return ttl

    def _decode(self, caller_id: str, raw: str | bytes | None) -> AdmissionRecord | None:
        if raw is None:
            return None
        try:
            return AdmissionRecord.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            # Unreadable record: start the caller over rather than fail every command
            logger.warning("Discarding corrupt admission record for %s: %s", caller_id, e)
            return None

    async def get(self, caller_id: str) -> AdmissionRecord | None:
        try:
            raw = await self._redis.get(self._key(caller_id))
        except Exception as e:
            raise AdmissionFault(f"Failed to load admission record for {caller_id}: {e}") from e
        return self._decode(caller_id, raw)

    async def save(self, record: AdmissionRecord) -> None:
        payload = json.dumps(record.to_dict())
        try:
            await self._redis.set(
                self._key(record.caller_id), payload, ex=self._ttl_for(record),
            )
        except Exception as e:
            raise AdmissionFault(
                f"Failed to save admission record for {record.caller_id}: {e}"
            ) from e

    async def apply(self, caller_id: str, evaluate: Evaluator) -> AdmissionDecision:
        """Read-evaluate-write under WATCH; a concurrent write re-runs the evaluation."""
        key = self._key(caller_id)

        async def attempt(pipe) -> AdmissionDecision:
            decision = evaluate(self._decode(caller_id, await pipe.get(key)))
            pipe.multi()
            if decision.record is not None:
                pipe.set(
                    key,
                    json.dumps(decision.record.to_dict()),
                    ex=self._ttl_for(decision.record),
                )
            return decision

        try:
            return await self._redis.transaction(attempt, key, value_from_callable=True)
        except Exception as e:
            raise AdmissionFault(
                f"Failed to update admission record for {caller_id}: {e}"
            ) from e


class InMemoryAdmissionStore(AdmissionStore):
    """Dict-backed store for local runs; records never expire."""

    def __init__(self) -> None:
        self._records: dict[str, dict[str, Any]] = {}

    async def get(self, caller_id: str) -> AdmissionRecord | None:
        data = self._records.get(caller_id)
        return AdmissionRecord.from_dict(data) if data else None

    async def save(self, record: AdmissionRecord) -> None:
        self._records[record.caller_id] = record.to_dict()
