"""Admission controller combining the policy with a record store."""

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from feedrelay.admission.config import AdmissionConfig
from feedrelay.admission.policy import AdmissionPolicy
from feedrelay.admission.schemas import AdmissionDecision, AdmissionRecord
from feedrelay.admission.store import AdmissionStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AdmissionController:
    """Loads a caller's record, evaluates the attempt, persists the result.

    Load, evaluate and save run as one store operation, so concurrent
    commands from the same caller cannot lose each other's updates. A
    REJECT decision (caller already blocked) writes nothing. Store failures
    propagate as AdmissionFault; callers decide to fail open.
    """

    def __init__(
        self,
        store: AdmissionStore,
        config: AdmissionConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._policy = AdmissionPolicy(config or AdmissionConfig())
        self._clock = clock

    @property
    def policy(self) -> AdmissionPolicy:
        return self._policy

    async def check(self, caller_id: str, command: str) -> AdmissionDecision:
        now = self._clock()

        def evaluate(record: AdmissionRecord | None) -> AdmissionDecision:
            return self._policy.evaluate(
                record or AdmissionRecord(caller_id=caller_id), command, now,
            )

        decision = await self._store.apply(caller_id, evaluate)

        if not decision.allowed:
            logger.info(
                "Admission %s for caller %s on %s (warnings %d/%d)",
                decision.outcome.value, caller_id, command,
                decision.warnings, decision.warning_cap,
            )
        return decision
