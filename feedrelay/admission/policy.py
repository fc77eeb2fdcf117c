"""
Admission state machine.

Per caller: Clear -> Warned(k) -> Blocked -> Clear.

- Blocked (block_until in the future): reject, record untouched.
- Same command seen ``command_threshold`` times in the trailing window:
  one more warning. At ``warning_cap`` warnings the caller is blocked
  for ``block_seconds``, and the command log and warnings are reset.
- Otherwise: log the attempt and allow it.

Pure functions of (record, command, now); persistence and fail-open
handling live in ``AdmissionController`` and the command middleware.
"""

from datetime import datetime, timedelta

from feedrelay.admission.config import AdmissionConfig
from feedrelay.admission.schemas import (
    AdmissionDecision,
    AdmissionOutcome,
    AdmissionRecord,
    CommandEntry,
)


class AdmissionPolicy:
    """Evaluates command attempts against an AdmissionConfig."""

    def __init__(self, config: AdmissionConfig) -> None:
        self._config = config
        self._window = timedelta(seconds=config.window_seconds)
        self._block = timedelta(seconds=config.block_seconds)

    @property
    def config(self) -> AdmissionConfig:
        return self._config

    def prune(self, record: AdmissionRecord, now: datetime) -> list[CommandEntry]:
        """Command log entries still inside the trailing window."""
        window_start = now - self._window
        return [c for c in record.commands if c.timestamp > window_start]

    def evaluate(
        self,
        record: AdmissionRecord,
        command: str,
        now: datetime,
    ) -> AdmissionDecision:
        cap = self._config.warning_cap

        if record.is_blocked(now):
            return AdmissionDecision(
                outcome=AdmissionOutcome.REJECT,
                record=None,
                warnings=record.warnings,
                warning_cap=cap,
                block_until=record.block_until,
            )

        recent = self.prune(record, now)
        repeats = sum(1 for c in recent if c.command == command)
        entry = CommandEntry(command=command, timestamp=now)

        if repeats >= self._config.command_threshold:
            warnings = record.warnings + 1
            if warnings >= cap:
                block_until = now + self._block
                return AdmissionDecision(
                    outcome=AdmissionOutcome.BLOCK,
                    record=AdmissionRecord(
                        caller_id=record.caller_id,
                        commands=[],
                        warnings=0,
                        block_until=block_until,
                    ),
                    warnings=warnings,
                    warning_cap=cap,
                    block_until=block_until,
                )
            return AdmissionDecision(
                outcome=AdmissionOutcome.WARN,
                record=AdmissionRecord(
                    caller_id=record.caller_id,
                    commands=[*recent, entry],
                    warnings=warnings,
                    block_until=None,
                ),
                warnings=warnings,
                warning_cap=cap,
            )

        return AdmissionDecision(
            outcome=AdmissionOutcome.ALLOW,
            record=AdmissionRecord(
                caller_id=record.caller_id,
                commands=[*recent, entry],
                warnings=record.warnings,
                block_until=None,
            ),
            warnings=record.warnings,
            warning_cap=cap,
        )
