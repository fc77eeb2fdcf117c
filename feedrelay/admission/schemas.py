"""Schema definitions for admission control records and decisions."""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class CommandEntry:
    """One command attempt in a caller's recent log."""

    command: str
    timestamp: datetime


@dataclass
class AdmissionRecord:
    """Per-caller admission state.

    Attributes:
        caller_id: User id issuing commands.
        commands: Recent attempts, oldest first, pruned to the rate window.
        warnings: Warnings issued since the last block.
        block_until: Commands are rejected until this instant.
    """

    caller_id: str
    commands: list[CommandEntry] = field(default_factory=list)
    warnings: int = 0
    block_until: datetime | None = None

    def is_blocked(self, now: datetime) -> bool:
        return self.block_until is not None and self.block_until > now

    def to_dict(self) -> dict[str, Any]:
        return {
            "caller_id": self.caller_id,
            "commands": [
                {"command": c.command, "timestamp": c.timestamp.isoformat()}
                for c in self.commands
            ],
            "warnings": self.warnings,
            "block_until": self.block_until.isoformat() if self.block_until else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AdmissionRecord":
        block_until = data.get("block_until")
        return cls(
            caller_id=data["caller_id"],
            commands=[
                CommandEntry(
                    command=c["command"],
                    timestamp=datetime.fromisoformat(c["timestamp"]),
                )
                for c in data.get("commands", [])
            ],
            warnings=int(data.get("warnings", 0)),
            block_until=datetime.fromisoformat(block_until) if block_until else None,
        )


class AdmissionOutcome(enum.Enum):
    """Result of evaluating one command attempt."""
    ALLOW = "allow"
    WARN = "warn"
    BLOCK = "block"
    REJECT = "reject"


@dataclass(frozen=True)
class AdmissionDecision:
    """Outcome plus the record to persist (None when nothing changes)."""

    outcome: AdmissionOutcome
    record: AdmissionRecord | None
    warnings: int = 0
    warning_cap: int = 0
    block_until: datetime | None = None

    @property
    def allowed(self) -> bool:
        return self.outcome is AdmissionOutcome.ALLOW
