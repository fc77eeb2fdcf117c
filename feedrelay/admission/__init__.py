"""Admission control: sliding-window command limiting with escalating penalties.

Components:
- AdmissionConfig: ADMISSION_* settings (window, threshold, warning cap, cooldown)
- AdmissionRecord / CommandEntry: per-caller state
- AdmissionPolicy: pure Clear -> Warned(k) -> Blocked state machine
- AdmissionStore / RedisAdmissionStore / InMemoryAdmissionStore: persistence
- AdmissionController: load, evaluate, persist
- AdmissionFault: store failure (callers fail open)
"""

from feedrelay.admission.config import AdmissionConfig
from feedrelay.admission.policy import AdmissionPolicy
from feedrelay.admission.schemas import (
    AdmissionDecision,
    AdmissionOutcome,
    AdmissionRecord,
    CommandEntry,
)
from feedrelay.admission.service import AdmissionController
from feedrelay.admission.store import (
    AdmissionFault,
    AdmissionStore,
    InMemoryAdmissionStore,
    RedisAdmissionStore,
)

__all__ = [
    "AdmissionConfig",
    "AdmissionController",
    "AdmissionDecision",
    "AdmissionFault",
    "AdmissionOutcome",
    "AdmissionPolicy",
    "AdmissionRecord",
    "AdmissionStore",
    "CommandEntry",
    "InMemoryAdmissionStore",
    "RedisAdmissionStore",
]
