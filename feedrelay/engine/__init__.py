"""Cycle engine: periodic fetch, novelty detection and delivery.

Components:
- CycleEngine: one non-overlapping fetch-then-deliver pass
- CycleStats: counters returned by each pass
- CycleScheduler: runs passes with a quiet interval until stopped
- EngineConfig: ENGINE_* settings
"""

from feedrelay.engine.config import EngineConfig
from feedrelay.engine.cycle import CycleEngine, CycleStats
from feedrelay.engine.scheduler import CycleScheduler

__all__ = [
    "CycleEngine",
    "CycleScheduler",
    "CycleStats",
    "EngineConfig",
]
