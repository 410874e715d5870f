"""Undo/redo history tracking for a single primary state cell."""

from retrace.history.config import TrackerConfig
from retrace.history.entry import HistoryEntry
from retrace.history.log import HistoryLog
from retrace.history.scheduler import (
    AsyncioScheduler,
    Debouncer,
    ManualScheduler,
    ThreadScheduler,
)
from retrace.history.tracker import HistoryTracker
from retrace.history.values import DeepValueOps, ValueOps

__all__ = [
    "AsyncioScheduler",
    "Debouncer",
    "DeepValueOps",
    "HistoryEntry",
    "HistoryLog",
    "HistoryTracker",
    "ManualScheduler",
    "ThreadScheduler",
    "TrackerConfig",
    "ValueOps",
]
