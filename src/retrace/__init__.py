"""retrace: bounded undo/redo history for a single mutable value.

Usage:
    from retrace import HistoryTracker, StateCell

    cell = StateCell("a")
    tracker = HistoryTracker(cell, capacity=10)
    cell.set("b")
    tracker.undo()          # cell.get() == "a"
    tracker.redo()          # cell.get() == "b"
"""

__version__ = "0.1.0"

from retrace.core.bus import EventBus
from retrace.core.cell import ChangeNotice, PrimaryState, StateCell
from retrace.core.clock import Clock, SimClock, SystemClock
from retrace.history import (
    DeepValueOps,
    HistoryEntry,
    HistoryLog,
    HistoryTracker,
    TrackerConfig,
    ValueOps,
)

__all__ = [
    "ChangeNotice",
    "Clock",
    "DeepValueOps",
    "EventBus",
    "HistoryEntry",
    "HistoryLog",
    "HistoryTracker",
    "PrimaryState",
    "SimClock",
    "StateCell",
    "SystemClock",
    "TrackerConfig",
    "ValueOps",
    "__version__",
]
