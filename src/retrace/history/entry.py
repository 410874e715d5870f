"""HistoryEntry: one captured snapshot of the tracked value."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class HistoryEntry(Generic[T]):
    """Immutable snapshot of the tracked value.

    ``value`` is a private copy taken at capture time; it is never the
    object living in the primary state cell.  The dataclass is frozen but
    the value itself is not, so callers must not mutate what they read.
    """

    value: T
    timestamp: float  # epoch seconds from clock.now()

    def age(self, now: float) -> float:
        """Seconds between capture and *now* (never negative)."""
        return max(0.0, now - self.timestamp)

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value, "timestamp": self.timestamp}
