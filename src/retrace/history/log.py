"""HistoryLog: capacity-bounded, truncate-on-write entry log."""

from __future__ import annotations

from typing import Generic, TypeVar

from retrace.history.entry import HistoryEntry

T = TypeVar("T")


class HistoryLog(Generic[T]):
    """Ordered list of :class:`HistoryEntry`, oldest first.

    Writing after a pointer discards every entry past it (the redo branch),
    and appending past ``capacity`` evicts the oldest entry.

    Not thread-safe on its own; :class:`HistoryTracker` serialises access.
    """

    def __init__(self, capacity: int = 10) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._entries: list[HistoryEntry[T]] = []

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    @property
    def last(self) -> HistoryEntry[T] | None:
        return self._entries[-1] if self._entries else None

    @property
    def time_range(self) -> tuple[float, float] | None:
        """``(oldest_timestamp, newest_timestamp)`` or *None* if empty."""
        if not self._entries:
            return None
        return (self._entries[0].timestamp, self._entries[-1].timestamp)

    def __getitem__(self, index: int) -> HistoryEntry[T]:
        """Entry at *index* (0 = oldest).  Only non-negative in-range indices.

        Raises:
            IndexError: If *index* is outside ``[0, len)``.
        """
        if not 0 <= index < len(self._entries):
            raise IndexError(
                f"history index {index} out of range for {len(self._entries)} entries"
            )
        return self._entries[index]

    def append_after(self, pointer: int, entry: HistoryEntry[T]) -> int:
        """Drop everything after *pointer*, append *entry*, evict if over capacity.

        Returns the index of *entry* after eviction, which is always the
        last index.
        """
        del self._entries[max(0, pointer + 1):]
        self._entries.append(entry)
        if len(self._entries) > self._capacity:
            del self._entries[0]
        return len(self._entries) - 1

    def clear(self) -> None:
        self._entries.clear()

    def entries(self) -> tuple[HistoryEntry[T], ...]:
        """Snapshot of all entries; later appends do not show up in it."""
        return tuple(self._entries)
