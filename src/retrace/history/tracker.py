"""HistoryTracker: undo/redo over the values of a single primary state cell."""

from __future__ import annotations

import itertools
import logging
import threading
from collections.abc import Hashable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from retrace.core.bus import (
    HISTORY_NAVIGATED,
    HISTORY_RECORDED,
    HISTORY_RESET,
    EventBus,
)
from retrace.core.cell import ChangeNotice, PrimaryState
from retrace.core.clock import Clock, SimClock, SystemClock
from retrace.history.config import TrackerConfig
from retrace.history.entry import HistoryEntry
from retrace.history.log import HistoryLog
from retrace.history.scheduler import Debouncer, ManualScheduler, Scheduler, create_scheduler
from retrace.history.values import DeepValueOps, ValueOps

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class NavigationOrigin:
    """Origin tag attached to writes made by :meth:`HistoryTracker.jump_to`."""

    tracker_id: int
    seq: int


class HistoryTracker(Generic[T]):
    """Records the values of a primary state cell and navigates between them.

    The tracker subscribes to *cell* on construction and observes its
    current value straight away, so the starting value becomes entry 0.
    Each later change notification is deduplicated against the newest
    entry and appended, dropping any redo entries beyond the pointer and
    evicting the oldest entry when over ``capacity``.

    :meth:`undo`, :meth:`redo` and :meth:`jump_to` write an entry's value
    back to the cell tagged with a :class:`NavigationOrigin`.  The
    notification carrying that tag is swallowed, so navigation is never
    recorded as a new edit.

    With ``debounce > 0`` (milliseconds) notifications go through a
    :class:`Debouncer` and only the value left standing after a quiet
    period is observed.

    Thread safety: public methods take ``self._lock`` (re-entrant, since a
    cell may notify synchronously from inside :meth:`jump_to`).  Writes to
    the cell and bus publications happen outside the lock.
    """

    def __init__(
        self,
        cell: PrimaryState[T],
        capacity: int = 10,
        debounce: int = 0,
        *,
        config: TrackerConfig | None = None,
        clock: Clock | None = None,
        scheduler: Scheduler | None = None,
        value_ops: ValueOps[T] | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self._config = config or TrackerConfig(capacity=capacity, debounce=debounce)
        self._cell = cell
        if clock is None:
            clock = scheduler.clock if isinstance(scheduler, ManualScheduler) else SystemClock()
        self._clock = clock
        self._ops: ValueOps[T] = value_ops or DeepValueOps()
        self._bus = bus

        self._lock = threading.RLock()
        self._log: HistoryLog[T] = HistoryLog(self._config.capacity)
        self._pointer = 0
        self._nav_seq = itertools.count(1)
        self._outstanding: set[NavigationOrigin] = set()
        self._generation = 0
        self._closed = False

        self._debouncer: Debouncer[tuple[int, T]] | None = None
        if self._config.debounce > 0:
            if scheduler is None:
                scheduler = create_scheduler(
                    self._config.scheduler,
                    clock=clock if isinstance(clock, SimClock) else None,
                )
            self._debouncer = Debouncer(scheduler, self._config.debounce_seconds, self._commit)

        self._on_change(ChangeNotice(value=cell.get(), version=0))
        self._unsubscribe = cell.subscribe(self._on_change)

    @classmethod
    def from_config(cls, cell: PrimaryState[T], cfg: Any, **kwargs: Any) -> HistoryTracker[T]:
        """Build from a ``retrace.history`` config section (DictConfig or dict)."""
        return cls(cell, config=TrackerConfig.from_omegaconf(cfg), **kwargs)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def capacity(self) -> int:
        return self._config.capacity

    @property
    def debounce(self) -> int:
        return self._config.debounce

    @property
    def pointer(self) -> int:
        with self._lock:
            return self._pointer

    @property
    def history(self) -> tuple[HistoryEntry[T], ...]:
        with self._lock:
            return self._log.entries()

    @property
    def current(self) -> HistoryEntry[T] | None:
        with self._lock:
            if not self._log:
                return None
            return self._log[self._pointer]

    @property
    def can_undo(self) -> bool:
        with self._lock:
            return self._pointer > 0

    @property
    def can_redo(self) -> bool:
        with self._lock:
            return self._pointer < len(self._log) - 1

    @property
    def pending(self) -> bool:
        """True while a debounced change is waiting to be committed."""
        return self._debouncer is not None and self._debouncer.pending

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def clock(self) -> Clock:
        """Clock used to timestamp entries."""
        return self._clock

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def observe(self, value: T, origin: Hashable | None = None) -> bool:
        """Decide whether *value* becomes a new entry, and record it if so.

        Returns True when an entry was appended.
        """
        with self._lock:
            if self._closed:
                logger.debug("Observation after close ignored")
                return False
            if origin is not None and self._consume_origin(origin):
                return False
            entry = self._record(value)
            pointer = self._pointer
        return self._publish_recorded(entry, pointer)

    def flush(self) -> bool:
        """Commit a pending debounced change immediately."""
        if self._debouncer is None:
            return False
        return self._debouncer.flush()

    def _consume_origin(self, origin: Hashable) -> bool:
        # Caller holds self._lock.  A cell that coalesces writes may never
        # deliver older tags, so consuming one also retires every earlier one.
        if origin not in self._outstanding:
            return False
        seq = origin.seq  # type: ignore[attr-defined]
        self._outstanding = {o for o in self._outstanding if o.seq > seq}
        return True

    def _record(self, value: T) -> HistoryEntry[T] | None:
        # Caller holds self._lock.
        last = self._log.last
        if last is not None and self._ops.equals(value, last.value):
            return None
        entry = HistoryEntry(value=self._ops.clone(value), timestamp=self._clock.now())
        self._pointer = self._log.append_after(self._pointer, entry)
        logger.debug("Recorded entry %d (%d/%d)", self._pointer, len(self._log), self.capacity)
        return entry

    def _publish_recorded(self, entry: HistoryEntry[T] | None, pointer: int) -> bool:
        if entry is None:
            return False
        if self._bus is not None:
            self._bus.publish(HISTORY_RECORDED, entry=entry, pointer=pointer)
        return True

    def _on_change(self, notice: ChangeNotice[T]) -> None:
        if self._debouncer is None:
            self.observe(notice.value, notice.origin)
            return
        with self._lock:
            if self._closed:
                return
            if notice.origin is not None and self._consume_origin(notice.origin):
                if self._debouncer.cancel():
                    logger.debug("Pending change superseded by navigation")
                return
            self._debouncer.submit((self._generation, notice.value))

    def _commit(self, item: tuple[int, T]) -> None:
        generation, value = item
        with self._lock:
            if self._closed:
                return
            if generation != self._generation:
                # Navigation happened after this value was submitted.
                logger.debug("Stale debounced change dropped")
                return
            entry = self._record(value)
            pointer = self._pointer
        self._publish_recorded(entry, pointer)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def undo(self) -> bool:
        """Step back one entry.  No-op (returns False) when nothing to undo."""
        with self._lock:
            if self._pointer <= 0:
                return False
            target = self._pointer - 1
        return self.jump_to(target)

    def redo(self) -> bool:
        """Step forward one entry.  No-op (returns False) when nothing to redo."""
        with self._lock:
            if self._pointer >= len(self._log) - 1:
                return False
            target = self._pointer + 1
        return self.jump_to(target)

    def jump_to(self, index: int) -> bool:
        """Make entry *index* current and write its value to the cell.

        If the cell's ``set`` raises, the pointer is restored and the
        exception propagates.

        Raises:
            IndexError: If *index* is not in ``[0, len(history))``.
        """
        with self._lock:
            if self._closed:
                logger.warning("jump_to(%d) ignored: tracker is closed", index)
                return False
            entry = self._log[index]
            value = self._ops.clone(entry.value)
            origin = NavigationOrigin(tracker_id=id(self), seq=next(self._nav_seq))
            self._outstanding.add(origin)
            previous = self._pointer
            self._pointer = index
            self._generation += 1
            generation = self._generation

        try:
            self._cell.set(value, origin=origin)
        except Exception:
            with self._lock:
                self._outstanding.discard(origin)
                if self._pointer == index:
                    self._pointer = previous
                if self._generation == generation:
                    self._generation -= 1
            logger.error("jump_to(%d) failed: cell rejected the write", index)
            raise

        logger.debug("Jumped to entry %d", index)
        if self._bus is not None:
            self._bus.publish(HISTORY_NAVIGATED, index=index, pointer=index)
        return True

    def reset(self) -> None:
        """Forget all entries.  The cell's current value is left alone."""
        with self._lock:
            dropped = len(self._log)
            self._log.clear()
            self._pointer = 0
        logger.info("History reset (%d entries dropped)", dropped)
        if self._bus is not None:
            self._bus.publish(HISTORY_RESET)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Unsubscribe from the cell and cancel any pending debounced change."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._generation += 1
            if self._debouncer is not None:
                self._debouncer.cancel()
            self._outstanding.clear()
        self._unsubscribe()
        logger.info("History tracker closed")

    def __enter__(self) -> HistoryTracker[T]:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def get_status(self) -> dict[str, Any]:
        """Snapshot of tracker state for display or diagnostics."""
        with self._lock:
            tr = self._log.time_range
            current = self._log[self._pointer] if self._log else None
            return {
                "pointer": self._pointer,
                "length": len(self._log),
                "capacity": self.capacity,
                "debounce_ms": self.debounce,
                "can_undo": self._pointer > 0,
                "can_redo": self._pointer < len(self._log) - 1,
                "pending": self.pending,
                "closed": self._closed,
                "time_range": list(tr) if tr else None,
                "current": current.to_dict() if current is not None else None,
            }
