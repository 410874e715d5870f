"""Time sources for history entry timestamps.

Entries are stamped with ``clock.now()`` when they are recorded.  The
debounce scheduler in tests and the ``time.mode: simulated`` config use a
:class:`SimClock`, so a whole editing session can be replayed without
sleeping.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    def now(self) -> float:
        """Current time as epoch seconds."""
        ...


class SystemClock:
    """Epoch seconds that never run backwards.

    Anchored to ``time.monotonic`` at construction, so adjusting the wall
    clock mid-session cannot give a later entry an earlier timestamp.
    """

    def __init__(self) -> None:
        self._offset = time.time() - time.monotonic()

    def now(self) -> float:
        return time.monotonic() + self._offset


class SimClock:
    """A clock that moves only through :meth:`step` or :meth:`set_elapsed`.

    ``elapsed()`` is the offset from *start_epoch*; :class:`ManualScheduler`
    keeps its timer deadlines in that unit.
    """

    def __init__(self, start_epoch: float = 1_000_000.0) -> None:
        self._start_epoch = start_epoch
        self._elapsed = 0.0

    @property
    def start_epoch(self) -> float:
        return self._start_epoch

    def now(self) -> float:
        return self._start_epoch + self._elapsed

    def elapsed(self) -> float:
        return self._elapsed

    def step(self, dt: float) -> None:
        if dt < 0:
            raise ValueError(f"SimClock.step() requires dt >= 0, got {dt}")
        self._elapsed += dt

    def set_elapsed(self, elapsed: float) -> None:
        if elapsed < 0:
            raise ValueError(f"SimClock.set_elapsed() requires elapsed >= 0, got {elapsed}")
        self._elapsed = elapsed


def create_clock(time_cfg: Mapping[str, Any] | None = None) -> SystemClock | SimClock:
    """Clock for a ``retrace.time`` section (plain dict or DictConfig).

    Only ``mode: simulated`` selects a :class:`SimClock`, starting at
    ``start_epoch``.
    """
    if time_cfg is None or time_cfg.get("mode", "realtime") != "simulated":
        return SystemClock()
    return SimClock(start_epoch=float(time_cfg.get("start_epoch", 1_000_000.0)))
