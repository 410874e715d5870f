"""Cancellable timers and the debouncer built on them.

Three backends implement the same ``call_later(delay, callback)`` shape:

* :class:`ThreadScheduler`: ``threading.Timer`` daemon threads.
* :class:`AsyncioScheduler`: ``loop.call_later`` on an event loop.
* :class:`ManualScheduler`: fires only when :meth:`ManualScheduler.advance`
  moves a :class:`SimClock` forward.  Deterministic; used by the tests.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
import threading
from collections.abc import Callable
from typing import Any, Generic, Protocol, TypeVar, runtime_checkable

from retrace.core.clock import SimClock

logger = logging.getLogger(__name__)

T = TypeVar("T")


@runtime_checkable
class TimerHandle(Protocol):
    def cancel(self) -> None: ...

    @property
    def cancelled(self) -> bool: ...


@runtime_checkable
class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run *callback* once, *delay* seconds from now, unless cancelled."""
        ...


# ---------------------------------------------------------------------------
# threading
# ---------------------------------------------------------------------------


class _ThreadHandle:
    def __init__(self, timer: threading.Timer) -> None:
        self._timer = timer
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True
        self._timer.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ThreadScheduler:
    """One daemon ``threading.Timer`` per scheduled call."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> _ThreadHandle:
        timer = threading.Timer(max(0.0, delay), callback)
        timer.name = "retrace-debounce"
        timer.daemon = True
        handle = _ThreadHandle(timer)
        timer.start()
        return handle


# ---------------------------------------------------------------------------
# asyncio
# ---------------------------------------------------------------------------


class _AsyncioHandle:
    def __init__(self, handle: asyncio.TimerHandle) -> None:
        self._handle = handle

    def cancel(self) -> None:
        self._handle.cancel()

    @property
    def cancelled(self) -> bool:
        return self._handle.cancelled()


class AsyncioScheduler:
    """Schedules on *loop*, or on the running loop at call time if none given."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> _AsyncioHandle:
        loop = self._loop or asyncio.get_running_loop()
        return _AsyncioHandle(loop.call_later(max(0.0, delay), callback))


# ---------------------------------------------------------------------------
# manual (simulated time)
# ---------------------------------------------------------------------------


class _ManualHandle:
    def __init__(self, deadline: float, callback: Callable[[], None]) -> None:
        self.deadline = deadline
        self.callback = callback
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler:
    """Timers driven by a :class:`SimClock`.

    Deadlines are kept in clock-elapsed seconds.  :meth:`advance` steps the
    clock to each due deadline in order before firing it, so anything the
    callback timestamps sees the deadline time.
    """

    def __init__(self, clock: SimClock | None = None) -> None:
        self._clock = clock or SimClock()
        self._queue: list[tuple[float, int, _ManualHandle]] = []
        self._seq = itertools.count()

    @property
    def clock(self) -> SimClock:
        return self._clock

    @property
    def pending_count(self) -> int:
        return sum(1 for _, _, h in self._queue if not h.cancelled)

    def call_later(self, delay: float, callback: Callable[[], None]) -> _ManualHandle:
        handle = _ManualHandle(self._clock.elapsed() + max(0.0, delay), callback)
        heapq.heappush(self._queue, (handle.deadline, next(self._seq), handle))
        return handle

    def advance(self, dt: float) -> int:
        """Move time forward by *dt* seconds, firing due timers.  Returns how many fired."""
        if dt < 0:
            raise ValueError(f"advance() requires dt >= 0, got {dt}")
        target = self._clock.elapsed() + dt
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            deadline, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._clock.set_elapsed(max(deadline, self._clock.elapsed()))
            handle.callback()
            fired += 1
        self._clock.set_elapsed(target)
        return fired


def create_scheduler(
    backend: str,
    clock: SimClock | None = None,
    loop: asyncio.AbstractEventLoop | None = None,
) -> ThreadScheduler | AsyncioScheduler | ManualScheduler:
    """Build a scheduler by config name (``thread``, ``asyncio``, ``manual``)."""
    if backend == "thread":
        return ThreadScheduler()
    if backend == "asyncio":
        return AsyncioScheduler(loop)
    if backend == "manual":
        return ManualScheduler(clock)
    raise ValueError(f"Unknown scheduler backend: {backend!r}")


# ---------------------------------------------------------------------------
# Debouncer
# ---------------------------------------------------------------------------


class Debouncer(Generic[T]):
    """Delivers only the last value of a burst, once *delay* seconds pass quietly.

    Each :meth:`submit` cancels the pending timer and starts a new one for
    the newest value.  A timer that fires after being superseded or
    cancelled does nothing.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        delay: float,
        callback: Callable[[T], Any],
    ) -> None:
        if delay <= 0:
            raise ValueError(f"Debouncer delay must be > 0, got {delay}")
        self._scheduler = scheduler
        self._delay = delay
        self._callback = callback
        self._lock = threading.Lock()
        self._handle: TimerHandle | None = None
        self._value: T | None = None

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._handle is not None

    def submit(self, value: T) -> None:
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
            self._value = value
            holder: list[TimerHandle] = []
            self._handle = self._scheduler.call_later(
                self._delay, lambda: self._fire(holder[0])
            )
            holder.append(self._handle)

    def cancel(self) -> bool:
        """Drop the pending value.  Returns True if something was pending."""
        with self._lock:
            if self._handle is None:
                return False
            self._handle.cancel()
            self._handle = None
            self._value = None
            return True

    def flush(self) -> bool:
        """Deliver the pending value now instead of waiting."""
        with self._lock:
            if self._handle is None:
                return False
            self._handle.cancel()
            self._handle = None
            value, self._value = self._value, None
        self._callback(value)
        return True

    def _fire(self, handle: TimerHandle) -> None:
        with self._lock:
            if handle is not self._handle:
                return
            self._handle = None
            value, self._value = self._value, None
        try:
            self._callback(value)
        except Exception:
            logger.exception("Debounced callback failed")
