"""Tracker event notifications.

:class:`HistoryTracker` publishes one event after each change to its log
or pointer, so a UI can refresh undo/redo buttons without polling:

* ``history.recorded``: ``entry``, ``pointer``
* ``history.navigated``: ``index``, ``pointer``
* ``history.reset``: no payload
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

HISTORY_RECORDED = "history.recorded"
HISTORY_NAVIGATED = "history.navigated"
HISTORY_RESET = "history.reset"

HISTORY_EVENTS = frozenset({HISTORY_RECORDED, HISTORY_NAVIGATED, HISTORY_RESET})

Listener = Callable[..., Any]


class EventBus:
    """Synchronous fan-out of tracker events.

    Listeners run on the publishing thread, which for debounced commits is
    the scheduler's timer thread.  A failing listener is logged and the
    rest still run.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: dict[str, list[Listener]] = {name: [] for name in HISTORY_EVENTS}

    def subscribe(self, event: str, listener: Listener) -> Callable[[], None]:
        """Call *listener* with the event payload as keyword arguments.

        Returns a function that removes the listener; calling it twice is
        harmless.

        Raises:
            ValueError: If *event* is not one of :data:`HISTORY_EVENTS`.
        """
        if event not in HISTORY_EVENTS:
            raise ValueError(f"Unknown history event: {event!r}")
        with self._lock:
            self._listeners[event].append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners[event]:
                    self._listeners[event].remove(listener)

        return _unsubscribe

    def listener_count(self, event: str) -> int:
        with self._lock:
            return len(self._listeners.get(event, ()))

    def publish(self, event: str, **payload: Any) -> None:
        with self._lock:
            listeners = list(self._listeners[event])
        for listener in listeners:
            try:
                listener(**payload)
            except Exception:
                logger.exception("Listener for %s failed", event)
