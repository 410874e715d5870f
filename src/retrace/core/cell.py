"""StateCell: the primary state a tracker makes undoable."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Any, Generic, Protocol, TypeVar, runtime_checkable

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ChangeNotice(Generic[T]):
    """One change notification.

    ``origin`` is whatever the writer passed to :meth:`StateCell.set`;
    ``None`` for ordinary edits.  Trackers use it to recognise their own
    navigation writes.
    """

    value: T
    version: int
    origin: Hashable | None = None


ChangeCallback = Callable[[ChangeNotice[Any]], None]


@runtime_checkable
class PrimaryState(Protocol[T]):
    """What a :class:`~retrace.history.tracker.HistoryTracker` needs from a cell."""

    def get(self) -> T: ...

    def set(self, value: T, origin: Hashable | None = None) -> None: ...

    def subscribe(self, callback: ChangeCallback) -> Callable[[], None]: ...


class StateCell(Generic[T]):
    """A single mutable value with a change-notification channel.

    Every :meth:`set` bumps :attr:`version` and notifies subscribers
    synchronously, even when the new value equals the old one.  Callbacks
    run outside the lock on a snapshot of the subscriber list.
    """

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._version = 0
        self._lock = threading.Lock()
        self._subscribers: list[ChangeCallback] = []

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    def get(self) -> T:
        with self._lock:
            return self._value

    def set(self, value: T, origin: Hashable | None = None) -> None:
        with self._lock:
            self._value = value
            self._version += 1
            notice = ChangeNotice(value=value, version=self._version, origin=origin)
            callbacks = list(self._subscribers)
        for callback in callbacks:
            try:
                callback(notice)
            except Exception:
                logger.exception("StateCell subscriber failed on version %d", notice.version)

    def subscribe(self, callback: ChangeCallback) -> Callable[[], None]:
        """Register *callback*.  Returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return _unsubscribe

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def __repr__(self) -> str:
        return f"StateCell(version={self._version}, value={self._value!r})"
