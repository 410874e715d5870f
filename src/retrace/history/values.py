"""Value contract for tracked values: how to copy them and when two are equal.

The tracker never assumes anything about the tracked type beyond a
:class:`ValueOps` implementation.  :class:`DeepValueOps` covers plain Python
data (dicts, lists, tuples, sets, dataclasses, scalars) and numpy arrays.
"""

from __future__ import annotations

import copy
import dataclasses
from collections.abc import Mapping, Sequence
from collections.abc import Set as AbstractSet
from typing import Any, Generic, Protocol, TypeVar, runtime_checkable

import numpy as np

T = TypeVar("T")


@runtime_checkable
class ValueOps(Protocol[T]):
    """Cloning and equality contract for a tracked value type."""

    def clone(self, value: T) -> T:
        """Return a copy that shares no mutable state with *value*."""
        ...

    def equals(self, a: T, b: T) -> bool:
        """Structural equality used for deduplication."""
        ...


def _is_container(obj: Any) -> bool:
    if isinstance(obj, (str, bytes, bytearray)):
        return False
    return isinstance(obj, (Mapping, Sequence, AbstractSet)) or (
        dataclasses.is_dataclass(obj) and not isinstance(obj, type)
    )


def _is_nan(obj: Any) -> bool:
    return isinstance(obj, (float, complex, np.floating, np.complexfloating)) and obj != obj


def deep_equal(a: Any, b: Any, _seen: set[tuple[int, int]] | None = None) -> bool:
    """Structural equality over nested containers.

    Numpy arrays compare with :func:`numpy.array_equal`.  NaN equals NaN,
    both as a float scalar and inside float or complex arrays.  A pair of
    containers already under comparison further up the stack counts as
    equal, so self-referencing structures terminate.  Objects whose ``==``
    raises or does not produce a bool fall back to identity.
    """
    if a is b:
        return True

    if isinstance(a, np.ndarray) or isinstance(b, np.ndarray):
        if not (isinstance(a, np.ndarray) and isinstance(b, np.ndarray)):
            return False
        if a.dtype != b.dtype:
            return False
        return bool(np.array_equal(a, b, equal_nan=a.dtype.kind in "fc"))

    if _is_container(a) or _is_container(b):
        if _seen is None:
            _seen = set()
        pair = (id(a), id(b))
        if pair in _seen:
            return True
        _seen.add(pair)

        if isinstance(a, Mapping):
            if not isinstance(b, Mapping) or len(a) != len(b):
                return False
            for key, value in a.items():
                if key not in b or not deep_equal(value, b[key], _seen):
                    return False
            return True

        if isinstance(a, AbstractSet):
            return isinstance(b, AbstractSet) and a == b

        if dataclasses.is_dataclass(a):
            if type(a) is not type(b):
                return False
            return all(
                deep_equal(getattr(a, f.name), getattr(b, f.name), _seen)
                for f in dataclasses.fields(a)
                if f.compare
            )

        if isinstance(a, Sequence):
            if type(a) is not type(b) or len(a) != len(b):
                return False
            return all(deep_equal(x, y, _seen) for x, y in zip(a, b))

        return False

    if _is_nan(a) and _is_nan(b):
        return True

    try:
        result = a == b
    except Exception:
        return False
    if isinstance(result, (bool, np.bool_)):
        return bool(result)
    return False


class DeepValueOps(Generic[T]):
    """Default contract: :func:`copy.deepcopy` plus :func:`deep_equal`.

    ``deepcopy`` keeps cycles intact through its memo dict.  Values that
    refuse to be deep-copied (open files, locks, sockets) make the tracker's
    ``observe`` raise; supply a custom :class:`ValueOps` for those.
    """

    def clone(self, value: T) -> T:
        return copy.deepcopy(value)

    def equals(self, a: T, b: T) -> bool:
        return deep_equal(a, b)
