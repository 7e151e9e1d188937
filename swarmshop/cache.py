"""Lazily recomputed values guarded by a dirty flag."""

from __future__ import annotations

from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class CachedValue(Generic[T]):
    """Value recomputed on read only after it was invalidated.

    Callers never assign the value. They call :meth:`invalidate` when the
    inputs change; any number of invalidations collapse into one recompute
    on the next read. Without an initial value the first read computes it.
    """

    __slots__ = ("_value", "_dirty", "_compute")

    def __init__(self, compute: Callable[[], T], value: Optional[T] = None) -> None:
        self._compute = compute
        self._value = value
        self._dirty = value is None

    @property
    def value(self) -> T:
        if self._dirty:
            self._value = self._compute()
            self._dirty = False
        return self._value  # type: ignore[return-value]

    @property
    def dirty(self) -> bool:
        return self._dirty

    def invalidate(self) -> None:
        self._dirty = True

    def copy(self) -> "CachedValue[T]":
        clone: CachedValue[T] = CachedValue(self._compute)
        clone._value = self._value
        clone._dirty = self._dirty
        return clone
