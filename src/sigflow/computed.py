"""Computed values: memoized derived state.

A Computed wraps a function. The first read evaluates it with the computed
pushed on the tracking stack; every signal read during that evaluation stores
this computed's invalidator, so a later write clears the cache. The next read
re-evaluates. Computeds are lazy: nothing runs until somebody reads.

A cache hit skips the function, so the signals underneath never see the
reader. To keep effects (and enclosing computeds) wired anyway, each signal
read during evaluation also leaves a *late binding* on the computed: a
callback that repeats the signal's registration against whatever is tracking
at the time it is replayed. Cache hits inside a tracking context replay them.
"""

from __future__ import annotations

from typing import TypeVar, Generic, Callable
from sigflow import _tracking

T = TypeVar("T")

_UNSET = object()


class Computed(Generic[T]):
    """A derived value that auto-tracks dependencies and caches the result."""

    __slots__ = ("_fn", "_value", "_has_cache", "_late_bindings", "__weakref__")

    def __init__(self, fn: Callable[[], T]) -> None:
        self._fn = fn
        self._value = _UNSET
        self._has_cache = False
        # Insertion-ordered set of deferred attach callbacks.
        self._late_bindings: dict[Callable[[], None], None] = {}

    def read(self) -> T:
        """Read the computed value. Re-evaluates if invalidated."""
        if self._has_cache:
            if _tracking.is_tracking():
                for bind in list(self._late_bindings):
                    bind()
            return self._value

        self._late_bindings.clear()
        with _tracking.computed_scope(self):
            value = self._fn()
        self._value = value
        self._has_cache = True
        return value

    def __call__(self) -> T:
        return self.read()

    def _invalidate(self) -> None:
        self._has_cache = False
        self._value = _UNSET

    def __repr__(self) -> str:
        state = f"cached={self._value!r}" if self._has_cache else "dirty"
        name = getattr(self._fn, "__name__", repr(self._fn))
        return f"Computed({name}, {state})"


def computed(fn: Callable[[], T]) -> Computed[T]:
    """Decorator/factory to create a Computed from a function.

    Usage:
        counter = signal(0)

        @computed
        def doubled():
            return counter() * 2

        doubled()  # 0
        counter.set(5)
        doubled()  # 10
    """
    return Computed(fn)
