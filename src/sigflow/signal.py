"""Signals: mutable cells that remember who read them.

Reading a Signal inside an Effect registers the effect's trigger; reading it
inside one or more Computed evaluations registers each computed's invalidator
plus a late binding (see computed.py). Writing a Signal invalidates caches
synchronously, then runs or defers the dependent triggers.

Thread safety: call set_scheduler() once from the owning thread. After that,
any write from another thread is handed to the scheduler. Owning-thread writes
remain synchronous.
"""

from __future__ import annotations

import threading
import weakref
from typing import Callable, Generic, TypeVar

from sigflow import _tracking
from sigflow._tracking import Trigger

T = TypeVar("T")

EqualityFn = Callable[[T, T], bool]


class SignalWriteError(RuntimeError):
    """A signal was written from an effect that does not allow signal writes."""


# Immutable scalars compare by value, everything else by identity.
_VALUE_TYPES = frozenset({type(None), bool, int, float, complex, str, bytes})


def default_equal(a, b) -> bool:
    return a is b or (type(a) is type(b) and type(a) in _VALUE_TYPES and a == b)


# ─── Auto-marshal ────────────────────────────────────────────────────────────
_scheduler = None
_scheduler_thread = None


def set_scheduler(scheduler) -> None:
    """Set the global scheduler for cross-thread signal writes.

    Call once from the owning thread:
        sigflow.set_scheduler(app.call_from_thread)

    After this, set/update/mutate from any other thread is marshaled through
    ``scheduler(callable)``. Pass None to go back to direct writes.
    """
    global _scheduler, _scheduler_thread
    _scheduler = scheduler
    _scheduler_thread = threading.current_thread() if scheduler is not None else None


def _off_thread() -> bool:
    return _scheduler is not None and threading.current_thread() != _scheduler_thread


class Signal(Generic[T]):
    """A single reactive value with automatic dependency tracking."""

    __slots__ = ("_value", "_equal", "_dependents", "_invalidators")

    def __init__(self, value: T, *, equal: EqualityFn | None = None) -> None:
        self._value = value
        self._equal: EqualityFn = equal if equal is not None else default_equal
        # Insertion-ordered sets. Computeds are held weakly so one created
        # inside another body does not outlive its last reader.
        self._dependents: dict[Trigger, None] = {}
        self._invalidators: weakref.WeakKeyDictionary = weakref.WeakKeyDictionary()

    def read(self) -> T:
        """Read the value, registering it with whatever is currently evaluating."""
        self._track()
        return self._value

    def __call__(self) -> T:
        return self.read()

    def _track(self) -> None:
        effect = _tracking.current_effect()
        if effect is not None:
            self._subscribe(effect)
        for derived in _tracking.active_computeds():
            self._invalidators[derived] = None
            derived._late_bindings[self._track] = None

    def _subscribe(self, effect) -> None:
        trigger = effect._trigger
        if trigger in self._dependents:
            return
        self._dependents[trigger] = None
        effect._teardowns.append(lambda: self._dependents.pop(trigger, None))

    def set(self, value: T) -> None:
        """Write a new value. Equal values (per ``equal``) are ignored."""
        if _off_thread():
            _scheduler(lambda v=value: self._write(v))
        else:
            self._write(value)

    def update(self, fn: Callable[[T], T]) -> None:
        """Write ``fn(current)``."""
        self.set(fn(self._value))

    def mutate(self, fn: Callable[[T], None]) -> None:
        """Change the held value in place, then notify unconditionally.

        The reference is unchanged, so no equality check applies.
        """
        if _off_thread():
            _scheduler(lambda: self._mutate(fn))
        else:
            self._mutate(fn)

    def _write(self, value: T) -> None:
        _check_writable()
        if self._equal(value, self._value):
            return
        self._invalidate_caches()
        self._value = value
        self._notify()

    def _mutate(self, fn: Callable[[T], None]) -> None:
        _check_writable()
        fn(self._value)
        self._invalidate_caches()
        self._notify()

    def _invalidate_caches(self) -> None:
        # Never deferred: batching only delays triggers.
        for derived in list(self._invalidators):
            derived._invalidate()

    def _notify(self) -> None:
        batch = _tracking.current_batch()
        if batch is not None:
            for trigger in self._dependents:
                batch.defer(trigger)
            return
        for trigger in list(self._dependents):
            trigger()

    def __repr__(self) -> str:
        return f"Signal({self._value!r})"


def _check_writable() -> None:
    effect = _tracking.current_effect()
    if effect is not None and not effect.allow_signal_writes:
        raise SignalWriteError("Can't update a signal from an effect")


def signal(value: T, *, equal: EqualityFn | None = None) -> Signal[T]:
    """Create a Signal.

    Usage:
        count = signal(0)
        count()              # 0
        count.set(5)
        count.update(lambda n: n + 1)

        items = signal([])
        items.mutate(lambda lst: lst.append("x"))  # always notifies

    ``equal`` decides whether a write is a change; it defaults to
    identity, except that None, bools, numbers, str and bytes compare by value.
    """
    return Signal(value, equal=equal)
