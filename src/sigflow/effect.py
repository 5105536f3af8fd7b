"""Effects: side effects that re-run when what they read changes.

Unlike Computed (which is lazy), an Effect runs as soon as it is created and
again every time a signal it read is written. Each run starts clean: the
subscriptions and child effects of the previous run are torn down first, so
nothing registered by an old run can fire again.

An effect created while another effect is running becomes that effect's
child. Re-running or destroying the parent destroys the child, which stops
effects declared inside a body from piling up one extra subscription per run.
"""

from __future__ import annotations

from typing import Callable
from sigflow import _tracking


class Effect:
    """A reactive side effect. Call .destroy() to stop it."""

    __slots__ = ("_fn", "_teardowns", "_children", "_destroyed", "allow_signal_writes")

    def __init__(self, fn: Callable[[], None], *, allow_signal_writes: bool = False) -> None:
        self._fn = fn
        self._teardowns: list[Callable[[], None]] = []
        self._children: list[Effect] = []
        self._destroyed = False
        self.allow_signal_writes = allow_signal_writes

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def _trigger(self) -> None:
        """Registered on signals; invoked when one of them changes."""
        self.run()

    def run(self) -> None:
        """Tear down the previous run, then execute the body with tracking."""
        if self._destroyed:
            return
        self._teardown()
        with _tracking.effect_scope(self):
            self._fn()

    def destroy(self) -> None:
        """Unsubscribe from every signal and destroy all child effects."""
        self._destroyed = True
        self._teardown()

    def _teardown(self) -> None:
        teardowns, self._teardowns = self._teardowns, []
        for teardown in teardowns:
            teardown()
        children, self._children = self._children, []
        for child in children:
            child.destroy()

    def __repr__(self) -> str:
        state = "destroyed" if self._destroyed else "active"
        name = getattr(self._fn, "__name__", repr(self._fn))
        return f"Effect({name}, {state})"


def effect(fn: Callable[[], None], *, allow_signal_writes: bool = False) -> Effect:
    """Run fn immediately, then re-run it whenever any signal it reads changes.

    Returns the Effect (call .destroy() to stop).

    Usage:
        counter = signal(0)
        log = []

        e = effect(lambda: log.append(counter()))
        # log == [0]: ran immediately

        counter.set(1)
        # log == [0, 1]: re-ran because counter changed

        e.destroy()
        counter.set(2)
        # log == [0, 1]: stopped

    Writing a signal from the body raises SignalWriteError unless
    ``allow_signal_writes`` is set.
    """
    e = Effect(fn, allow_signal_writes=allow_signal_writes)
    parent = _tracking.current_effect()
    if parent is not None:
        parent._children.append(e)
    e.run()  # Initial run to establish dependencies
    return e
