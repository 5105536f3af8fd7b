"""Context stacks: the ambient state every read and write consults.

Three stacks answer "who is evaluating right now?" without threading that
information through call arguments:

- effect stack: the innermost running Effect receives trigger registrations.
- computed stack: every enclosing Computed receives invalidators and late bindings.
- batch stack: when non-empty, effect triggers are deferred to the top scope.

Each stack is a contextvars.ContextVar holding an immutable tuple, so every
thread sees its own stacks. Pushes go through context managers that reset the
var in a ``finally`` block, which keeps top-of-stack == innermost active scope
even when evaluation raises.
"""

from __future__ import annotations

import contextvars
from contextlib import contextmanager
from typing import TYPE_CHECKING, Callable, Iterator

if TYPE_CHECKING:
    from sigflow.computed import Computed
    from sigflow.effect import Effect

Trigger = Callable[[], None]

_effect_stack: contextvars.ContextVar[tuple[Effect, ...]] = contextvars.ContextVar(
    "sigflow_effect_stack", default=()
)
_computed_stack: contextvars.ContextVar[tuple[Computed, ...]] = contextvars.ContextVar(
    "sigflow_computed_stack", default=()
)
_batch_stack: contextvars.ContextVar[tuple[BatchScope, ...]] = contextvars.ContextVar(
    "sigflow_batch_stack", default=()
)


class BatchScope:
    """Pending triggers for one batched write transaction."""

    __slots__ = ("_pending",)

    def __init__(self) -> None:
        # dict as an insertion-ordered set
        self._pending: dict[Trigger, None] = {}

    def defer(self, trigger: Trigger) -> None:
        self._pending[trigger] = None

    def __len__(self) -> int:
        return len(self._pending)

    def drain(self) -> list[Trigger]:
        """Hand back the pending triggers in the order they became eligible."""
        triggers = list(self._pending)
        self._pending.clear()
        return triggers


@contextmanager
def _pushed(var: contextvars.ContextVar, entry) -> Iterator:
    token = var.set(var.get() + (entry,))
    try:
        yield entry
    finally:
        var.reset(token)


def effect_scope(effect: Effect):
    return _pushed(_effect_stack, effect)


def computed_scope(computed: Computed):
    return _pushed(_computed_stack, computed)


def batch_scope(scope: BatchScope):
    return _pushed(_batch_stack, scope)


def current_effect() -> Effect | None:
    stack = _effect_stack.get()
    return stack[-1] if stack else None


def active_computeds() -> tuple[Computed, ...]:
    """All computeds being evaluated, outermost first."""
    return _computed_stack.get()


def current_batch() -> BatchScope | None:
    stack = _batch_stack.get()
    return stack[-1] if stack else None


def is_tracking() -> bool:
    return bool(_effect_stack.get()) or bool(_computed_stack.get())


def get_pending_count() -> int:
    """Number of triggers waiting in the active batch. Useful for testing."""
    scope = current_batch()
    return len(scope) if scope is not None else 0
