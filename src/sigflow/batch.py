"""Batches: coalesced signal writes.

Inside a batch, signal writes still invalidate computeds immediately, but the
effect triggers they would run are collected instead. When the batch closes,
each collected trigger runs once, in the order it was first collected, however
many writes reached it.

Nested batches flatten: an inner batch joins the outermost scope and never
flushes on its own. Effects only run after the outermost batch exits.
"""

from __future__ import annotations

import functools
import logging
from contextlib import contextmanager
from typing import Callable, Iterator, ParamSpec, TypeVar

from sigflow import _tracking
from sigflow._tracking import BatchScope

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


@contextmanager
def batch() -> Iterator[BatchScope]:
    """Context manager for batching writes.

    Usage:
        with batch():
            first.set("Ada")
            last.set("Lovelace")
            # effects run here, after both are set
    """
    outer = _tracking.current_batch()
    if outer is not None:
        # Joined: the outermost batch owns the flush.
        with _tracking.batch_scope(outer):
            yield outer
        return

    scope = BatchScope()
    try:
        with _tracking.batch_scope(scope):
            yield scope
    finally:
        _flush(scope)


def _flush(scope: BatchScope) -> None:
    triggers = scope.drain()
    if triggers:
        logger.debug("Flushing %d batched triggers", len(triggers))
    for trigger in triggers:
        trigger()


def run_batched(fn: Callable[[], R]) -> R:
    """Call fn inside a batch and return its result.

    Usage:
        run_batched(lambda: (a.set(2), b.set(3)))
    """
    with batch():
        return fn()


def batched(fn: Callable[P, R]) -> Callable[P, R]:
    """Decorator: batch all signal writes inside fn.

    Effects only run after fn returns, not during.

    Usage:
        @batched
        def swap():
            x, y = a(), b()
            a.set(y)
            b.set(x)
            # effects see both changes at once, not one at a time
    """

    @functools.wraps(fn)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        with batch():
            return fn(*args, **kwargs)

    return wrapper
