"""Textual integration for sigflow. Opt-in: requires textual.

Guarding, NoMatches handling and thread marshaling live here, not at call
sites. The rest of sigflow knows nothing about Textual.

Pause state is owned by this module, keyed by id(app): an id is present in
_paused_apps exactly while a pause() block for that app is open.
"""

import logging
import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

from sigflow.effect import Effect, effect as _effect

logger = logging.getLogger(__name__)

_paused_apps: set[int] = set()

# Effects whose run was skipped while their app was unsafe, keyed by id(app).
_deferred: dict[int, list[Effect]] = {}


@contextmanager
def pause(app):
    """Suspend guarded effects during widget replacement.

    Effects that fire while paused run once the pause ends.
    """
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)
    flush_deferred(app)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def flush_deferred(app) -> None:
    """Re-run the effects that were skipped while app was unsafe."""
    if not is_safe(app):
        return
    pending = _deferred.pop(id(app), [])
    if pending:
        logger.debug("Replaying %d deferred effects", len(pending))
    for e in pending:
        e.run()


def _defer(app, e: Effect) -> None:
    queue = _deferred.setdefault(id(app), [])
    if e not in queue:
        queue.append(e)


def effect(app, fn, *, allow_signal_writes=False) -> Effect:
    """effect() that safely drives Textual widgets.

    The body only runs while the app is safe to query. Runs that would happen
    while paused or not running are deferred and replayed by flush_deferred().
    Triggers from other threads re-run the effect on the app thread through
    call_from_thread. NoMatches from widget queries is swallowed.
    """
    main = threading.get_ident()
    handle: list[Effect] = []
    marshaled = False

    def _guarded():
        if not handle:
            # First run happens inside effect(), before the handle exists.
            if is_safe(app):
                _safe()
            return
        if not is_safe(app):
            _defer(app, handle[0])
        elif threading.get_ident() != main and not marshaled:
            app.call_from_thread(_rerun)
        else:
            _safe()

    def _rerun():
        nonlocal marshaled
        marshaled = True
        try:
            handle[0].run()
        finally:
            marshaled = False

    def _safe():
        try:
            fn()
        except NoMatches:
            pass

    e = _effect(_guarded, allow_signal_writes=allow_signal_writes)
    handle.append(e)
    if not is_safe(app):
        _defer(app, e)
    return e
