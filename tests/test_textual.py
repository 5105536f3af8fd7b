"""Tests for sigflow.textual: Textual integration layer."""

import threading

import pytest
from textual.css.query import NoMatches

from sigflow import signal
from sigflow import textual as stx


class _MockApp:
    """Minimal mock matching the Textual App interface stx needs."""

    def __init__(self, *, is_running=True):
        self.is_running = is_running
        self._call_from_thread_log = []

    def call_from_thread(self, fn, *args):
        self._call_from_thread_log.append((fn, args))
        fn(*args)


class TestEffect:
    def test_fires_when_safe(self):
        app = _MockApp()
        s = signal(1)
        log = []
        stx.effect(app, lambda: log.append(s()))
        s.set(2)
        assert log == [1, 2]

    def test_deferred_until_running(self):
        app = _MockApp(is_running=False)
        s = signal(1)
        log = []
        stx.effect(app, lambda: log.append(s()))
        s.set(2)
        assert log == []

        app.is_running = True
        stx.flush_deferred(app)
        assert log == [2]

        s.set(3)
        assert log == [2, 3]

    def test_deferred_during_pause(self):
        app = _MockApp()
        s = signal(1)
        log = []
        stx.effect(app, lambda: log.append(s()))

        with stx.pause(app):
            s.set(2)
            s.set(3)
            assert log == [1]

        # Replayed once when the pause ends
        assert log == [1, 3]
        s.set(4)
        assert log == [1, 3, 4]

    def test_catches_nomatch(self):
        app = _MockApp()
        s = signal(1)
        calls = []

        def _fn():
            calls.append(s())
            if len(calls) > 1:
                raise NoMatches("StatusFooter")

        e = stx.effect(app, _fn)
        s.set(2)  # should not raise
        assert calls == [1, 2]
        e.destroy()

    def test_propagates_real_errors(self):
        app = _MockApp()
        s = signal(1)

        def _fn():
            if s() > 1:
                raise ValueError("boom")

        stx.effect(app, _fn)
        with pytest.raises(ValueError, match="boom"):
            s.set(2)

    def test_destroy_stops_effect(self):
        app = _MockApp()
        s = signal(1)
        log = []
        e = stx.effect(app, lambda: log.append(s()))
        e.destroy()
        s.set(2)
        assert log == [1]

    def test_destroyed_while_deferred(self):
        app = _MockApp()
        s = signal(1)
        log = []
        e = stx.effect(app, lambda: log.append(s()))
        with stx.pause(app):
            s.set(2)
            e.destroy()
        assert log == [1]

    def test_thread_marshal(self):
        """Triggers from a background thread re-run through call_from_thread."""
        app = _MockApp()
        s = signal(1)
        log = []
        stx.effect(app, lambda: log.append(s()))

        t = threading.Thread(target=lambda: s.set(2))
        t.start()
        t.join()

        assert log == [1, 2]
        assert len(app._call_from_thread_log) == 1

        s.set(3)  # still subscribed after the marshaled run
        assert log == [1, 2, 3]


class TestPause:
    def test_pause_restores_on_exception(self):
        app = _MockApp()
        assert stx.is_safe(app)

        with pytest.raises(RuntimeError):
            with stx.pause(app):
                assert not stx.is_safe(app)
                raise RuntimeError("oops")

        assert stx.is_safe(app)

    def test_pause_does_not_mutate_app(self):
        """Pause state lives in the module, not on the app."""
        app = _MockApp()
        attrs_before = set(vars(app))
        with stx.pause(app):
            attrs_during = set(vars(app))
        assert attrs_before == attrs_during == set(vars(app))

    def test_multiple_apps_independent(self):
        app_a = _MockApp()
        app_b = _MockApp()
        with stx.pause(app_a):
            assert not stx.is_safe(app_a)
            assert stx.is_safe(app_b)
