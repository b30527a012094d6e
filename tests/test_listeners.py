"""Tests for ListenerSet (pagetrail/core/listeners.py)."""

import logging

from pagetrail.core.listeners import ListenerSet


class TestListenerSet:

    def test_emit_in_registration_order(self):
        calls = []
        listeners = ListenerSet("test")
        listeners.add(lambda v: calls.append(("first", v)))
        listeners.add(lambda v: calls.append(("second", v)))

        assert listeners.emit(1) == 0
        assert calls == [("first", 1), ("second", 1)]

    def test_add_is_idempotent(self):
        calls = []
        listeners = ListenerSet()
        listeners.add(calls.append)
        listeners.add(calls.append)
        listeners.emit("x")
        assert calls == ["x"]
        assert len(listeners) == 1

    def test_unsubscribe_callable(self):
        listeners = ListenerSet()
        listener = lambda v: None  # noqa: E731
        unsubscribe = listeners.add(listener)
        assert listener in listeners
        assert unsubscribe() is True
        assert listener not in listeners
        assert unsubscribe() is False

    def test_on_decorator(self):
        calls = []
        listeners = ListenerSet()

        @listeners.on
        def record(value):
            calls.append(value)

        listeners.emit(3)
        assert calls == [3]
        assert record in listeners

    def test_failures_are_logged_and_counted(self, caplog):
        calls = []
        listeners = ListenerSet("state")

        def broken(value):
            raise ValueError("listener failed")

        listeners.add(broken)
        listeners.add(calls.append)

        with caplog.at_level(logging.ERROR, logger="pagetrail.core.listeners"):
            assert listeners.emit("v") == 1

        assert calls == ["v"]
        assert "Error in state listener" in caplog.text

    def test_listener_may_unsubscribe_during_emit(self):
        calls = []
        listeners = ListenerSet()

        def once(value):
            calls.append(value)
            unsubscribe()

        unsubscribe = listeners.add(once)
        listeners.emit(1)
        listeners.emit(2)
        assert calls == [1]

    def test_clear(self):
        listeners = ListenerSet()
        listeners.add(print)
        listeners.clear()
        assert len(listeners) == 0
        assert listeners.remove(print) is False
