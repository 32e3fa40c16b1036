"""
Unit tests for the change notification bus.
"""

import pytest

from sylvia.events import ChangeEvent, EventBus


class TestEventBus:
    """Tests for EventBus."""

    def test_handlers_run_in_subscription_order(self):
        bus = EventBus()
        calls = []
        bus.subscribe(ChangeEvent.MEMORIES_UPDATED, lambda: calls.append("first"))
        bus.subscribe(ChangeEvent.MEMORIES_UPDATED, lambda: calls.append("second"))

        assert bus.emit(ChangeEvent.MEMORIES_UPDATED) == 2
        assert calls == ["first", "second"]

    def test_accepts_wire_names(self):
        bus = EventBus()
        calls = []
        bus.subscribe("client-data-updated", lambda: calls.append(1))

        bus.emit(ChangeEvent.CLIENT_DATA_UPDATED)

        assert calls == [1]

    def test_unsubscribe(self):
        bus = EventBus()
        calls = []
        unsubscribe = bus.subscribe(ChangeEvent.BRAND_DATA_UPDATED, lambda: calls.append(1))

        unsubscribe()
        bus.emit(ChangeEvent.BRAND_DATA_UPDATED)

        assert calls == []
        assert bus.subscriber_count(ChangeEvent.BRAND_DATA_UPDATED) == 0

    def test_failing_handler_does_not_stop_others(self):
        bus = EventBus()
        calls = []

        def broken():
            raise RuntimeError("page gone")

        bus.subscribe(ChangeEvent.PERFORMERS_UPDATED, broken)
        bus.subscribe(ChangeEvent.PERFORMERS_UPDATED, lambda: calls.append(1))

        assert bus.emit(ChangeEvent.PERFORMERS_UPDATED) == 1
        assert calls == [1]

    def test_unknown_event_rejected(self):
        with pytest.raises(ValueError):
            EventBus().subscribe("nothing-happened", lambda: None)
