"""
Tests for the Event Bus
========================
"""

import gc
import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.events import EventBus, Events


class Recorder:
    """Callable subscriber that records what it receives."""

    def __init__(self):
        self.calls = []

    def __call__(self, *args, **kwargs):
        self.calls.append((args, kwargs))

    def on_event(self, *args, **kwargs):
        self.calls.append((args, kwargs))


@pytest.fixture
def bus():
    return EventBus()


class TestEventBus:
    """Weakly referenced publish/subscribe."""

    def test_emit_reaches_subscriber(self, bus):
        recorder = Recorder()
        bus.subscribe(Events.OUTPUT_TEXT, recorder)

        notified = bus.emit(Events.OUTPUT_TEXT, "hello")

        assert notified == 1
        assert recorder.calls == [(("hello",), {})]

    def test_keyword_payload(self, bus):
        recorder = Recorder()
        bus.subscribe(Events.SIGN_RECOGNIZED, recorder)

        bus.emit(Events.SIGN_RECOGNIZED, label="hello", index=1)

        assert recorder.calls == [((), {"label": "hello", "index": 1})]

    def test_bound_method_subscriber(self, bus):
        recorder = Recorder()
        bus.subscribe(Events.OUTPUT_TEXT, recorder.on_event)

        bus.emit(Events.OUTPUT_TEXT, "x")

        assert len(recorder.calls) == 1

    def test_unsubscribe(self, bus):
        recorder = Recorder()
        bus.subscribe(Events.OUTPUT_TEXT, recorder.on_event)
        bus.unsubscribe(Events.OUTPUT_TEXT, recorder.on_event)

        assert bus.emit(Events.OUTPUT_TEXT, "x") == 0
        assert not bus.has_listeners(Events.OUTPUT_TEXT)

    def test_collected_subscriber_dropped(self, bus):
        recorder = Recorder()
        bus.subscribe(Events.OUTPUT_TEXT, recorder)
        assert bus.listener_count(Events.OUTPUT_TEXT) == 1

        del recorder
        gc.collect()

        assert bus.listener_count(Events.OUTPUT_TEXT) == 0
        assert bus.emit(Events.OUTPUT_TEXT, "x") == 0

    def test_failing_handler_does_not_block_others(self, bus):
        def broken(text):
            raise RuntimeError("boom")

        recorder = Recorder()
        bus.subscribe(Events.OUTPUT_TEXT, broken)
        bus.subscribe(Events.OUTPUT_TEXT, recorder)

        bus.emit(Events.OUTPUT_TEXT, "x")

        assert len(recorder.calls) == 1

    def test_events_are_separate(self, bus):
        recorder = Recorder()
        bus.subscribe(Events.SESSION_STARTED, recorder)

        bus.emit(Events.OUTPUT_TEXT, "x")

        assert recorder.calls == []

    def test_history(self, bus):
        bus.emit(Events.SESSION_STARTED)
        bus.emit(Events.SESSION_CLOSED)

        history = bus.get_history()
        assert [h["event"] for h in history] == [Events.SESSION_STARTED, Events.SESSION_CLOSED]

    def test_clear(self, bus):
        recorder = Recorder()
        bus.subscribe(Events.OUTPUT_TEXT, recorder)
        bus.clear()
        assert not bus.has_listeners(Events.OUTPUT_TEXT)

    def test_instances_are_independent(self):
        recorder = Recorder()
        EventBus().subscribe(Events.OUTPUT_TEXT, recorder)
        assert not EventBus().has_listeners(Events.OUTPUT_TEXT)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
