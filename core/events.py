"""
Lightweight event bus for publishing analysis output to subscribers.

Listeners are held by weak reference: the bus notifies them but never
keeps them alive. A subscriber that is garbage-collected simply drops
out of the registry.

Usage:
    bus = EventBus()
    bus.subscribe(Events.OUTPUT_TEXT, view.show_text)
    bus.emit(Events.OUTPUT_TEXT, "hello")
"""

import time
import logging
import threading
import weakref
from collections import defaultdict
from typing import Callable

logger = logging.getLogger(__name__)


def _make_ref(callback: Callable):
    """Weak reference that also works for bound methods."""
    if hasattr(callback, "__self__") and hasattr(callback, "__func__"):
        return weakref.WeakMethod(callback)
    try:
        return weakref.ref(callback)
    except TypeError:
        # Builtins (e.g. list.append) cannot be weakly referenced
        return lambda: callback


class EventBus:
    """Thread-safe publish/subscribe bus with weakly referenced listeners.

    Registration and deregistration may happen at any time, from any
    thread. Dispatch order between listeners is not guaranteed.
    """

    def __init__(self, max_history: int = 100):
        self._listeners = defaultdict(list)  # event_name -> [weakref]
        self._lock = threading.Lock()
        self._event_history = []
        self._max_history = max_history

    def subscribe(self, event_name: str, callback: Callable):
        """Register a listener for an event.

        The caller must keep a strong reference to ``callback``; the bus
        only holds a weak one.
        """
        ref = _make_ref(callback)
        with self._lock:
            self._listeners[event_name].append(ref)
        logger.debug("Subscribed to '%s': %s", event_name,
                     getattr(callback, "__name__", repr(callback)))

    def unsubscribe(self, event_name: str, callback: Callable):
        """Remove a listener for an event."""
        with self._lock:
            self._listeners[event_name] = [
                ref for ref in self._listeners[event_name]
                if ref() is not None and ref() != callback
            ]

    def _live_listeners(self, event_name: str) -> list:
        """Resolve weak references, pruning dead ones. Caller holds the lock."""
        refs = self._listeners.get(event_name)
        if not refs:
            return []
        alive = []
        callbacks = []
        for ref in refs:
            callback = ref()
            if callback is not None:
                alive.append(ref)
                callbacks.append(callback)
        self._listeners[event_name] = alive
        return callbacks

    def has_listeners(self, event_name: str) -> bool:
        """Whether at least one live listener is registered for an event."""
        with self._lock:
            return bool(self._live_listeners(event_name))

    def listener_count(self, event_name: str) -> int:
        """Number of live listeners for an event."""
        with self._lock:
            return len(self._live_listeners(event_name))

    def emit(self, event_name: str, *args, **kwargs) -> int:
        """Deliver an event to every live listener.

        Returns:
            Number of listeners notified
        """
        with self._lock:
            listeners = self._live_listeners(event_name)

        self._event_history.append({
            "event": event_name,
            "time": time.time(),
            "listeners": len(listeners),
        })
        if len(self._event_history) > self._max_history:
            self._event_history = self._event_history[-self._max_history:]

        for callback in listeners:
            try:
                callback(*args, **kwargs)
            except Exception as e:
                logger.error("Event handler error [%s -> %s]: %s",
                             event_name, getattr(callback, "__name__", callback), e)
        return len(listeners)

    def clear(self, event_name: str = None):
        """Remove all listeners, optionally for a specific event."""
        with self._lock:
            if event_name:
                self._listeners.pop(event_name, None)
            else:
                self._listeners.clear()

    def get_history(self, last_n: int = 10) -> list:
        """Get recent event history."""
        return self._event_history[-last_n:]


# =============================================================================
# Standard Event Names (constants to avoid typos)
# =============================================================================

class Events:
    """Standard event names used throughout the system."""

    # Published once per analyzed frame with the current output string
    OUTPUT_TEXT = "output_text"

    # Output changed to a new sign label
    SIGN_RECOGNIZED = "sign_recognized"

    # Classifier raised for a frame; history left untouched
    CLASSIFICATION_FAILED = "classification_failed"

    # Lifecycle
    SESSION_STARTED = "session_started"
    SESSION_CLOSED = "session_closed"
