"""
Moving-average frame rate over the most recent frame arrivals.
Diagnostic only: nothing downstream depends on the value.
"""

import time
import threading
from collections import deque
from typing import Optional


def now_ms() -> int:
    """Wall-clock time in milliseconds."""
    return int(time.time() * 1000)


class FrameRateTracker:
    """Tracks frame arrival timestamps in a bounded window.

    Timestamps are kept newest-first and the span is newest - oldest. After
    each push the window is trimmed from the oldest end while it holds
    ``frame_rate_window`` or more entries, so at most
    ``frame_rate_window - 1`` are retained.
    """

    def __init__(self, frame_rate_window: int = 8):
        if frame_rate_window < 2:
            raise ValueError("frame_rate_window must be >= 2")
        self._window = frame_rate_window
        self._timestamps = deque()
        self._fps = 0.0
        self._lock = threading.Lock()

    def record(self, timestamp_ms: Optional[int] = None) -> float:
        """Register a frame arrival and return the updated fps estimate."""
        if timestamp_ms is None:
            timestamp_ms = now_ms()
        with self._lock:
            self._timestamps.appendleft(timestamp_ms)
            while len(self._timestamps) >= self._window:
                self._timestamps.pop()
            self._fps = self._compute()
            return self._fps

    def _compute(self) -> float:
        # fps = 1000 / (span / count), count = retained timestamps
        count = len(self._timestamps)
        if count < 2:
            return 0.0
        span = self._timestamps[0] - self._timestamps[-1]
        if span <= 0:
            return 0.0
        return 1000.0 / (span / count)

    @property
    def fps(self) -> float:
        with self._lock:
            return self._fps

    @property
    def last_timestamp(self) -> Optional[int]:
        """Most recent arrival time in ms, or None before the first frame."""
        with self._lock:
            return self._timestamps[0] if self._timestamps else None

    def __len__(self):
        with self._lock:
            return len(self._timestamps)

    def reset(self):
        with self._lock:
            self._timestamps.clear()
            self._fps = 0.0
