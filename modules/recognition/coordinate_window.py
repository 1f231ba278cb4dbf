"""
Fixed-length temporal window of normalized frame vectors.

The buffer always holds exactly ``frames_per_sign`` frames. It starts
zero-filled, so the classifier sees zero frames until enough real ones
have been pushed. Push and read are atomic under one lock; callers
never get the live buffer.
"""

import logging
import threading

import numpy as np

from core.types import NUM_DIMS, NUMBER_OF_COORDS

logger = logging.getLogger(__name__)


class CoordinateWindow:
    """Single-writer ring buffer of the last ``frames_per_sign`` frames."""

    def __init__(self, frames_per_sign: int = 7, coords_per_frame: int = NUMBER_OF_COORDS):
        if frames_per_sign < 1:
            raise ValueError("frames_per_sign must be >= 1")
        self._frames = frames_per_sign
        self._coords = coords_per_frame
        self._buffer = np.zeros(frames_per_sign * coords_per_frame, dtype=np.float32)
        self._pushed = 0
        self._lock = threading.Lock()

    def push(self, frame: np.ndarray):
        """Drop the oldest frame and append ``frame`` at the end."""
        frame = np.asarray(frame, dtype=np.float32).reshape(-1)
        if frame.size != self._coords:
            raise ValueError(
                "Frame vector must have %d values, got %d" % (self._coords, frame.size)
            )
        with self._lock:
            self._buffer[:-self._coords] = self._buffer[self._coords:]
            self._buffer[-self._coords:] = frame
            self._pushed += 1

    def snapshot(self) -> np.ndarray:
        """Copy of the flat buffer, oldest frame first."""
        with self._lock:
            return self._buffer.copy()

    def as_tensor(self) -> np.ndarray:
        """Copy shaped (1 batch, 1 channel, frames, 3 axes, 42 slots)."""
        return self.snapshot().reshape(1, 1, self._frames, NUM_DIMS, self._coords // NUM_DIMS)

    def newest(self) -> np.ndarray:
        """Copy of the most recently pushed frame."""
        with self._lock:
            return self._buffer[-self._coords:].copy()

    def reset(self):
        with self._lock:
            self._buffer.fill(0.0)
            self._pushed = 0

    @property
    def frames_per_sign(self) -> int:
        return self._frames

    @property
    def is_full(self) -> bool:
        """Whether every slot holds a real (pushed) frame."""
        with self._lock:
            return self._pushed >= self._frames

    def __len__(self):
        return self._buffer.size
