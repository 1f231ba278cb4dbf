"""
Consensus debouncer for per-frame sign predictions.

A prediction is accepted only when the last ``concurrent_preds_required``
frames all agree. Agreement on the background class keeps whatever is
on screen. The displayed text is sticky: disagreement never clears it,
only a new unanimous sign replaces it.
"""

import logging
import threading
from collections import deque
from typing import Optional

from core.types import BACKGROUND_CLASS

logger = logging.getLogger(__name__)


class PredictionHistory:
    """FIFO of the most recent per-frame top-class indices."""

    def __init__(self, capacity: int = 4):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._entries = deque(maxlen=capacity)

    def push(self, index: int):
        """Append ``index``, evicting the oldest entry when full."""
        self._entries.append(int(index))

    def unanimous(self) -> Optional[int]:
        """The shared value when the history is full and all entries agree."""
        if len(self._entries) < self._entries.maxlen:
            return None
        first = self._entries[0]
        for entry in self._entries:
            if entry != first:
                return None
        return first

    def clear(self):
        self._entries.clear()

    @property
    def capacity(self) -> int:
        return self._entries.maxlen

    def __len__(self):
        return len(self._entries)

    def __iter__(self):
        return iter(list(self._entries))


class PredictionDebouncer:
    """Turns per-frame top-class indices into a stable output string."""

    def __init__(self, vocabulary, concurrent_preds_required: int = 4,
                 background_class: int = BACKGROUND_CLASS, signs_to_display: int = 6):
        self._vocab = vocabulary
        self._background = background_class
        self._history = PredictionHistory(concurrent_preds_required)
        self._output = ""
        self._recent_signs = deque(maxlen=signs_to_display)
        self._lock = threading.Lock()

    def update(self, index: int) -> bool:
        """Record one frame's prediction and refresh the output.

        Returns:
            True if the output changed to a new label
        """
        with self._lock:
            self._history.push(index)
            stable = self._history.unanimous()
            if stable is None or stable == self._background:
                return False

            label = self._vocab.get(stable)
            if label is None:
                logger.warning("Stable prediction %d has no vocabulary entry", stable)
                return False
            if label == self._output:
                return False

            logger.debug("Output changed: %r -> %r", self._output, label)
            self._output = label
            self._recent_signs.append(label)
            return True

    def reset(self):
        """Clear history and output."""
        with self._lock:
            self._history.clear()
            self._output = ""
            self._recent_signs.clear()

    @property
    def output(self) -> str:
        with self._lock:
            return self._output

    @property
    def history(self) -> list:
        with self._lock:
            return list(self._history)

    @property
    def recent_signs(self) -> list:
        """Labels shown so far, oldest first, bounded by ``signs_to_display``."""
        with self._lock:
            return list(self._recent_signs)
