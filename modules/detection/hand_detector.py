"""
Hand landmark extraction - MediaPipe Tasks API (LIVE_STREAM)
=============================================================

Wraps the MediaPipe HandLandmarker in live-stream mode: frames are
submitted with ``detect_async`` and results arrive on MediaPipe's own
thread through a callback. Each result is converted to a list of
HandObservation built from the world (hand-relative, metric) landmarks.
"""

import os
import logging
import threading
from typing import Callable, Dict, List, Optional

import numpy as np
import mediapipe as mp
from mediapipe.tasks import python
from mediapipe.tasks.python import vision

from core.types import HandObservation, Landmark

logger = logging.getLogger(__name__)

# observations is None when MediaPipe dropped the frame without a result
ResultCallback = Callable[[Optional[List[HandObservation]], int], None]


def observations_from_result(result) -> List[HandObservation]:
    """Convert a HandLandmarkerResult to HandObservation objects."""
    hands = []
    world = getattr(result, "hand_world_landmarks", None) or []
    for i, hand_landmarks in enumerate(world):
        handedness = "Right"
        confidence = 0.0
        if result.handedness and len(result.handedness) > i and result.handedness[i]:
            category = result.handedness[i][0]
            handedness = category.category_name
            confidence = category.score

        landmarks = [Landmark(x=lm.x, y=lm.y, z=lm.z) for lm in hand_landmarks]
        try:
            hands.append(HandObservation(landmarks, handedness, confidence))
        except ValueError as e:
            logger.warning("Dropping hand %d: %s", i, e)
    return hands


class HandLandmarkExtractor:
    """MediaPipe HandLandmarker in LIVE_STREAM mode.

    Example:
        >>> extractor = HandLandmarkExtractor(config.detector)
        >>> extractor.start()
        >>> extractor.detect_async(rgb_image, timestamp_ms, on_hands)
        >>> extractor.close()
    """

    def __init__(self, config: dict):
        self._model_path = config.get("model_path", "models/hand_landmarker.task")
        self._max_hands = config.get("max_num_hands", 2)
        self._min_detect_conf = config.get("min_detection_confidence", 0.5)
        self._min_presence_conf = config.get("min_presence_confidence", 0.5)
        self._min_track_conf = config.get("min_tracking_confidence", 0.5)
        self._use_gpu = config.get("use_gpu", False)

        self._landmarker = None
        self._lock = threading.Lock()
        self._pending: Dict[int, ResultCallback] = {}
        self._last_timestamp = -1

    def start(self):
        """Create the landmarker.

        Raises:
            FileNotFoundError: If the .task model file does not exist
        """
        if not os.path.isfile(self._model_path):
            raise FileNotFoundError("Hand landmarker model not found: %s" % self._model_path)

        delegate = (python.BaseOptions.Delegate.GPU if self._use_gpu
                    else python.BaseOptions.Delegate.CPU)
        options = vision.HandLandmarkerOptions(
            base_options=python.BaseOptions(model_asset_path=self._model_path, delegate=delegate),
            running_mode=vision.RunningMode.LIVE_STREAM,
            num_hands=self._max_hands,
            min_hand_detection_confidence=self._min_detect_conf,
            min_hand_presence_confidence=self._min_presence_conf,
            min_tracking_confidence=self._min_track_conf,
            result_callback=self._on_result,
        )
        self._landmarker = vision.HandLandmarker.create_from_options(options)
        logger.info(
            "HandLandmarker initialized (max_hands=%d, detect_conf=%.2f, "
            "track_conf=%.2f, gpu=%s)",
            self._max_hands, self._min_detect_conf, self._min_track_conf, self._use_gpu,
        )

    def detect_async(self, rgb_image: np.ndarray, timestamp_ms: int, callback: ResultCallback) -> int:
        """Submit a frame for landmark detection.

        Args:
            rgb_image: RGB uint8 image (H, W, 3); must not be modified afterwards
            timestamp_ms: Frame time; bumped if not strictly increasing
            callback: Called exactly once as ``callback(observations, timestamp_ms)``;
                observations is None if the frame was dropped unprocessed

        Returns:
            The timestamp actually used for the submission
        """
        if self._landmarker is None:
            raise RuntimeError("HandLandmarkExtractor not started")

        with self._lock:
            # LIVE_STREAM rejects non-monotonic timestamps
            timestamp_ms = max(int(timestamp_ms), self._last_timestamp + 1)
            self._last_timestamp = timestamp_ms
            self._pending[timestamp_ms] = callback

        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB,
                            data=np.ascontiguousarray(rgb_image))
        try:
            self._landmarker.detect_async(mp_image, timestamp_ms)
        except Exception:
            with self._lock:
                self._pending.pop(timestamp_ms, None)
            raise
        return timestamp_ms

    def _on_result(self, result, output_image, timestamp_ms: int):
        with self._lock:
            callback = self._pending.pop(timestamp_ms, None)
            # Frames MediaPipe dropped under load never get a result of their own
            dropped = sorted((ts, cb) for ts, cb in self._pending.items() if ts < timestamp_ms)
            for ts, _ in dropped:
                del self._pending[ts]
        for ts, stale_callback in dropped:
            logger.debug("Frame %d dropped by the landmarker", ts)
            stale_callback(None, ts)
        if callback is None:
            return
        callback(observations_from_result(result), timestamp_ms)

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def close(self):
        """Release MediaPipe resources. Pending results are dropped."""
        with self._lock:
            self._pending.clear()
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None
            logger.info("HandLandmarker closed")

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
