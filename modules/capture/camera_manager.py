"""
OpenCV camera source with release-gated frame delivery.

A single worker thread reads a frame, hands it to the analyzer and
waits until the analyzer releases it before reading the next one. A
slow analyzer therefore slows capture down instead of queueing frames.
"""

import time
import threading
import logging

import cv2

from modules.capture.frame import CameraFrame

logger = logging.getLogger(__name__)


class CameraManager:
    """Serial camera frame source for the sign analyzer."""

    def __init__(self, config: dict):
        self._device_id = config.get("device_id", 0)
        self._width = config.get("width", 640)
        self._height = config.get("height", 480)
        self._rotation = config.get("rotation_degrees", 0)
        self._flip_h = config.get("flip_horizontal", False)
        self._release_timeout_s = config.get("release_timeout_s", 5.0)

        self._cap = None
        self._frame_id = 0
        self._running = False
        self._thread = None

    def open(self) -> bool:
        """Open the camera device."""
        self._cap = cv2.VideoCapture(self._device_id)
        if not self._cap.isOpened():
            logger.error("Failed to open camera %d", self._device_id)
            self._cap = None
            return False

        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self._width)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self._height)
        logger.info(
            "Camera opened: %dx%d (requested %dx%d)",
            int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            self._width, self._height,
        )
        return True

    def read_frame(self):
        """Read one frame from the device.

        Returns:
            CameraFrame, or None if the read failed
        """
        if self._cap is None:
            return None
        ret, image = self._cap.read()
        if not ret or image is None:
            return None
        if self._flip_h:
            image = cv2.flip(image, 1)
        self._frame_id += 1
        return CameraFrame(
            image=image,
            timestamp_ms=int(time.time() * 1000),
            pixel_format="BGR",
            rotation_degrees=self._rotation,
            frame_id=self._frame_id,
        )

    def start(self, analyze):
        """Deliver frames to ``analyze(frame)`` on a dedicated worker thread."""
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(target=self._delivery_loop, args=(analyze,),
                                        name="frame-analysis", daemon=True)
        self._thread.start()
        logger.info("Frame delivery started")

    def _delivery_loop(self, analyze):
        while self._running:
            frame = self.read_frame()
            if frame is None:
                time.sleep(0.005)
                continue
            try:
                analyze(frame)
            except Exception as e:
                logger.error("Frame %d analysis failed: %s", frame.frame_id, e)
                frame.close()
            if not frame.wait_released(self._release_timeout_s):
                logger.warning("Frame %d not released after %.1fs, forcing release",
                               frame.frame_id, self._release_timeout_s)
                frame.close()

    @property
    def frame_count(self) -> int:
        return self._frame_id

    @property
    def is_running(self) -> bool:
        return self._running

    def stop(self):
        """Stop delivery and release the camera."""
        self._running = False
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2.0)
        self._thread = None
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        logger.info("Camera stopped")

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, *args):
        self.stop()
