"""
Camera frame handed to the analyzer.

The analyzer must release a frame as soon as it has copied the pixels
out; the camera source does not deliver the next frame until then.
"""

import logging
import threading
from typing import Callable, Optional

import cv2
import numpy as np

logger = logging.getLogger(__name__)

_TO_RGB = {
    "BGR": cv2.COLOR_BGR2RGB,
    "RGBA": cv2.COLOR_RGBA2RGB,
    "BGRA": cv2.COLOR_BGRA2RGB,
}

_ROTATIONS = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


class CameraFrame:
    """One image buffer plus metadata, with explicit release."""

    __slots__ = ("image", "pixel_format", "rotation_degrees", "timestamp_ms",
                 "frame_id", "_on_release", "_released")

    def __init__(self, image: np.ndarray, timestamp_ms: int, pixel_format: str = "BGR",
                 rotation_degrees: int = 0, frame_id: int = 0,
                 on_release: Optional[Callable[["CameraFrame"], None]] = None):
        if rotation_degrees % 360 not in (0, 90, 180, 270):
            raise ValueError("rotation_degrees must be a multiple of 90, got %r" % rotation_degrees)
        if pixel_format != "RGB" and pixel_format not in _TO_RGB:
            raise ValueError("Unsupported pixel format: %s" % pixel_format)
        self.image = image
        self.pixel_format = pixel_format
        self.rotation_degrees = rotation_degrees % 360
        self.timestamp_ms = timestamp_ms
        self.frame_id = frame_id
        self._on_release = on_release
        self._released = threading.Event()

    @property
    def width(self) -> int:
        return self.image.shape[1]

    @property
    def height(self) -> int:
        return self.image.shape[0]

    @property
    def is_released(self) -> bool:
        return self._released.is_set()

    def copy_pixels(self) -> np.ndarray:
        """Upright RGB copy of the frame, independent of the camera buffer."""
        if self.is_released:
            raise RuntimeError("Frame %d already released" % self.frame_id)
        if self.pixel_format == "RGB":
            rgb = self.image.copy()
        else:
            rgb = cv2.cvtColor(self.image, _TO_RGB[self.pixel_format])
        if self.rotation_degrees:
            rgb = cv2.rotate(rgb, _ROTATIONS[self.rotation_degrees])
        return np.ascontiguousarray(rgb)

    def close(self):
        """Release the frame; idempotent."""
        if self._released.is_set():
            return
        self._released.set()
        self.image = None
        if self._on_release is not None:
            self._on_release(self)

    def wait_released(self, timeout: Optional[float] = None) -> bool:
        return self._released.wait(timeout)

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
