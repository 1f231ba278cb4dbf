"""
TorchScript sequence classifier over the coordinate window.

Input  : float32 tensor (1, 1, frames_per_sign, 3, 42)
Output : one score per vocabulary entry (raw logits)

The model is loaded once in ``start()`` and released in ``close()``;
nothing is loaded lazily on first use.
"""

import os
import logging

import numpy as np
import torch

from core.errors import ClassificationError
from modules.utils.logger import log_timing

logger = logging.getLogger(__name__)


class SignClassifier:
    """Wraps a TorchScript module for single-window inference."""

    def __init__(self, config: dict):
        self._model_path = config.get("model_path", "models/stream_cnn_3d.pt")
        self._device = torch.device(config.get("device", "cpu"))
        self._num_classes = config.get("num_classes")
        self._module = None

    def start(self):
        """Load the TorchScript module.

        Raises:
            FileNotFoundError: If the model file does not exist
        """
        if not os.path.isfile(self._model_path):
            raise FileNotFoundError("Classifier model not found: %s" % self._model_path)
        self._module = torch.jit.load(self._model_path, map_location=self._device)
        self._module.eval()
        logger.info("Sign classifier loaded: %s (device=%s)", self._model_path, self._device)

    @log_timing
    def predict(self, window: np.ndarray) -> np.ndarray:
        """Run the classifier on one window tensor.

        Args:
            window: np.ndarray of shape (1, 1, frames, 3, 42)

        Returns:
            np.ndarray of shape (num_classes,) with raw scores

        Raises:
            ClassificationError: On any inference failure or wrong output size
        """
        if self._module is None:
            raise ClassificationError("Classifier not started")

        inputs = torch.from_numpy(np.ascontiguousarray(window, dtype=np.float32)).to(self._device)
        try:
            with torch.no_grad():
                output = self._module(inputs)
        except RuntimeError as e:
            raise ClassificationError("Classifier forward failed: %s" % e) from e

        scores = output.detach().cpu().numpy().reshape(-1)
        if self._num_classes is not None and scores.size != self._num_classes:
            raise ClassificationError(
                "Classifier returned %d scores, expected %d" % (scores.size, self._num_classes)
            )
        return scores

    def close(self):
        """Release the loaded module."""
        if self._module is not None:
            self._module = None
            logger.info("Sign classifier released")

    @property
    def is_loaded(self) -> bool:
        return self._module is not None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
