"""
Shared domain types for the sign translation pipeline.

Centralizes constants, enums and data containers used across modules
to eliminate circular imports and ensure type consistency.
"""

from enum import Enum
from typing import List, NamedTuple, Optional

import numpy as np


# =============================================================================
# Tensor Geometry
# =============================================================================

NUM_DIMS = 3             # x, y, z
LANDMARKS_PER_HAND = 21  # MediaPipe hand model
NUM_HANDS = 2            # left slot, right slot
NUMBER_OF_COORDS = NUM_DIMS * LANDMARKS_PER_HAND * NUM_HANDS  # 126 per frame

BACKGROUND_CLASS = 0     # "no sign", never displayed

LEFT_LABEL = "Left"
RIGHT_LABEL = "Right"


# =============================================================================
# Enums
# =============================================================================

class AnalysisState(Enum):
    """Per-frame state of the analysis orchestrator."""
    IDLE = "idle"
    AWAITING_EXTRACTION = "awaiting_extraction"
    CLASSIFYING = "classifying"
    PUBLISHING = "publishing"


# =============================================================================
# Data Containers
# =============================================================================

class Landmark(NamedTuple):
    """A single 3D hand keypoint in hand-relative (world) coordinates."""
    x: float
    y: float
    z: float


class HandAssignment(NamedTuple):
    """Observation indices for the left and right hand slots (None = absent)."""
    left: Optional[int]
    right: Optional[int]


class HandObservation:
    """One detected hand for a single frame.

    Uses __slots__ since a fresh instance is produced for every hand of
    every frame.
    """

    __slots__ = ("landmarks", "handedness", "confidence")

    def __init__(self, landmarks: List[Landmark], handedness: str, confidence: float):
        if len(landmarks) != LANDMARKS_PER_HAND:
            raise ValueError(
                "HandObservation needs %d landmarks, got %d"
                % (LANDMARKS_PER_HAND, len(landmarks))
            )
        self.landmarks = landmarks
        self.handedness = handedness
        self.confidence = float(confidence)

    def __repr__(self):
        return f"HandObservation({self.handedness}, conf={self.confidence:.2f})"

    @property
    def left_likelihood(self) -> float:
        """Probability that this is the left hand, from its handedness score."""
        if self.handedness == LEFT_LABEL:
            return self.confidence
        return 1.0 - self.confidence

    def to_numpy(self) -> np.ndarray:
        """Landmarks as a (21, 3) float32 array."""
        return np.asarray(self.landmarks, dtype=np.float32).reshape(LANDMARKS_PER_HAND, NUM_DIMS)
