"""
Per-frame coordinate vector construction.

Layout of one frame (126 floats), axes grouped before hands:

    [leftX(21), rightX(21), leftY(21), rightY(21), leftZ(21), rightZ(21)]

which is the row-major flattening of a (3 axes, 42 slots) block. The
classifier was trained on exactly this order.
"""

from typing import Optional, Sequence

import numpy as np

from core.types import (
    HandAssignment, HandObservation, LANDMARKS_PER_HAND, NUM_DIMS, NUM_HANDS,
    NUMBER_OF_COORDS,
)


def normalize_hand(observation: HandObservation, table) -> np.ndarray:
    """Normalize one hand's landmarks.

    Returns:
        np.ndarray of shape (21, 3): ``(raw - mean) / scale`` per landmark/axis
    """
    means, scales = table.hand_stats(LANDMARKS_PER_HAND)
    return (observation.to_numpy() - means) / scales


def frame_vector(observations: Sequence[HandObservation],
                 assignment: HandAssignment, table) -> np.ndarray:
    """Build the flattened, normalized coordinate vector for one frame.

    Absent hands contribute zeros.
    """
    # (axis, hand, landmark)
    block = np.zeros((NUM_DIMS, NUM_HANDS, LANDMARKS_PER_HAND), dtype=np.float32)
    for slot, index in enumerate((assignment.left, assignment.right)):
        if index is None:
            continue
        block[:, slot, :] = normalize_hand(observations[index], table).T
    return block.reshape(NUMBER_OF_COORDS)


def empty_frame_vector() -> np.ndarray:
    """Contribution of a frame with no hands."""
    return np.zeros(NUMBER_OF_COORDS, dtype=np.float32)


def hand_present(assignment: Optional[HandAssignment]) -> bool:
    return assignment is not None and (assignment.left is not None or assignment.right is not None)
