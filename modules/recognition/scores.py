"""
Classifier score helpers.
"""

import numpy as np

from core.errors import ClassificationError


def top_class(scores) -> int:
    """Index of the highest score.

    Ties go to the first occurrence and NaN never wins; an all-NaN
    vector falls back to index 0 (the background class).

    Raises:
        ClassificationError: If ``scores`` is empty
    """
    scores = np.asarray(scores, dtype=np.float64).ravel()
    if scores.size == 0:
        raise ClassificationError("Classifier returned no scores")
    return int(np.argmax(np.where(np.isnan(scores), -np.inf, scores)))
