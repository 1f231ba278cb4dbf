"""
Left/right slot assignment for the hands detected in one frame.

MediaPipe labels each hand independently, so two hands can both come
back as "Left". With two hands the one more likely to be left (its
score if labelled Left, one minus its score if labelled Right) takes
the left slot and the other takes the right slot, whatever the labels
say. Equal likelihoods resolve to the first observation as left.
"""

import logging
from typing import Sequence

from core.types import HandAssignment, HandObservation, LEFT_LABEL, RIGHT_LABEL

logger = logging.getLogger(__name__)

NO_HANDS = HandAssignment(left=None, right=None)


def assign_hands(observations: Sequence[HandObservation]) -> HandAssignment:
    """Map detected hands to the (left, right) slots.

    Args:
        observations: 0-2 hands for the frame; extras beyond two are ignored

    Returns:
        HandAssignment with observation indices, None for an absent slot
    """
    count = len(observations)
    if count == 0:
        return NO_HANDS

    if count == 1:
        label = observations[0].handedness
        if label == LEFT_LABEL:
            return HandAssignment(left=0, right=None)
        if label == RIGHT_LABEL:
            return HandAssignment(left=None, right=0)
        logger.debug("Unknown handedness label %r, hand ignored", label)
        return NO_HANDS

    if count > 2:
        logger.debug("%d hands observed, using the first two", count)

    first = observations[0].left_likelihood
    second = observations[1].left_likelihood
    if second > first:
        return HandAssignment(left=1, right=0)
    return HandAssignment(left=0, right=1)
