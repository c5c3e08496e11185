"""
Active-speaker classification from a face's mouth-aspect-ratio history.

A face is speaking when its recent mouth opening and its opening variance
both clear one of two threshold pairs:

- big mouth: high short-term mean, and the mean must beat the incumbent's
- small mouth: lower short-term mean, and the variance must beat the incumbent's

The incumbent ("ratchet") is the strongest face already classified as
speaking in the current frame. It is passed in and returned explicitly so the
classifier itself holds no state.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from liptrack.config import LipTrackOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpeakerRatchet:
    """Strength of the current speaking incumbent."""
    best_mean: float = 0.0
    best_variance: float = 0.0


@dataclass(frozen=True)
class LipActivity:
    """Summary statistics of one face's history."""
    history_length: int
    mean_short: float
    mean: float
    variance: float


class SpeakerClassifier:
    """Decides speaking / not speaking from rolling lip statistics."""

    def __init__(self, options: LipTrackOptions):
        self.options = options

    def lip_activity(self, history: Sequence[float]) -> Optional[LipActivity]:
        """
        Compute the statistics used for classification.

        Returns None when the history is too short to be evidence of speech
        (half the variance history or less).
        """
        n = len(history)
        if n <= self.options.variance_history // 2:
            return None

        values = np.asarray(history, dtype=np.float64)
        mean_history = self.options.mean_history
        if n < mean_history:
            mean_short = float(values[0])
        else:
            mean_short = float(values[-mean_history:].mean())

        return LipActivity(
            history_length=n,
            mean_short=mean_short,
            mean=float(values.mean()),
            variance=float(values.var()),
        )

    def classify(
        self,
        history: Sequence[float],
        ratchet: SpeakerRatchet,
    ) -> tuple[bool, SpeakerRatchet]:
        """
        Classify one face.

        Args:
            history: The face's mouth-aspect-ratio history, oldest first
            ratchet: Current incumbent strength

        Returns:
            Tuple of (is_speaking, updated ratchet). The ratchet only changes
            on a positive decision.
        """
        activity = self.lip_activity(history)
        if activity is None:
            return False, ratchet

        opts = self.options
        big_mouth = (
            activity.mean_short >= opts.lip_mean_threshold_big_mouth
            and activity.variance >= opts.lip_variance_threshold_big_mouth
            and activity.mean_short > ratchet.best_mean
        )
        small_mouth = (
            activity.mean_short >= opts.lip_mean_threshold_small_mouth
            and activity.variance >= opts.lip_variance_threshold_small_mouth
            and activity.variance > ratchet.best_variance
        )

        if big_mouth or small_mouth:
            logger.debug(
                f"Speaking: n={activity.history_length} mean_short={activity.mean_short:.4f} "
                f"variance={activity.variance:.5f} ({'big' if big_mouth else 'small'} mouth)"
            )
            return True, SpeakerRatchet(best_mean=activity.mean_short, best_variance=activity.variance)

        return False, ratchet
