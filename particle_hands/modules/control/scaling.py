"""
Cloud display scale driven by hand openness.
"""

import logging

from particle_hands.core.types import GestureSnapshot, ScaleState

logger = logging.getLogger(__name__)


class ScaleTracker:
    """Eases the rendered size of the cloud toward a target set by openness.

    An open hand grows the cloud, a fist shrinks it. The target is only
    updated while a hand is detected; without one the scale keeps easing
    toward the last target.
    """

    def __init__(self, config: dict = None):
        config = config or {}
        self._min_scale = config.get("min_scale", 0.4)
        self._scale_range = config.get("scale_range", 1.8)
        self._rate = config.get("rate", 0.12)
        self._transition_rate = config.get("transition_rate", 0.15)

    def target_for(self, openness: float) -> float:
        return self._min_scale + openness * self._scale_range

    def update(self, state: ScaleState, gesture: GestureSnapshot,
               transitioning: bool = False) -> ScaleState:
        """Advance one frame."""
        target = state.target
        if gesture.detected:
            target = self.target_for(gesture.openness)

        rate = self._transition_rate if transitioning else self._rate
        current = state.current + (target - state.current) * rate
        return ScaleState(current=current, target=target)
