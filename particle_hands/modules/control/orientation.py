"""
Cloud orientation driven by hand movement, with inertia.
"""

import logging
from typing import Tuple

from particle_hands.core.types import GestureSnapshot, OrientationState

logger = logging.getLogger(__name__)


class OrientationTracker:
    """Turns palm movement into rotation deltas for an orientation indicator.

    Horizontal hand motion spins the cloud about y, vertical motion about x.
    Without a hand the cloud drifts slowly about y.
    """

    def __init__(self, config: dict = None):
        config = config or {}
        self._sensitivity = config.get("sensitivity", 3.0)
        self._friction = config.get("friction", 0.92)
        self._auto_rotate = config.get("auto_rotate", 0.0005)

    def update(self, state: OrientationState,
               gesture: GestureSnapshot) -> Tuple[OrientationState, Tuple[float, float]]:
        """Advance one frame.

        Returns:
            (new_state, (dx, dy)) where the delta is the rotation applied
            this frame in radians.
        """
        vx, vy = state.velocity
        last = None

        if gesture.detected and gesture.position is not None:
            if state.last_position is not None:
                vy += (gesture.position[0] - state.last_position[0]) * self._sensitivity
                vx += (gesture.position[1] - state.last_position[1]) * self._sensitivity
            last = gesture.position
        else:
            vy += self._auto_rotate

        rx = state.rotation[0] + vx
        ry = state.rotation[1] + vy
        new_state = OrientationState(
            rotation=(rx, ry),
            velocity=(vx * self._friction, vy * self._friction),
            last_position=last,
        )
        return new_state, (vx, vy)
