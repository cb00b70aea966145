"""
Rule-based gesture classifier over 21-point hand skeletons.

Five boolean finger states are matched against a priority-ordered rule
table; the first matching rule wins, so overlapping shapes always resolve
the same way. Specific multi-finger shapes are checked before the generic
"open" and "fist" fallbacks.

Continuous features (openness, velocity, depth) are computed alongside.
Velocity is the only feature that needs the previous frame.
"""

import time
import logging
from typing import Callable, List, Optional, Tuple

from particle_hands.core.types import GestureSnapshot, GestureType, LandmarkFrame
from particle_hands.modules.detection.landmark_extractor import LandmarkExtractor

logger = logging.getLogger(__name__)

FingerStates = dict
Rule = Callable[[FingerStates, int], bool]


def _only(states: FingerStates, *extended: str) -> bool:
    """True when exactly ``extended`` among the four non-thumb fingers are up."""
    return all(states[f] == (f in extended) for f in ("index", "middle", "ring", "pinky"))


# Evaluated top to bottom; the first match wins.
GESTURE_RULES: List[Tuple[GestureType, Rule]] = [
    (GestureType.PEACE, lambda s, n: _only(s, "index", "middle")),
    (GestureType.POINTING, lambda s, n: _only(s, "index")),
    (GestureType.I_LOVE_YOU, lambda s, n: s["thumb"] and _only(s, "index", "pinky")),
    (GestureType.ROCK, lambda s, n: _only(s, "index", "pinky")),
    (GestureType.CALL_ME, lambda s, n: s["thumb"] and _only(s, "pinky")),
    (GestureType.OPEN, lambda s, n: n >= 3),
    (GestureType.FIST, lambda s, n: n <= 1 and not s["thumb"]),
]


def match_gesture(states: FingerStates) -> GestureType:
    """Map five finger states to a gesture using GESTURE_RULES."""
    extended = sum(1 for f in ("index", "middle", "ring", "pinky") if states[f])
    for gesture, rule in GESTURE_RULES:
        if rule(states, extended):
            return gesture
    return GestureType.NONE


class GestureClassifier:
    """Classifies one landmark frame into a GestureSnapshot.

    Holds only the previous palm position and time, for velocity. There is
    no hysteresis: detection follows frame presence exactly. Smoothing over
    several frames is the caller's job (see GestureSmoother).
    """

    def __init__(self, config: dict = None, extractor: LandmarkExtractor = None):
        """Initialize the classifier.

        Args:
            config: ``recognition`` section from config.yaml
            extractor: Optional shared LandmarkExtractor
        """
        config = config or {}
        self._extractor = extractor or LandmarkExtractor(config)
        self._max_velocity = config.get("max_velocity", 3.0)

        self._last_anchor = None
        self._last_time = None
        self._detected = False

    def classify(self, landmarks: Optional[LandmarkFrame],
                 timestamp: Optional[float] = None) -> GestureSnapshot:
        """Classify a frame.

        Args:
            landmarks: (21, 3) normalized landmarks, or None when no hand
            timestamp: Frame time in seconds; defaults to the wall clock

        Returns:
            GestureSnapshot (neutral when ``landmarks`` is None)

        Raises:
            InvalidLandmarkError: landmarks are malformed
        """
        if landmarks is None:
            if self._detected:
                logger.debug("Hand lost")
            self.reset()
            return GestureSnapshot.neutral()

        landmarks = self._extractor.validate(landmarks)
        now = time.time() if timestamp is None else timestamp

        if not self._detected:
            logger.debug("Hand detected")
        self._detected = True

        states = self._extractor.get_finger_states(landmarks)
        gesture = match_gesture(states)

        anchor = self._extractor.get_palm_anchor(landmarks)
        velocity = self._velocity(anchor, now)
        self._last_anchor = anchor
        self._last_time = now

        return GestureSnapshot(
            detected=True,
            gesture=gesture,
            openness=self._extractor.get_openness(landmarks),
            position=anchor,
            velocity=velocity,
            depth=self._extractor.get_depth(landmarks),
            confidence=1.0,
        )

    def _velocity(self, anchor: Tuple[float, float], now: float) -> Tuple[float, float]:
        if self._last_anchor is None or self._last_time is None:
            return (0.0, 0.0)
        dt = now - self._last_time
        if dt <= 0:
            return (0.0, 0.0)
        limit = self._max_velocity
        vx = (anchor[0] - self._last_anchor[0]) / dt
        vy = (anchor[1] - self._last_anchor[1]) / dt
        return (max(-limit, min(limit, vx)), max(-limit, min(limit, vy)))

    def reset(self):
        """Forget the previous frame (NOT_DETECTED)."""
        self._last_anchor = None
        self._last_time = None
        self._detected = False

    @property
    def detected(self) -> bool:
        return self._detected
