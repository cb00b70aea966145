"""
Multi-frame majority voting for gesture stability.
Suppresses single-frame misclassifications before a gesture is allowed
to switch the pattern.
"""

import math
import logging
from collections import Counter
from typing import Optional, Tuple

from particle_hands.core.types import GestureType

logger = logging.getLogger(__name__)

_MAX_WINDOW = 9
_MIN_WINDOW = 3
_MAX_MAJORITY = 0.7
_MIN_MAJORITY = 0.5

History = Tuple[GestureType, ...]


def window_for_sensitivity(sensitivity: float) -> Tuple[int, int]:
    """Map sensitivity in [0, 1] to (window size, votes required).

    Higher sensitivity gives a shorter window and a lower majority, i.e.
    faster but less stable recognition.
    """
    s = min(1.0, max(0.0, float(sensitivity)))
    window = int(round(_MAX_WINDOW - (_MAX_WINDOW - _MIN_WINDOW) * s))
    ratio = _MAX_MAJORITY - (_MAX_MAJORITY - _MIN_MAJORITY) * s
    votes = max(1, int(math.ceil(window * ratio)))
    return window, votes


class GestureSmoother:
    """Sliding-window majority vote over raw per-frame gestures.

    The window lives in the caller's state; ``update`` is pure.
    """

    def __init__(self, config: dict = None):
        config = config or {}
        self._sensitivity = config.get("sensitivity", 0.5)
        self._window_size, self._votes_required = window_for_sensitivity(self._sensitivity)
        logger.debug("GestureSmoother: window=%d votes=%d (sensitivity=%.2f)",
                     self._window_size, self._votes_required, self._sensitivity)

    def update(self, history: History, gesture: GestureType) -> Tuple[History, Optional[GestureType]]:
        """Append ``gesture`` and return (new history, stable gesture or None).

        NONE is never reported as stable.
        """
        history = (tuple(history) + (gesture,))[-self._window_size:]
        if len(history) < self._votes_required:
            return history, None

        best, votes = Counter(history).most_common(1)[0]
        if best == GestureType.NONE or votes < self._votes_required:
            return history, None
        return history, best

    @property
    def window_size(self) -> int:
        return self._window_size

    @property
    def votes_required(self) -> int:
        return self._votes_required

    @property
    def sensitivity(self) -> float:
        return self._sensitivity
