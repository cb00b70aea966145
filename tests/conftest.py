"""
Shared fixtures and synthetic hand builders.
"""

import numpy as np
import pytest

from particle_hands.core.events import EventBus
from particle_hands.modules.utils.config import Config

WRIST_POS = (0.5, 0.8)

# x of each knuckle; the hand points up the image (decreasing y)
_FINGER_X = {"index": 0.44, "middle": 0.50, "ring": 0.56, "pinky": 0.62}
_MCP_Y = 0.60
_PIP_Y = 0.50
_UP_TIP_Y = 0.35
_DOWN_TIP_Y = 0.58


def create_mock_landmarks(extended=(), offset=(0.0, 0.0), z=0.0) -> np.ndarray:
    """Build a (21, 3) right hand with the named fingers extended.

    Args:
        extended: subset of {"thumb", "index", "middle", "ring", "pinky"}
        offset: (dx, dy) translation of the whole hand
        z: depth value applied to every landmark
    """
    extended = set(extended)
    lm = np.zeros((21, 3), dtype=np.float64)
    wx, wy = WRIST_POS
    lm[0] = [wx, wy, z]

    # Thumb: CMC, MCP, IP, TIP
    lm[1] = [0.46, 0.75, z]
    lm[2] = [0.41, 0.70, z]
    if "thumb" in extended:
        lm[3] = [0.36, 0.67, z]
        lm[4] = [0.30, 0.65, z]
    else:
        lm[3] = [0.44, 0.65, z]
        lm[4] = [0.46, 0.62, z]

    for base, finger in zip((5, 9, 13, 17), ("index", "middle", "ring", "pinky")):
        x = _FINGER_X[finger]
        tip_y = _UP_TIP_Y if finger in extended else _DOWN_TIP_Y
        lm[base] = [x, _MCP_Y, z]
        lm[base + 1] = [x, _PIP_Y, z]
        lm[base + 2] = [x, (_PIP_Y + tip_y) / 2.0, z]
        lm[base + 3] = [x, tip_y, z]

    lm[:, 0] += offset[0]
    lm[:, 1] += offset[1]
    return lm


@pytest.fixture
def fresh_config():
    """Empty Config singleton, reset after the test."""
    Config.reset()
    config = Config()
    yield config
    Config.reset()


@pytest.fixture
def event_bus():
    bus = EventBus()
    bus.reset()
    yield bus
    bus.reset()
