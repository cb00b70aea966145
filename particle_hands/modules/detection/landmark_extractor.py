"""
21-point hand landmark geometry.
Provides the finger-state and continuous features used by the classifier.

Every feature is built from differences between landmarks, so results do
not depend on where the hand sits in the frame.
"""

import logging
import numpy as np

from particle_hands.core.types import NUM_LANDMARKS
from particle_hands.core.errors import InvalidLandmarkError

logger = logging.getLogger(__name__)

# MediaPipe hand landmark indices
WRIST = 0
THUMB_CMC = 1
THUMB_MCP = 2
THUMB_IP = 3
THUMB_TIP = 4
INDEX_MCP = 5
INDEX_PIP = 6
INDEX_DIP = 7
INDEX_TIP = 8
MIDDLE_MCP = 9
MIDDLE_PIP = 10
MIDDLE_DIP = 11
MIDDLE_TIP = 12
RING_MCP = 13
RING_PIP = 14
RING_DIP = 15
RING_TIP = 16
PINKY_MCP = 17
PINKY_PIP = 18
PINKY_DIP = 19
PINKY_TIP = 20

FINGER_TIPS = [THUMB_TIP, INDEX_TIP, MIDDLE_TIP, RING_TIP, PINKY_TIP]
FINGER_BASES = [THUMB_MCP, INDEX_MCP, MIDDLE_MCP, RING_MCP, PINKY_MCP]

# (MCP, PIP, TIP) for the four non-thumb fingers
FINGER_JOINTS = {
    "index":  (INDEX_MCP, INDEX_PIP, INDEX_TIP),
    "middle": (MIDDLE_MCP, MIDDLE_PIP, MIDDLE_TIP),
    "ring":   (RING_MCP, RING_PIP, RING_TIP),
    "pinky":  (PINKY_MCP, PINKY_PIP, PINKY_TIP),
}

PALM_ANCHOR = MIDDLE_MCP
DEPTH_LANDMARKS = [WRIST, INDEX_MCP, MIDDLE_MCP, RING_MCP, PINKY_MCP]

FINGER_MODES = ("wrist", "mcp")

_EPS = 1e-3


class LandmarkExtractor:
    """Extracts geometric features from a (21, 3) landmark array."""

    def __init__(self, config: dict = None):
        config = config or {}
        self._finger_mode = config.get("finger_mode", "wrist")
        if self._finger_mode not in FINGER_MODES:
            logger.warning("Unknown finger_mode %r, using 'wrist'", self._finger_mode)
            self._finger_mode = "wrist"
        self._extension_ratio = config.get("extension_ratio", 1.1)
        self._mcp_ratio = config.get("mcp_ratio", 1.5)
        self._thumb_spread = config.get("thumb_spread", 0.5)
        self._z_near = config.get("depth_z_near", -0.15)
        self._z_far = config.get("depth_z_far", 0.05)

    @staticmethod
    def validate(landmarks) -> np.ndarray:
        """Return ``landmarks`` as a float array, or raise InvalidLandmarkError."""
        arr = np.asarray(landmarks, dtype=np.float64)
        if arr.shape != (NUM_LANDMARKS, 3):
            raise InvalidLandmarkError(
                f"Expected landmarks of shape ({NUM_LANDMARKS}, 3), got {arr.shape}"
            )
        if not np.all(np.isfinite(arr)):
            raise InvalidLandmarkError("Landmarks contain non-finite values")
        return arr

    @staticmethod
    def from_mediapipe(hand_landmarks) -> np.ndarray:
        """Convert MediaPipe landmarks to numpy array of (x, y, z).

        Returns:
            np.ndarray of shape (21, 3) with normalized coordinates
        """
        landmarks = np.zeros((NUM_LANDMARKS, 3), dtype=np.float64)
        for i, lm in enumerate(hand_landmarks.landmark):
            landmarks[i] = [lm.x, lm.y, lm.z]
        return landmarks

    # =========================================================================
    # Finger State Detection
    # =========================================================================

    def get_finger_states(self, landmarks: np.ndarray) -> dict:
        """Determine which fingers are extended.

        Returns:
            dict with finger names -> bool (True = extended)
        """
        states = {"thumb": self.is_thumb_extended(landmarks)}
        for finger, (mcp, pip, tip) in FINGER_JOINTS.items():
            if self._finger_mode == "mcp":
                states[finger] = self._extended_from_mcp(landmarks, mcp, pip, tip)
            else:
                states[finger] = self._extended_from_wrist(landmarks, pip, tip)
        return states

    def _extended_from_wrist(self, landmarks, pip, tip) -> bool:
        """Tip meaningfully farther from the wrist than the PIP joint."""
        wrist = landmarks[WRIST]
        tip_to_wrist = self._distance(landmarks[tip], wrist)
        pip_to_wrist = self._distance(landmarks[pip], wrist)
        return tip_to_wrist > pip_to_wrist * self._extension_ratio

    def _extended_from_mcp(self, landmarks, mcp, pip, tip) -> bool:
        """Tip above the PIP joint and far from the knuckle relative to PIP."""
        above = landmarks[tip][1] < landmarks[pip][1]
        tip_to_mcp = self._distance(landmarks[tip], landmarks[mcp])
        pip_to_mcp = self._distance(landmarks[pip], landmarks[mcp])
        return bool(above and tip_to_mcp > pip_to_mcp * self._mcp_ratio)

    def is_thumb_extended(self, landmarks: np.ndarray) -> bool:
        """Thumb tip spread horizontally away from the index knuckle."""
        spread = abs(landmarks[THUMB_TIP][0] - landmarks[INDEX_MCP][0])
        palm_width = abs(landmarks[INDEX_MCP][0] - landmarks[PINKY_MCP][0])
        return bool(spread > palm_width * self._thumb_spread)

    # =========================================================================
    # Continuous Features
    # =========================================================================

    def get_openness(self, landmarks: np.ndarray) -> float:
        """0 = closed fist, 1 = fully open.

        Average tip-to-wrist over base-to-wrist ratio across all five
        fingers, rescaled from [1.2, 2.7] to [0, 1].
        """
        wrist = landmarks[WRIST]
        tips = landmarks[FINGER_TIPS]
        bases = landmarks[FINGER_BASES]
        tip_dist = np.linalg.norm(tips - wrist, axis=1)
        base_dist = np.linalg.norm(bases - wrist, axis=1)
        extension = float(np.mean(tip_dist / (base_dist + _EPS)))
        return min(1.0, max(0.0, (extension - 1.2) / 1.5))

    def get_palm_anchor(self, landmarks: np.ndarray) -> tuple:
        """2D position of the middle-finger knuckle."""
        anchor = landmarks[PALM_ANCHOR]
        return float(anchor[0]), float(anchor[1])

    def get_depth(self, landmarks: np.ndarray) -> float:
        """Normalized closeness to the camera (1 = near, 0 = far)."""
        avg_z = float(np.mean(landmarks[DEPTH_LANDMARKS, 2]))
        depth = (self._z_far - avg_z) / (self._z_far - self._z_near)
        return min(1.0, max(0.0, depth))

    # =========================================================================
    # Math Helpers
    # =========================================================================

    @staticmethod
    def _distance(p1: np.ndarray, p2: np.ndarray) -> float:
        """Euclidean distance between two 3D points."""
        return float(np.linalg.norm(p1 - p2))
