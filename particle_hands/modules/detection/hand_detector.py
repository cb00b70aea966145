"""
MediaPipe Hands wrapper producing landmark frames for the classifier.
"""

import logging
from typing import Optional

import cv2
import numpy as np

from particle_hands.core.errors import ParticleHandsError
from particle_hands.core.types import LandmarkFrame
from particle_hands.modules.detection.landmark_extractor import LandmarkExtractor

logger = logging.getLogger(__name__)


class HandTrackingError(ParticleHandsError):
    """MediaPipe could not be loaded or the hand model failed to start."""

    category = "tracking"


class HandDetector:
    """Runs MediaPipe Hands on BGR camera frames.

    MediaPipe is imported on ``initialize`` so the rest of the package can
    be used without it.
    """

    def __init__(self, config: dict = None):
        config = config or {}
        self._model_complexity = config.get("model_complexity", 1)
        self._max_hands = config.get("max_num_hands", 1)
        self._min_detect_conf = config.get("min_detection_confidence", 0.7)
        self._min_track_conf = config.get("min_tracking_confidence", 0.5)

        self._mp_hands = None
        self._hands = None
        self._initialized = False

    def initialize(self):
        """Load MediaPipe and build the Hands model.

        Raises:
            HandTrackingError: if MediaPipe is missing or fails to start.
        """
        try:
            import mediapipe as mp

            self._mp_hands = mp.solutions.hands
            self._hands = self._mp_hands.Hands(
                static_image_mode=False,
                model_complexity=self._model_complexity,
                max_num_hands=self._max_hands,
                min_detection_confidence=self._min_detect_conf,
                min_tracking_confidence=self._min_track_conf,
            )
        except (ImportError, AttributeError, OSError, RuntimeError, ValueError) as e:
            logger.error("MediaPipe Hands failed to initialize: %s", e)
            raise HandTrackingError(f"Hand tracking unavailable: {e}") from e
        self._initialized = True
        logger.info(
            "MediaPipe Hands initialized (complexity=%d, max_hands=%d, "
            "detect_conf=%.2f, track_conf=%.2f)",
            self._model_complexity, self._max_hands,
            self._min_detect_conf, self._min_track_conf,
        )

    def detect(self, bgr_frame: np.ndarray) -> Optional[LandmarkFrame]:
        """Landmarks of the first detected hand, or None when no hand is visible."""
        if not self._initialized:
            self.initialize()

        rgb = cv2.cvtColor(bgr_frame, cv2.COLOR_BGR2RGB)
        rgb.flags.writeable = False
        results = self._hands.process(rgb)

        if not results or not results.multi_hand_landmarks:
            return None
        return LandmarkExtractor.from_mediapipe(results.multi_hand_landmarks[0])

    def close(self):
        if self._hands:
            self._hands.close()
            self._hands = None
            self._initialized = False
            logger.info("MediaPipe Hands closed")

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, *args):
        self.close()
