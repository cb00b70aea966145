"""
Tests for Camera Module
=======================
"""

import time
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from particle_hands.core.errors import ParticleHandsError
from particle_hands.modules.capture import camera_manager
from particle_hands.modules.capture.camera_manager import (
    CameraBusyError, CameraConfig, CameraError, CameraManager, CameraPermissionError,
    classify_open_failure,
)


class TestCameraConfig:
    """Test suite for CameraConfig."""

    def test_default_values(self):
        config = CameraConfig()
        assert config.device_id == 0
        assert config.width == 640
        assert config.height == 480
        assert config.fps == 30

    def test_from_dict_partial(self):
        config = CameraConfig.from_dict({"device_id": 2})
        assert config.device_id == 2
        assert config.width == 640

    def test_from_none(self):
        assert CameraConfig.from_dict(None) == CameraConfig()


class TestOpenFailureCategories:

    def test_missing_device(self):
        with patch.object(camera_manager.os.path, "exists", return_value=False):
            error = classify_open_failure(3)
        assert type(error) is CameraError
        assert error.category == "unavailable"

    def test_permission_denied(self):
        with patch.object(camera_manager.os.path, "exists", return_value=True), \
                patch.object(camera_manager.os, "access", return_value=False):
            error = classify_open_failure(0)
        assert isinstance(error, CameraPermissionError)
        assert error.category == "permission"

    def test_busy(self):
        with patch.object(camera_manager.os.path, "exists", return_value=True), \
                patch.object(camera_manager.os, "access", return_value=True):
            error = classify_open_failure(0)
        assert isinstance(error, CameraBusyError)
        assert error.category == "busy"

    def test_hierarchy(self):
        assert issubclass(CameraPermissionError, CameraError)
        assert issubclass(CameraBusyError, CameraError)
        assert issubclass(CameraError, ParticleHandsError)


class TestCameraManager:
    """Test suite for CameraManager."""

    @pytest.fixture
    def mock_cv2(self):
        """Mock OpenCV VideoCapture."""
        with patch("particle_hands.modules.capture.camera_manager.cv2") as mock:
            mock_cap = MagicMock()
            mock_cap.isOpened.return_value = True
            mock_cap.read.return_value = (True, np.zeros((480, 640, 3), dtype=np.uint8))
            mock_cap.get.return_value = 640.0
            mock.VideoCapture.return_value = mock_cap
            mock.flip.side_effect = lambda frame, code: frame
            yield mock

    def test_open_success(self, mock_cv2):
        camera = CameraManager(CameraConfig(warmup_frames=2))
        camera.open()
        assert camera.is_open
        assert mock_cv2.VideoCapture.return_value.read.call_count == 2
        camera.stop()
        assert not camera.is_open

    def test_open_failure_raises_category(self, mock_cv2):
        mock_cv2.VideoCapture.return_value.isOpened.return_value = False
        camera = CameraManager(CameraConfig(device_id=0))
        with patch.object(camera_manager.os.path, "exists", return_value=True), \
                patch.object(camera_manager.os, "access", return_value=False):
            with pytest.raises(CameraPermissionError):
                camera.open()
        assert not camera.is_open

    def test_sync_read(self, mock_cv2):
        camera = CameraManager(CameraConfig(warmup_frames=0))
        camera.open()
        frame_id, frame = camera.read()
        assert frame_id == 1
        assert frame.shape == (480, 640, 3)
        mock_cv2.flip.assert_called_once()
        camera.stop()

    def test_failed_read_returns_none(self, mock_cv2):
        mock_cv2.VideoCapture.return_value.read.return_value = (False, None)
        camera = CameraManager(CameraConfig(warmup_frames=0))
        camera.open()
        assert camera.read() == (None, None)
        camera.stop()

    def test_repeated_failures_raise(self, mock_cv2):
        mock_cv2.VideoCapture.return_value.read.return_value = (False, None)
        camera = CameraManager(CameraConfig(warmup_frames=0, max_failed_reads=3))
        camera.open()
        assert camera.read() == (None, None)
        assert camera.read() == (None, None)
        with pytest.raises(CameraError, match="stopped delivering"):
            camera.read()
        camera.stop()

    def test_good_frame_resets_failure_count(self, mock_cv2):
        good = (True, np.zeros((4, 4, 3), dtype=np.uint8))
        mock_cv2.VideoCapture.return_value.read.side_effect = [
            (False, None), (False, None), good, (False, None), (False, None), good,
        ]
        camera = CameraManager(CameraConfig(warmup_frames=0, max_failed_reads=3))
        camera.open()
        ids = [camera.read()[0] for _ in range(6)]
        assert ids == [None, None, 1, None, None, 2]
        camera.stop()

    def test_async_capture_stall_raises(self, mock_cv2):
        frames = iter([(True, np.ones((4, 4, 3), dtype=np.uint8))])
        mock_cv2.VideoCapture.return_value.read.side_effect = lambda: next(frames, (False, None))
        camera = CameraManager(CameraConfig(warmup_frames=0, max_failed_reads=3))
        camera.open()
        camera.start_async()

        deadline = time.monotonic() + 2.0
        seen = set()
        with pytest.raises(CameraError):
            while time.monotonic() < deadline:
                frame_id, _ = camera.read()
                seen.add(frame_id)
                time.sleep(0.005)
        camera.stop()
        # The last good frame is never served with a new id
        assert seen <= {None, 1}

    def test_read_before_open_raises(self):
        with pytest.raises(CameraError):
            CameraManager(CameraConfig()).read()

    def test_resolution_property(self):
        camera = CameraManager(CameraConfig(width=800, height=600))
        assert camera.resolution == (800, 600)

    def test_context_manager(self, mock_cv2):
        with CameraManager(CameraConfig(warmup_frames=0)) as camera:
            assert camera.is_open
        assert not camera.is_open


class TestHandDetector:
    """HandDetector with MediaPipe mocked out."""

    @pytest.fixture
    def mock_mp(self):
        mp = MagicMock()
        with patch.dict("sys.modules", {"mediapipe": mp}):
            yield mp

    @staticmethod
    def _result(points):
        hand = MagicMock()
        hand.landmark = [MagicMock(x=x, y=y, z=z) for x, y, z in points]
        result = MagicMock()
        result.multi_hand_landmarks = [hand]
        return result

    def test_detect_returns_landmark_frame(self, mock_mp):
        from particle_hands.modules.detection.hand_detector import HandDetector

        points = [(i / 21.0, 0.5, -0.01 * i) for i in range(21)]
        mock_mp.solutions.hands.Hands.return_value.process.return_value = self._result(points)
        detector = HandDetector({"max_num_hands": 1})
        landmarks = detector.detect(np.zeros((48, 64, 3), dtype=np.uint8))

        assert landmarks.shape == (21, 3)
        np.testing.assert_allclose(landmarks[5], points[5])
        mock_mp.solutions.hands.Hands.assert_called_once()

    def test_no_hand_returns_none(self, mock_mp):
        from particle_hands.modules.detection.hand_detector import HandDetector

        result = MagicMock()
        result.multi_hand_landmarks = None
        mock_mp.solutions.hands.Hands.return_value.process.return_value = result
        with HandDetector() as detector:
            assert detector.detect(np.zeros((48, 64, 3), dtype=np.uint8)) is None
        mock_mp.solutions.hands.Hands.return_value.close.assert_called_once()

    def test_missing_mediapipe_raises_tracking_error(self):
        from particle_hands.modules.detection.hand_detector import HandDetector, HandTrackingError

        with patch.dict("sys.modules", {"mediapipe": None}):
            with pytest.raises(HandTrackingError) as excinfo:
                HandDetector().initialize()
        assert excinfo.value.category == "tracking"
        assert isinstance(excinfo.value.__cause__, ImportError)

    def test_model_start_failure_raises_tracking_error(self, mock_mp):
        from particle_hands.modules.detection.hand_detector import HandDetector, HandTrackingError

        mock_mp.solutions.hands.Hands.side_effect = RuntimeError("model file missing")
        with pytest.raises(HandTrackingError, match="model file missing"):
            HandDetector().initialize()
