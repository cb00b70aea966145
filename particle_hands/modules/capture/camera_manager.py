"""
Camera capture for the hand-tracking frame source.

Opening failures are categorised so the frame loop can report whether the
device is missing, held by another process, or blocked by permissions,
and then keep animating without hand input.
"""

import os
import time
import threading
import logging
from dataclasses import dataclass

import cv2

from particle_hands.core.errors import ParticleHandsError

logger = logging.getLogger(__name__)


class CameraError(ParticleHandsError):
    """Camera could not be opened or stopped delivering frames."""

    category = "unavailable"


class CameraPermissionError(CameraError):
    """Access to the video device was denied."""

    category = "permission"


class CameraBusyError(CameraError):
    """The device exists but another process holds it."""

    category = "busy"


@dataclass
class CameraConfig:
    device_id: int = 0
    width: int = 640
    height: int = 480
    fps: int = 30
    flip_horizontal: bool = True
    warmup_frames: int = 5
    max_failed_reads: int = 30

    @classmethod
    def from_dict(cls, config: dict) -> "CameraConfig":
        config = config or {}
        return cls(
            device_id=int(config.get("device_id", 0)),
            width=int(config.get("width", 640)),
            height=int(config.get("height", 480)),
            fps=int(config.get("fps", 30)),
            flip_horizontal=bool(config.get("flip_horizontal", True)),
            warmup_frames=int(config.get("warmup_frames", 5)),
            max_failed_reads=int(config.get("max_failed_reads", 30)),
        )


def classify_open_failure(device_id: int) -> CameraError:
    """Best-effort diagnosis of why VideoCapture refused to open."""
    device_path = f"/dev/video{device_id}"
    if os.path.exists(device_path):
        if not os.access(device_path, os.R_OK | os.W_OK):
            return CameraPermissionError(f"Permission denied for {device_path}")
        return CameraBusyError(f"{device_path} exists but could not be opened (in use?)")
    return CameraError(f"Camera {device_id} not found")


class CameraManager:
    """OpenCV capture with an optional background thread holding the latest frame."""

    def __init__(self, config: CameraConfig):
        self._config = config
        self._cap = None
        self._frame = None
        self._frame_id = 0
        self._failed_reads = 0
        self._lock = threading.Lock()
        self._running = False
        self._thread = None

    def open(self):
        """Open the device.

        Raises:
            CameraError: or a subclass describing the failure.
        """
        cfg = self._config
        self._cap = cv2.VideoCapture(cfg.device_id)
        if not self._cap.isOpened():
            self._cap.release()
            self._cap = None
            error = classify_open_failure(cfg.device_id)
            logger.error("Failed to open camera %d: %s", cfg.device_id, error)
            raise error

        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, cfg.width)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, cfg.height)
        self._cap.set(cv2.CAP_PROP_FPS, cfg.fps)

        actual_w = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        actual_h = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        logger.info("Camera opened: %dx%d (requested %dx%d @ %d)",
                    actual_w, actual_h, cfg.width, cfg.height, cfg.fps)

        for _ in range(cfg.warmup_frames):
            self._cap.read()
        return self

    def start_async(self):
        """Start threaded frame capture."""
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(target=self._capture_loop, daemon=True)
        self._thread.start()
        logger.info("Async capture started")

    def _capture_loop(self):
        while self._running:
            ret, frame = self._cap.read()
            if ret and frame is not None:
                if self._config.flip_horizontal:
                    frame = cv2.flip(frame, 1)
                with self._lock:
                    self._frame = frame
                    self._frame_id += 1
                    self._failed_reads = 0
            else:
                with self._lock:
                    self._failed_reads += 1
                time.sleep(0.01)

    def _check_stalled(self):
        if self._failed_reads >= self._config.max_failed_reads:
            raise CameraError(
                f"Camera {self._config.device_id} stopped delivering frames "
                f"({self._failed_reads} failed reads)"
            )

    def read(self):
        """Latest frame as (frame_id, BGR copy), or (None, None).

        Reads synchronously when no capture thread is running. The frame id
        only advances when the device delivers a new frame.

        Raises:
            CameraError: if the device was never opened, or has failed
                ``max_failed_reads`` reads in a row.
        """
        if self._cap is None:
            raise CameraError("Camera is not open")

        if self._running:
            with self._lock:
                self._check_stalled()
                if self._frame is None:
                    return None, None
                return self._frame_id, self._frame.copy()

        ret, frame = self._cap.read()
        if not ret or frame is None:
            self._failed_reads += 1
            self._check_stalled()
            return None, None
        self._failed_reads = 0
        if self._config.flip_horizontal:
            frame = cv2.flip(frame, 1)
        self._frame_id += 1
        return self._frame_id, frame

    @property
    def resolution(self) -> tuple:
        return (self._config.width, self._config.height)

    @property
    def is_open(self) -> bool:
        return self._cap is not None and self._cap.isOpened()

    def stop(self):
        """Stop capture and release the device."""
        self._running = False
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2.0)
        if self._cap:
            self._cap.release()
            self._cap = None
        logger.info("Camera stopped")

    def __enter__(self):
        return self.open()

    def __exit__(self, *args):
        self.stop()
