#!/usr/bin/env python3
"""
Particle Hands - gesture-driven 3D particle field.
Application entry point and frame loop.

Architecture:
    - core.ParticleEngine owns the per-frame simulation step
    - core.EventBus hands finished frames to renderers/status displays
    - camera + MediaPipe feed the classifier at camera cadence
    - a camera failure never stops the loop: the field keeps animating
      with no hand input

Usage:
    particle-hands                        # Live camera control
    particle-hands --mode demo            # Headless, synthetic gestures
    particle-hands --mode benchmark       # Time engine steps
    particle-hands --pattern dna --count 8000
"""

import math
import time
import signal
import argparse
import logging
from typing import Optional

import cv2
import numpy as np

from particle_hands.core.engine import ParticleEngine
from particle_hands.core.events import EventBus, Events
from particle_hands.core.types import (
    FrameInput, FrameOutput, GestureSnapshot, GestureType, PatternRequest, PatternType,
)
from particle_hands.modules.capture.camera_manager import CameraConfig, CameraError, CameraManager
from particle_hands.modules.detection.hand_detector import HandDetector, HandTrackingError
from particle_hands.modules.recognition.gesture_classifier import GestureClassifier
from particle_hands.modules.utils.config import Config
from particle_hands.modules.utils.logger import GestureLogger, setup_logging
from particle_hands.modules.utils.performance_monitor import PerformanceMonitor

logger = logging.getLogger(__name__)

WINDOW_NAME = "Particle Hands"
_PREVIEW_SIZE = 600
_PREVIEW_ZOOM = 60.0
_DEMO_FPS = 60.0
_DEMO_HOLD_FRAMES = 90

# Number keys in the preview window request patterns directly
_PATTERN_KEYS = {ord(str(i + 1)) if i < 9 else ord("0"): p for i, p in enumerate(PatternType)}

_DEMO_SEQUENCE = [
    GestureType.OPEN, GestureType.PEACE, GestureType.POINTING, GestureType.ROCK,
    GestureType.I_LOVE_YOU, GestureType.CALL_ME, GestureType.FIST,
]


def synthetic_gesture(gesture: GestureType, t: float) -> GestureSnapshot:
    """A hand tracing a slow circle while holding ``gesture``."""
    x = 0.5 + 0.2 * math.cos(t * 0.8)
    y = 0.5 + 0.15 * math.sin(t * 0.8)
    vx = -0.16 * math.sin(t * 0.8)
    vy = 0.12 * math.cos(t * 0.8)
    openness = 1.0 if gesture == GestureType.OPEN else 0.2
    return GestureSnapshot(
        detected=True,
        gesture=gesture,
        openness=openness,
        position=(x, y),
        velocity=(vx, vy),
        depth=0.5,
        confidence=1.0,
    )


def render_cloud(positions: np.ndarray, rotation, size: int = _PREVIEW_SIZE,
                 scale: float = 1.0) -> np.ndarray:
    """Orthographic projection of the cloud, rotated about x then y."""
    rx, ry = rotation
    cx, sx = math.cos(rx), math.sin(rx)
    cy, sy = math.cos(ry), math.sin(ry)
    x, y, z = positions[:, 0], positions[:, 1], positions[:, 2]

    y1 = y * cx - z * sx
    z1 = y * sx + z * cx
    x2 = x * cy + z1 * sy
    z2 = -x * sy + z1 * cy

    canvas = np.zeros((size, size, 3), dtype=np.uint8)
    zoom = _PREVIEW_ZOOM * scale
    px = (size / 2 + x2 * zoom).astype(np.int32)
    py = (size / 2 - y1 * zoom).astype(np.int32)
    visible = (px >= 0) & (px < size) & (py >= 0) & (py < size)

    shade = np.clip(180 + z2[visible] * 15, 60, 255).astype(np.uint8)
    canvas[py[visible], px[visible]] = np.stack(
        [shade, (shade * 0.8).astype(np.uint8), np.full_like(shade, 255)], axis=1,
    )
    return canvas


class ParticleHandsApp:
    """Frame loop wiring camera, classifier, engine and event bus."""

    def __init__(self, config: Config, mode: str = "live", preview: bool = True):
        self._config = config
        self._mode = mode
        self._preview = preview
        self._running = False

        self._bus = EventBus()
        self._engine = ParticleEngine.from_config(config)
        self._classifier = GestureClassifier(config.recognition)
        self._perf = PerformanceMonitor()
        self._gesture_logger = GestureLogger()

        self._camera = None
        self._detector = None
        self._process_every_n = max(1, int(config.get("hand_tracking.process_every_n", 1)))

        particles = config.particles
        self._state = self._engine.initial_state(
            particles.get("pattern", "sphere"),
            particles.get("count", 5000),
            particles.get("scale", 1.0),
        )
        self._last_gesture = GestureSnapshot.neutral()
        self._last_frame_id = None
        self._pending_request: Optional[PatternRequest] = None
        self._start_time = time.perf_counter()

        self._bus.subscribe(Events.PATTERN_CHANGED, self._on_pattern_changed)
        self._bus.subscribe(Events.GESTURE_UPDATED, self._on_gesture_updated)

        logger.info("ParticleHandsApp initialized (mode=%s)", mode)

    # =========================================================================
    # Event handlers
    # =========================================================================

    def _on_pattern_changed(self, **kwargs):
        self._gesture_logger.log_pattern(
            kwargs.get("pattern", ""), kwargs.get("count", 0), kwargs.get("source", "gesture"),
        )

    def _on_gesture_updated(self, **kwargs):
        snapshot = kwargs.get("gesture")
        if snapshot is not None and snapshot.detected:
            self._gesture_logger.log_gesture(
                snapshot.gesture.value, snapshot.openness, snapshot.confidence,
            )

    # =========================================================================
    # Frame step
    # =========================================================================

    def request_pattern(self, pattern, count: Optional[int] = None, scale: Optional[float] = None):
        """Queue an explicit pattern selection for the next frame."""
        self._pending_request = PatternRequest(
            pattern=PatternType.from_string(pattern),
            count=self._state.count if count is None else count,
            scale=self._state.scale if scale is None else scale,
        )

    def run_frame(self, gesture: GestureSnapshot, now: float) -> FrameOutput:
        """Advance the engine one frame and publish the result."""
        request, self._pending_request = self._pending_request, None
        frame = FrameInput(gesture=gesture, time=now, pattern_request=request)

        with self._perf.measure("engine"):
            self._state, output = self._engine.step(self._state, frame)

        self._bus.emit(Events.CLOUD_READY, positions=output.positions,
                       frame=self._state.frame, progress=output.progress,
                       display_scale=output.display_scale)
        self._bus.emit(Events.ORIENTATION_CHANGED, delta=output.orientation_delta,
                       rotation=self._state.orientation.rotation)
        if output.pattern_changed:
            self._bus.emit(Events.PATTERN_CHANGED, pattern=output.pattern.value,
                           count=self._state.count,
                           source="request" if request is not None else "gesture")
        return output

    def _classify(self, frame_index: int) -> GestureSnapshot:
        """Classify the latest camera frame, throttled to every n-th frame."""
        if frame_index % self._process_every_n != 0:
            self._perf.record_skip()
            return self._last_gesture

        with self._perf.measure("capture"):
            frame_id, image = self._camera.read()
        if image is None:
            return self._last_gesture
        if frame_id == self._last_frame_id:
            # No new camera frame since the last classification
            self._perf.record_skip()
            return self._last_gesture
        self._last_frame_id = frame_id

        with self._perf.measure("classification"):
            landmarks = self._detector.detect(image)
            was_detected = self._classifier.detected
            snapshot = self._classifier.classify(landmarks)

        if snapshot.detected and not was_detected:
            self._bus.emit(Events.HAND_DETECTED)
        elif was_detected and not snapshot.detected:
            self._bus.emit(Events.HAND_LOST)
        self._bus.emit(Events.GESTURE_UPDATED, gesture=snapshot)
        self._last_gesture = snapshot
        return snapshot

    # =========================================================================
    # Modes
    # =========================================================================

    def start(self, max_frames: Optional[int] = None):
        self._running = True
        self._bus.emit(Events.SYSTEM_STARTED, mode=self._mode)
        logger.info("Starting main loop (mode=%s)", self._mode)
        try:
            if self._mode == "benchmark":
                self._run_benchmark(max_frames or 300)
            elif self._mode == "demo":
                self._run_demo(max_frames)
            else:
                self._run_live(max_frames)
        finally:
            self._shutdown()

    def _open_camera(self) -> bool:
        self._camera = CameraManager(CameraConfig.from_dict(self._config.camera))
        try:
            self._camera.open()
        except CameraError as e:
            self._camera = None
            self._report_input_failure(e)
            return False

        self._detector = HandDetector(self._config.hand_tracking)
        try:
            self._detector.initialize()
        except HandTrackingError as e:
            self._detector = None
            self._report_input_failure(e)
            return False

        self._camera.start_async()
        return True

    def _report_input_failure(self, error):
        """Publish a camera/tracking failure and fall back to no hand input."""
        logger.error("Hand input unavailable (%s): %s; continuing without hand input",
                     error.category, error)
        self._bus.emit(Events.CAMERA_ERROR, category=error.category, message=str(error))

        if self._classifier.detected:
            self._bus.emit(Events.HAND_LOST)
        self._classifier.reset()
        self._last_gesture = GestureSnapshot.neutral()
        self._last_frame_id = None
        if self._camera is not None:
            self._camera.stop()
            self._camera = None

    def _run_live(self, max_frames: Optional[int]):
        has_camera = self._open_camera()
        frame_index = 0
        while self._running and (max_frames is None or frame_index < max_frames):
            with self._perf.measure("total"):
                now = time.perf_counter() - self._start_time
                if has_camera:
                    try:
                        gesture = self._classify(frame_index)
                    except (CameraError, HandTrackingError) as e:
                        self._report_input_failure(e)
                        gesture = GestureSnapshot.neutral()
                        has_camera = False
                else:
                    gesture = GestureSnapshot.neutral()
                output = self.run_frame(gesture, now)

                if self._preview:
                    with self._perf.measure("render"):
                        self._show(output)
            self._perf.tick()
            frame_index += 1

    def _run_demo(self, max_frames: Optional[int]):
        logger.info("=== DEMO MODE === cycling %d gestures", len(_DEMO_SEQUENCE))
        frame_index = 0
        while self._running and (max_frames is None or frame_index < max_frames):
            t = frame_index / _DEMO_FPS
            gesture_type = _DEMO_SEQUENCE[(frame_index // _DEMO_HOLD_FRAMES) % len(_DEMO_SEQUENCE)]
            gesture = synthetic_gesture(gesture_type, t)
            if frame_index % _DEMO_HOLD_FRAMES == 0:
                self._bus.emit(Events.GESTURE_UPDATED, gesture=gesture)

            with self._perf.measure("total"):
                output = self.run_frame(gesture, t)
                if self._preview:
                    self._show(output)
            self._perf.tick()
            frame_index += 1

    def _run_benchmark(self, frames: int):
        logger.info("=== BENCHMARK MODE === %d frames, %d particles", frames, self._state.count)
        patterns = list(PatternType)
        for i in range(frames):
            if i % 60 == 0:
                self.request_pattern(patterns[(i // 60) % len(patterns)])
            gesture = synthetic_gesture(GestureType.OPEN, i / _DEMO_FPS)
            with self._perf.measure("total"):
                self.run_frame(gesture, i / _DEMO_FPS)
            self._perf.tick()
            if i % 50 == 0:
                logger.info("Benchmark progress: %d/%d (engine: %.2f ms)",
                            i, frames, self._perf.get_stage_latency("engine"))
            if not self._running:
                break

    def _show(self, output: FrameOutput):
        canvas = render_cloud(output.positions, self._state.orientation.rotation,
                              scale=output.display_scale)
        label = f"{output.pattern.value}  {output.gesture.gesture.value}"
        if output.transitioning:
            label += f"  {output.progress * 100:.0f}%"
        cv2.putText(canvas, label, (10, 24), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (200, 200, 200), 1)
        cv2.imshow(WINDOW_NAME, canvas)

        key = cv2.waitKey(1) & 0xFF
        if key == ord("q"):
            self._running = False
        elif key == ord("p"):
            self._perf.print_report()
        elif key == ord("r"):
            self._state = self._engine.restart(self._state)
        elif key in _PATTERN_KEYS:
            self.request_pattern(_PATTERN_KEYS[key])

    def _shutdown(self):
        logger.info("Shutting down...")
        self._running = False
        if self._camera is not None:
            self._camera.stop()
        if self._detector is not None:
            self._detector.close()
        if self._preview:
            cv2.destroyAllWindows()
        self._bus.emit(Events.SYSTEM_SHUTDOWN)
        self._perf.print_report()
        logger.info("Shutdown complete. %d gesture/pattern events logged.",
                    self._gesture_logger.total_events)

    def handle_signal(self, signum, frame):
        """Handle SIGINT/SIGTERM for graceful shutdown."""
        logger.info("Signal %d received, shutting down...", signum)
        self._running = False

    @property
    def state(self):
        return self._state


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Particle Hands - gesture-driven 3D particle field"
    )
    parser.add_argument(
        "--mode", choices=["live", "demo", "benchmark"],
        default="live", help="Operating mode"
    )
    parser.add_argument("--config", type=str, default=None, help="Path to config.yaml")
    parser.add_argument("--gestures", type=str, default=None, help="Path to gestures.yaml")
    parser.add_argument("--camera", type=int, default=None, help="Camera device ID")
    parser.add_argument("--pattern", type=str, default=None, help="Initial pattern name")
    parser.add_argument("--count", type=int, default=None, help="Number of particles")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for pattern sampling")
    parser.add_argument("--frames", type=int, default=None,
                        help="Stop after this many frames")
    parser.add_argument("--no-preview", action="store_true",
                        help="Do not open the OpenCV preview window")
    return parser.parse_args(argv)


def _cli_overrides(args) -> dict:
    overrides = {}
    if args.camera is not None:
        overrides.setdefault("camera", {})["device_id"] = args.camera
    if args.pattern is not None:
        overrides.setdefault("particles", {})["pattern"] = args.pattern
    if args.count is not None:
        overrides.setdefault("particles", {})["count"] = args.count
    if args.seed is not None:
        overrides.setdefault("random", {})["seed"] = args.seed
    return overrides


def main(argv=None):
    args = parse_args(argv)

    config = Config()
    config.load(config_path=args.config, gestures_path=args.gestures)
    config.update(_cli_overrides(args))

    log_cfg = config.get_section("logging")
    setup_logging(
        level=log_cfg.get("level", "INFO"),
        log_file=log_cfg.get("file"),
        max_size_mb=log_cfg.get("max_size_mb", 10),
        backup_count=log_cfg.get("backup_count", 3),
    )

    logger.info("=" * 60)
    logger.info("  PARTICLE HANDS")
    logger.info("  Version: %s", config.get("system.version", "1.0.0"))
    logger.info("  Mode: %s", args.mode)
    logger.info("=" * 60)

    preview = not args.no_preview and args.mode != "benchmark"
    app = ParticleHandsApp(config, mode=args.mode, preview=preview)

    signal.signal(signal.SIGINT, app.handle_signal)
    signal.signal(signal.SIGTERM, app.handle_signal)

    app.start(max_frames=args.frames)


if __name__ == "__main__":
    main()
