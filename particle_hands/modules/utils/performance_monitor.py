"""
Frame loop performance monitoring.
Rolling per-stage latency (classification, transition, physics, render)
plus FPS and skipped-classification counters.
"""

import time
import threading
import logging
from collections import deque
from contextlib import contextmanager

logger = logging.getLogger(__name__)

STAGES = ("capture", "classification", "engine", "render", "total")


class PerformanceMonitor:
    """Tracks FPS and per-stage latency of the frame loop."""

    def __init__(self, window_size=100):
        self._window_size = window_size
        self._lock = threading.Lock()

        self._frame_times = deque(maxlen=window_size)
        self._last_frame_time = None

        self._stage_times = {name: deque(maxlen=window_size) for name in STAGES}

        self._frame_count = 0
        self._skipped_classifications = 0
        self._start_time = time.time()

    @contextmanager
    def measure(self, stage_name: str):
        """Time the enclosed block under ``stage_name``."""
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            with self._lock:
                if stage_name not in self._stage_times:
                    self._stage_times[stage_name] = deque(maxlen=self._window_size)
                self._stage_times[stage_name].append(elapsed_ms)

    def tick(self):
        """Call once per frame."""
        now = time.perf_counter()
        with self._lock:
            if self._last_frame_time is not None:
                self._frame_times.append(now - self._last_frame_time)
            self._last_frame_time = now
            self._frame_count += 1

    def record_skip(self):
        """Record a frame whose classification was throttled."""
        with self._lock:
            self._skipped_classifications += 1

    @property
    def fps(self) -> float:
        with self._lock:
            if len(self._frame_times) < 2:
                return 0.0
            avg_interval = sum(self._frame_times) / len(self._frame_times)
            return 1.0 / avg_interval if avg_interval > 0 else 0.0

    @property
    def frame_count(self) -> int:
        return self._frame_count

    def get_stage_latency(self, stage_name: str) -> float:
        """Average latency for one stage in ms (0.0 if never measured)."""
        with self._lock:
            times = self._stage_times.get(stage_name)
            if not times:
                return 0.0
            return sum(times) / len(times)

    def get_report(self) -> dict:
        uptime = time.time() - self._start_time
        with self._lock:
            latencies = {
                name: (sum(times) / len(times) if times else 0.0)
                for name, times in self._stage_times.items()
            }
        return {
            "fps": round(self.fps, 1),
            "total_frames": self._frame_count,
            "skipped_classifications": self._skipped_classifications,
            "uptime_seconds": round(uptime, 1),
            "latencies_ms": {k: round(v, 3) for k, v in latencies.items()},
        }

    def print_report(self):
        report = self.get_report()
        logger.info("=" * 60)
        logger.info("PERFORMANCE REPORT")
        logger.info("=" * 60)
        logger.info("FPS:            %.1f", report["fps"])
        logger.info("Total Frames:   %d", report["total_frames"])
        logger.info("Skipped Classifications: %d", report["skipped_classifications"])
        logger.info("Uptime:         %.1fs", report["uptime_seconds"])
        logger.info("-" * 40)
        logger.info("Stage Latencies (avg ms):")
        for stage, latency in report["latencies_ms"].items():
            logger.info("  %-18s %7.3f ms", stage, latency)
        logger.info("=" * 60)

    def reset(self):
        with self._lock:
            self._frame_times.clear()
            self._last_frame_time = None
            for times in self._stage_times.values():
                times.clear()
            self._frame_count = 0
            self._skipped_classifications = 0
            self._start_time = time.time()
