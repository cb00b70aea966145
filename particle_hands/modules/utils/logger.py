"""
Structured logging with timing and gesture/pattern event logging.
"""

import os
import logging
import logging.handlers
import time
from collections import deque
from functools import wraps


def setup_logging(level="INFO", log_file=None, max_size_mb=10, backup_count=3):
    """Configure structured logging for the application."""
    # Compact console format
    console_format = "%(asctime)s  %(levelname)-5s  %(message)s"
    # Verbose format for log file
    file_format = "%(asctime)s [%(levelname)-7s] %(name)-25s | %(message)s"
    date_format = "%H:%M:%S"

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Remove existing handlers
    root_logger.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(logging.INFO)
    console.setFormatter(logging.Formatter(console_format, datefmt=date_format))
    root_logger.addHandler(console)

    # File handler (rotating)
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(file_format, datefmt=date_format))
        root_logger.addHandler(file_handler)

    return root_logger


class GestureLogger:
    """Records gesture changes and the pattern switches they trigger."""

    def __init__(self, history_size=500):
        self.logger = logging.getLogger("gesture_events")
        self._history = deque(maxlen=history_size)
        self._last_gesture = None

    def log_gesture(self, gesture_name, openness, confidence):
        """Log a gesture, skipping repeats of the previous one."""
        if gesture_name == self._last_gesture:
            return
        self._last_gesture = gesture_name
        self._history.append({
            "timestamp": time.time(),
            "kind": "gesture",
            "name": gesture_name,
        })
        self.logger.info(
            "Gesture: %-12s | Openness: %.2f | Confidence: %.2f",
            gesture_name, openness, confidence,
        )

    def log_pattern(self, pattern_name, count, source="gesture"):
        """Log a pattern switch."""
        self._history.append({
            "timestamp": time.time(),
            "kind": "pattern",
            "name": pattern_name,
        })
        self.logger.info(
            "Pattern: %-12s | Particles: %d | Source: %s",
            pattern_name, count, source,
        )

    def get_history(self, last_n=None):
        """Get recent event history."""
        history = list(self._history)
        if last_n:
            return history[-last_n:]
        return history

    @property
    def total_events(self):
        return len(self._history)


def log_timing(func):
    """Decorator to log function execution time."""
    logger = logging.getLogger(func.__module__)

    @wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = (time.perf_counter() - start) * 1000
        logger.debug("%s took %.2fms", func.__name__, elapsed)
        return result

    return wrapper
