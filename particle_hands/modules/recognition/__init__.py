"""Gesture recognition."""
from .gesture_classifier import GestureClassifier
from .temporal_filter import GestureSmoother

__all__ = ["GestureClassifier", "GestureSmoother"]
