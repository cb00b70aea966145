"""Hand-driven cloud orientation and display scale."""
from .orientation import OrientationTracker
from .scaling import ScaleTracker

__all__ = ["OrientationTracker", "ScaleTracker"]
