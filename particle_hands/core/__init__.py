"""Simulation engine, shared types and the event bus."""
from .engine import ParticleEngine
from .events import EventBus, Events
from .errors import ParticleHandsError, UnknownPatternError, InvalidLandmarkError

__all__ = [
    "ParticleEngine",
    "EventBus",
    "Events",
    "ParticleHandsError",
    "UnknownPatternError",
    "InvalidLandmarkError",
]
