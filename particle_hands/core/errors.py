"""
Exception hierarchy for the particle field.
"""


class ParticleHandsError(Exception):
    """Base class for all errors raised by particle_hands."""


class UnknownPatternError(ParticleHandsError, ValueError):
    """Raised in strict mode when a pattern name is not recognized."""


class InvalidLandmarkError(ParticleHandsError, ValueError):
    """Raised when a landmark frame is not a finite (21, 3) array."""
