"""Particle physics."""
from .simulator import PhysicsParams, PhysicsSimulator

__all__ = ["PhysicsParams", "PhysicsSimulator"]
