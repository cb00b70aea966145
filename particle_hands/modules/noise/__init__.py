"""Coherent noise for turbulence."""
from .simplex import SimplexNoise

__all__ = ["SimplexNoise"]
