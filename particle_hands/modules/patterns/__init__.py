"""Procedural point-cloud patterns and morphing between them."""
from .generator import PatternGenerator
from .transition import TransitionConfig, TransitionInterpolator

__all__ = ["PatternGenerator", "TransitionConfig", "TransitionInterpolator"]
