"""Hand landmark detection and feature extraction."""
from .landmark_extractor import LandmarkExtractor

__all__ = ["LandmarkExtractor"]
