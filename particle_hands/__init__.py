"""
Particle Hands
==============

A gesture-driven 3D particle field: a camera-tracked hand reshapes,
attracts, repels and morphs a cloud of particles between procedural
patterns.

Modules:
    - core: simulation engine, shared types, errors, event bus
    - modules.patterns: pattern generation and transitions
    - modules.physics: per-particle force integration
    - modules.noise: 3D simplex noise
    - modules.detection / recognition: landmarks to gestures
    - modules.capture: OpenCV camera source
    - modules.utils: config, logging, performance monitoring
"""

__version__ = "1.0.0"
