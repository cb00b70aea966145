"""
Shared domain types for the gesture-driven particle field.

Centralizes enums, data classes, and type definitions used across modules
to eliminate circular imports and ensure type consistency.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Tuple
import numpy as np

from particle_hands.core.errors import UnknownPatternError

logger = logging.getLogger(__name__)

# (N, 3) float64 arrays. Aliases document intent at call sites.
PointCloud = np.ndarray
VelocityField = np.ndarray
LandmarkFrame = np.ndarray

NUM_LANDMARKS = 21


# =============================================================================
# Pattern Types
# =============================================================================

class PatternType(Enum):
    """All procedurally generated point-cloud patterns."""
    SPHERE = "sphere"
    HELIX = "helix"
    GALAXY = "galaxy"
    CUBE = "cube"
    DNA = "dna"
    TORUS = "torus"
    HEART = "heart"
    STAR = "star"
    BURST = "burst"
    LOVE = "love"

    @classmethod
    def from_string(cls, name, strict: bool = False) -> 'PatternType':
        """Convert a pattern name to PatternType.

        Unknown names fall back to SPHERE with a warning unless ``strict``
        is set, in which case UnknownPatternError is raised.
        """
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).strip().lower().replace("-", "_"))
        except ValueError:
            # "love-text" is accepted as an alias of LOVE
            if str(name).strip().lower() in ("love_text", "love-text"):
                return cls.LOVE
            if strict:
                raise UnknownPatternError(f"Unknown pattern type: {name!r}")
            logger.warning("Unknown pattern type %r, falling back to sphere", name)
            return cls.SPHERE


# =============================================================================
# Gesture Types
# =============================================================================

class GestureType(Enum):
    """Discrete gestures produced by the rule-based classifier."""
    NONE = "none"
    OPEN = "open"
    FIST = "fist"
    PEACE = "peace"
    POINTING = "pointing"
    ROCK = "rock"
    I_LOVE_YOU = "i_love_you"
    CALL_ME = "call_me"

    @classmethod
    def from_string(cls, name: str) -> 'GestureType':
        """Convert a string gesture name to GestureType enum, safely."""
        try:
            return cls(name)
        except ValueError:
            return cls.NONE


# =============================================================================
# Gesture -> Pattern Mapping
# =============================================================================

# Every GestureType must appear here; None means "keep the current pattern".
GESTURE_PATTERN_MAP: Dict[GestureType, Optional[PatternType]] = {
    GestureType.NONE: None,
    GestureType.OPEN: PatternType.GALAXY,
    GestureType.FIST: PatternType.BURST,
    GestureType.PEACE: PatternType.HEART,
    GestureType.POINTING: PatternType.STAR,
    GestureType.ROCK: PatternType.DNA,
    GestureType.I_LOVE_YOU: PatternType.LOVE,
    GestureType.CALL_ME: PatternType.TORUS,
}

_missing = set(GestureType) - set(GESTURE_PATTERN_MAP)
if _missing:
    raise RuntimeError(
        "GESTURE_PATTERN_MAP is missing gestures: %s"
        % sorted(g.value for g in _missing)
    )


def build_gesture_pattern_map(overrides: Optional[dict] = None) -> Dict[GestureType, Optional[PatternType]]:
    """Merge string-keyed overrides (from gestures.yaml) into the default map.

    Unknown gesture or pattern names are logged and skipped.
    """
    mapping = dict(GESTURE_PATTERN_MAP)
    for gesture_name, pattern_name in (overrides or {}).items():
        gesture = GestureType.from_string(str(gesture_name))
        if gesture == GestureType.NONE and gesture_name != GestureType.NONE.value:
            logger.warning("Ignoring mapping for unknown gesture %r", gesture_name)
            continue
        if pattern_name is None:
            mapping[gesture] = None
            continue
        try:
            mapping[gesture] = PatternType(str(pattern_name))
        except ValueError:
            logger.warning("Ignoring mapping %s -> unknown pattern %r",
                           gesture.value, pattern_name)
    return mapping


# =============================================================================
# Data Containers
# =============================================================================

@dataclass(frozen=True)
class GestureSnapshot:
    """Per-frame classifier output: discrete gesture plus continuous features."""
    detected: bool
    gesture: GestureType
    openness: float
    position: Optional[Tuple[float, float]]
    velocity: Tuple[float, float]
    depth: float
    confidence: float

    @classmethod
    def neutral(cls) -> 'GestureSnapshot':
        """Snapshot for frames without a hand."""
        return cls(
            detected=False,
            gesture=GestureType.NONE,
            openness=0.5,
            position=None,
            velocity=(0.0, 0.0),
            depth=0.5,
            confidence=0.0,
        )

    @property
    def speed(self) -> float:
        return float(np.hypot(self.velocity[0], self.velocity[1]))


@dataclass(frozen=True)
class TransitionState:
    """In-flight blend from ``source`` to ``target``."""
    source: PointCloud
    target: PointCloud
    progress: float = 0.0

    @property
    def complete(self) -> bool:
        return self.progress >= 1.0


@dataclass(frozen=True)
class PhysicsState:
    """Positions, velocities and rest positions of every particle."""
    positions: PointCloud
    velocities: VelocityField
    base: PointCloud

    @classmethod
    def at_rest(cls, cloud: PointCloud) -> 'PhysicsState':
        return cls(
            positions=np.array(cloud, dtype=np.float64),
            velocities=np.zeros_like(cloud, dtype=np.float64),
            base=np.array(cloud, dtype=np.float64),
        )

    @property
    def count(self) -> int:
        return int(self.positions.shape[0])


@dataclass(frozen=True)
class OrientationState:
    """Accumulated rotation of the cloud (radians) and its angular velocity."""
    rotation: Tuple[float, float] = (0.0, 0.0)
    velocity: Tuple[float, float] = (0.0, 0.0)
    last_position: Optional[Tuple[float, float]] = None


@dataclass(frozen=True)
class ScaleState:
    """Rendered size of the cloud and the size it is easing toward."""
    current: float = 1.0
    target: float = 1.0


@dataclass(frozen=True)
class PatternRequest:
    """Explicit pattern selection from a UI collaborator."""
    pattern: PatternType
    count: int
    scale: float = 1.0


@dataclass(frozen=True)
class FrameInput:
    """Everything the engine reads at the start of a step."""
    gesture: GestureSnapshot = field(default_factory=GestureSnapshot.neutral)
    time: float = 0.0
    pattern_request: Optional[PatternRequest] = None
    burst: Optional[Tuple[Tuple[float, float], float]] = None
    gravity: float = 0.0


@dataclass(frozen=True)
class SimulationState:
    """Complete cross-frame state of the particle field."""
    pattern: PatternType
    count: int
    scale: float
    physics: PhysicsState
    transition: Optional[TransitionState] = None
    gesture_history: Tuple[GestureType, ...] = ()
    stable_gesture: Optional[GestureType] = None
    orientation: OrientationState = field(default_factory=OrientationState)
    display_scale: ScaleState = field(default_factory=ScaleState)
    time: float = 0.0
    frame: int = 0

    @property
    def transitioning(self) -> bool:
        return self.transition is not None


@dataclass(frozen=True)
class FrameOutput:
    """What the engine publishes after a completed step."""
    positions: PointCloud
    gesture: GestureSnapshot
    pattern: PatternType
    transitioning: bool
    progress: float
    orientation_delta: Tuple[float, float]
    pattern_changed: bool = False
    display_scale: float = 1.0

    def __repr__(self):
        return (f"FrameOutput({self.pattern.value}, n={len(self.positions)}, "
                f"progress={self.progress:.2f})")
