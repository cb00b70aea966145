"""
Eased blending between two point clouds of equal size.

The blend uses exponential ease-out, which is monotonic and never leaves
the [source, target] interval on any axis. Optional staggered arrival and
swirl offsets give a "construction" look during pattern changes.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple
import numpy as np

from particle_hands.core.types import PointCloud, TransitionState

logger = logging.getLogger(__name__)

# Per-frame progress increments
SPEED_PROFILES = {
    "fast": 0.05,
    "normal": 0.03,
    "organic": 0.015,
}

_STAGGER_SPAN = 0.2
_SWIRL_AMPLITUDE = 0.5


def ease_out_expo(progress):
    """1 - 2^(-10p) for p < 1, exactly 1 at p >= 1. Works on arrays."""
    p = np.clip(progress, 0.0, 1.0)
    return np.where(p >= 1.0, 1.0, 1.0 - np.power(2.0, -10.0 * p))


@dataclass
class TransitionConfig:
    """Transition tunables."""
    profile: str = "normal"
    speed: Optional[float] = None   # overrides the profile increment
    stagger: bool = False
    swirl: bool = False

    @classmethod
    def from_dict(cls, config: dict) -> "TransitionConfig":
        """Create config from dictionary (YAML parsed)."""
        return cls(
            profile=config.get("profile", "normal"),
            speed=config.get("speed"),
            stagger=config.get("stagger", False),
            swirl=config.get("swirl", False),
        )

    @property
    def increment(self) -> float:
        if self.speed is not None:
            return float(self.speed)
        if self.profile not in SPEED_PROFILES:
            logger.warning("Unknown transition profile %r, using 'normal'", self.profile)
        return SPEED_PROFILES.get(self.profile, SPEED_PROFILES["normal"])


class TransitionInterpolator:
    """Advances a TransitionState and produces the displayed cloud."""

    def __init__(self, config: Optional[TransitionConfig] = None):
        self.config = config or TransitionConfig()
        if not self.config.increment > 0:
            raise ValueError(f"Transition speed must be positive, got {self.config.increment!r}")

    def begin(self, source: PointCloud, target: PointCloud) -> TransitionState:
        """Start a new transition at progress 0."""
        source = np.asarray(source, dtype=np.float64)
        target = np.asarray(target, dtype=np.float64)
        if source.shape != target.shape:
            raise ValueError(
                f"Cannot blend clouds of different shapes: {source.shape} vs {target.shape}"
            )
        return TransitionState(source=source, target=target, progress=0.0)

    def step(self, state: TransitionState, time: float = 0.0) -> Tuple[TransitionState, PointCloud]:
        """Advance progress by one frame and return the blended cloud.

        Returns:
            (new_state, displayed); displayed equals ``target`` once
            progress reaches 1.
        """
        progress = min(1.0, state.progress + self.config.increment)
        new_state = TransitionState(state.source, state.target, progress)
        return new_state, self.blend(new_state, time)

    def blend(self, state: TransitionState, time: float = 0.0) -> PointCloud:
        """Blend source and target at the state's current progress."""
        source, target = state.source, state.target
        count = len(source)
        if state.complete:
            return np.array(target, dtype=np.float64)

        if self.config.stagger and count > 0:
            # Later particles arrive slightly later
            order = np.arange(count) / count
            local = np.clip(state.progress * (1.0 + _STAGGER_SPAN) - order * _STAGGER_SPAN, 0.0, 1.0)
            eased = ease_out_expo(local)[:, None]
        else:
            eased = ease_out_expo(state.progress)

        displayed = source + (target - source) * eased

        if self.config.swirl and state.progress < 1.0:
            swirl = np.sin(time * 2.0 + np.arange(count)) * _SWIRL_AMPLITUDE
            swirl = swirl[:, None] * (1.0 - np.broadcast_to(eased, (count, 1)))
            displayed = displayed + swirl

        return displayed

    @staticmethod
    def is_complete(state: Optional[TransitionState]) -> bool:
        return state is None or state.complete
