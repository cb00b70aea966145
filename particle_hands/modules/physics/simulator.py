"""
Per-particle physics: spring return, noise turbulence and hand forces.

Every step is a pure function of its inputs. Velocities are updated
first from the summed forces, damped and clamped, then applied to
positions (semi-implicit Euler). All particles are processed in one
vectorized pass, so a returned state is always complete.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple
import numpy as np

from particle_hands.core.types import GestureSnapshot, PhysicsState
from particle_hands.modules.noise.simplex import SimplexNoise

logger = logging.getLogger(__name__)

# Normalized image coords -> world units
_HAND_WORLD_SCALE = 10.0
_NOISE_TIME_SCALE = 0.5
# Per-axis offsets decorrelate the three noise samples
_NOISE_OFFSET_Y = 100.0
_NOISE_OFFSET_X = 200.0
_HAND_Z_FACTOR = 0.3
_HAND_VELOCITY_FACTOR = 0.1
_TURBULENCE_VELOCITY_BOOST = 2.0
_BURST_Z_FACTOR = 0.5


@dataclass
class PhysicsParams:
    """Physics tunables."""
    attraction_strength: float = 0.05
    turbulence_intensity: float = 0.002
    velocity_damping: float = 0.92
    noise_scale: float = 0.3
    return_strength: float = 0.03
    max_velocity: float = 0.5
    min_distance: float = 0.1
    openness_threshold: float = 0.5

    @classmethod
    def from_dict(cls, config: dict) -> "PhysicsParams":
        """Create params from dictionary (YAML parsed)."""
        params = cls(
            attraction_strength=config.get("attraction_strength", 0.05),
            turbulence_intensity=config.get("turbulence_intensity", 0.002),
            velocity_damping=config.get("velocity_damping", 0.92),
            noise_scale=config.get("noise_scale", 0.3),
            return_strength=config.get("return_strength", 0.03),
            max_velocity=config.get("max_velocity", 0.5),
            min_distance=config.get("min_distance", 0.1),
            openness_threshold=config.get("openness_threshold", 0.5),
        )
        params.validate()
        return params

    def validate(self):
        if not 0.0 <= self.velocity_damping < 1.0:
            raise ValueError(f"velocity_damping must be in [0, 1), got {self.velocity_damping}")
        if self.min_distance <= 0:
            raise ValueError(f"min_distance must be positive, got {self.min_distance}")
        if self.max_velocity <= 0:
            raise ValueError(f"max_velocity must be positive, got {self.max_velocity}")


def hand_world_position(position: Tuple[float, float]) -> np.ndarray:
    """Project a normalized 2D hand position into the particle space."""
    return np.array([
        (0.5 - position[0]) * _HAND_WORLD_SCALE,
        (0.5 - position[1]) * _HAND_WORLD_SCALE,
        0.0,
    ])


class PhysicsSimulator:
    """Advances a PhysicsState by one frame."""

    def __init__(self, params: Optional[PhysicsParams] = None,
                 noise: Optional[SimplexNoise] = None):
        self.params = params or PhysicsParams()
        self.params.validate()
        self._noise = noise or SimplexNoise()

    def step(self, state: PhysicsState, gesture: GestureSnapshot, time: float) -> PhysicsState:
        """Compute the next state. ``state`` is left untouched."""
        p = self.params
        positions = state.positions

        force = (state.base - positions) * p.return_strength
        force += self._turbulence(positions, gesture, time)
        if gesture.detected and gesture.position is not None:
            force += self._hand_force(positions, gesture)

        velocities = (state.velocities + force) * p.velocity_damping
        np.clip(velocities, -p.max_velocity, p.max_velocity, out=velocities)

        return PhysicsState(
            positions=positions + velocities,
            velocities=velocities,
            base=state.base,
        )

    def _turbulence(self, positions: np.ndarray, gesture: GestureSnapshot, time: float) -> np.ndarray:
        p = self.params
        if p.turbulence_intensity == 0.0 or len(positions) == 0:
            return np.zeros_like(positions)

        s = positions * p.noise_scale
        x, y, z = s[:, 0], s[:, 1], s[:, 2]
        drift = time * _NOISE_TIME_SCALE
        noise = self._noise.noise3d
        turbulence = np.column_stack([
            noise(x + drift, y, z),
            noise(x, y + drift, z + _NOISE_OFFSET_Y),
            noise(x + _NOISE_OFFSET_X, y, z + drift),
        ])

        boost = 1.0 + gesture.speed * _TURBULENCE_VELOCITY_BOOST
        return turbulence * (p.turbulence_intensity * boost)

    def _hand_force(self, positions: np.ndarray, gesture: GestureSnapshot) -> np.ndarray:
        p = self.params
        to_hand = hand_world_position(gesture.position) - positions
        distance = np.maximum(np.linalg.norm(to_hand, axis=1), p.min_distance)

        # Open hand attracts, closed hand repels
        direction = 1.0 if gesture.openness > p.openness_threshold else -1.0
        magnitude = p.attraction_strength * (1.0 - gesture.openness * 0.5) / (distance * distance)

        force = to_hand / distance[:, None] * (magnitude * direction)[:, None]
        force[:, 2] *= _HAND_Z_FACTOR

        vx, vy = gesture.velocity
        force[:, 0] += vx * _HAND_VELOCITY_FACTOR
        force[:, 1] -= vy * _HAND_VELOCITY_FACTOR
        return force

    # =========================================================================
    # Impulses
    # =========================================================================

    def apply_burst(self, state: PhysicsState, center: Tuple[float, float],
                    strength: float) -> PhysicsState:
        """Push every particle radially away from ``center`` (x, y at z=0)."""
        offset = state.positions - np.array([center[0], center[1], 0.0])
        distance = np.maximum(np.linalg.norm(offset, axis=1), self.params.min_distance)
        impulse = offset / distance[:, None] * (strength / (distance * distance))[:, None]
        impulse[:, 2] *= _BURST_Z_FACTOR
        logger.debug("Burst impulse at (%.2f, %.2f), strength=%.3f", center[0], center[1], strength)
        return PhysicsState(state.positions, state.velocities + impulse, state.base)

    def apply_gravity_drop(self, state: PhysicsState, strength: float) -> PhysicsState:
        """Add a constant downward pull to every velocity."""
        velocities = state.velocities.copy()
        velocities[:, 1] -= strength
        return PhysicsState(state.positions, velocities, state.base)
