"""
Per-frame simulation engine for the particle field.

Wires the pattern generator, transition interpolator, gesture smoother,
physics simulator and orientation tracker into one pure step:

    (SimulationState, FrameInput) -> (SimulationState, FrameOutput)

Frame order:
    pattern request / smoothed gesture -> (re)start transition
    -> transition blend -> impulses -> physics -> orientation -> display scale

The input state is never modified; every step builds new arrays, so a
published cloud is always the result of a fully completed step.
"""

import logging
from typing import Dict, Optional, Tuple
import numpy as np

from particle_hands.core.types import (
    FrameInput, FrameOutput, GestureType, PatternType,
    PhysicsState, SimulationState, build_gesture_pattern_map,
)
from particle_hands.modules.control.orientation import OrientationTracker
from particle_hands.modules.control.scaling import ScaleTracker
from particle_hands.modules.noise.simplex import SimplexNoise
from particle_hands.modules.patterns.generator import PatternGenerator
from particle_hands.modules.patterns.transition import TransitionConfig, TransitionInterpolator
from particle_hands.modules.physics.simulator import PhysicsParams, PhysicsSimulator
from particle_hands.modules.recognition.temporal_filter import GestureSmoother

logger = logging.getLogger(__name__)


class ParticleEngine:
    """Composable simulation step for the particle field."""

    def __init__(
        self,
        generator: PatternGenerator,
        interpolator: TransitionInterpolator,
        simulator: PhysicsSimulator,
        smoother: GestureSmoother,
        orientation: OrientationTracker,
        gesture_patterns: Optional[Dict[GestureType, Optional[PatternType]]] = None,
        scaler: Optional[ScaleTracker] = None,
    ):
        self._generator = generator
        self._interpolator = interpolator
        self._simulator = simulator
        self._smoother = smoother
        self._orientation = orientation
        self._gesture_patterns = gesture_patterns or build_gesture_pattern_map()
        self._scaler = scaler or ScaleTracker()

    @classmethod
    def from_config(cls, config, rng: Optional[np.random.Generator] = None) -> "ParticleEngine":
        """Build an engine from a loaded Config."""
        particles = config.particles
        physics = config.physics
        if rng is None:
            rng = np.random.default_rng(config.get("random.seed"))
        noise = SimplexNoise(seed=physics.get("noise_seed", 42))
        return cls(
            generator=PatternGenerator(particles, rng=rng),
            interpolator=TransitionInterpolator(TransitionConfig.from_dict(config.transition)),
            simulator=PhysicsSimulator(PhysicsParams.from_dict(physics), noise),
            smoother=GestureSmoother(config.recognition),
            orientation=OrientationTracker(config.orientation),
            gesture_patterns=build_gesture_pattern_map(config.gesture_patterns),
            scaler=ScaleTracker(config.display),
        )

    # =========================================================================
    # State construction
    # =========================================================================

    def initial_state(self, pattern, count: int, scale: float = 1.0) -> SimulationState:
        """A field at rest on a freshly generated cloud."""
        pattern_type = self._generator.resolve(pattern)
        cloud = self._generator.generate(pattern_type, count, scale)
        logger.info("Particle field initialized: %s, %d particles", pattern_type.value, count)
        return SimulationState(
            pattern=pattern_type,
            count=int(count),
            scale=float(scale),
            physics=PhysicsState.at_rest(cloud),
        )

    def restart(self, state: SimulationState) -> SimulationState:
        """Replace the cloud wholesale, e.g. after hand tracking restarts."""
        fresh = self.initial_state(state.pattern, state.count, state.scale)
        return SimulationState(
            pattern=fresh.pattern,
            count=fresh.count,
            scale=fresh.scale,
            physics=fresh.physics,
            orientation=state.orientation,
            display_scale=state.display_scale,
            time=state.time,
            frame=state.frame,
        )

    # =========================================================================
    # Step
    # =========================================================================

    def step(self, state: SimulationState, frame: FrameInput) -> Tuple[SimulationState, FrameOutput]:
        """Advance the field by one frame."""
        gesture = frame.gesture
        history, stable = self._smoother.update(state.gesture_history, gesture.gesture)

        pattern, count, scale = self._select_target(state, frame, stable)

        physics = state.physics
        transition = state.transition
        changed = False

        if count != state.count:
            # Cardinality changed: swap the buffers outright
            cloud = self._generator.generate(pattern, count, scale)
            physics = PhysicsState.at_rest(cloud)
            transition = None
            changed = True
        elif pattern != state.pattern or scale != state.scale:
            target = self._generator.generate(pattern, count, scale)
            transition = self._interpolator.begin(physics.positions, target)
            changed = True

        if changed:
            logger.info("Pattern change: %s -> %s (%d particles)",
                        state.pattern.value, pattern.value, count)

        progress = 1.0
        if transition is not None:
            transition, displayed = self._interpolator.step(transition, frame.time)
            progress = transition.progress
            if transition.complete:
                physics = PhysicsState(displayed, physics.velocities, transition.target)
                transition = None
            else:
                physics = PhysicsState(displayed, physics.velocities, displayed)

        if frame.burst is not None:
            center, strength = frame.burst
            physics = self._simulator.apply_burst(physics, center, strength)
        if frame.gravity:
            physics = self._simulator.apply_gravity_drop(physics, frame.gravity)

        physics = self._simulator.step(physics, gesture, frame.time)
        orientation, delta = self._orientation.update(state.orientation, gesture)
        display_scale = self._scaler.update(state.display_scale, gesture, transition is not None)

        new_state = SimulationState(
            pattern=pattern,
            count=count,
            scale=scale,
            physics=physics,
            transition=transition,
            gesture_history=history,
            stable_gesture=stable,
            orientation=orientation,
            display_scale=display_scale,
            time=frame.time,
            frame=state.frame + 1,
        )

        positions = physics.positions.copy()
        positions.flags.writeable = False
        output = FrameOutput(
            positions=positions,
            gesture=gesture,
            pattern=pattern,
            transitioning=transition is not None,
            progress=progress,
            orientation_delta=delta,
            pattern_changed=changed,
            display_scale=display_scale.current,
        )
        return new_state, output

    def _select_target(self, state: SimulationState, frame: FrameInput,
                       stable: Optional[GestureType]) -> Tuple[PatternType, int, float]:
        """Explicit requests win over gesture-mapped patterns.

        A gesture only selects its pattern when it first becomes stable;
        holding it afterwards leaves the current selection alone.
        """
        request = frame.pattern_request
        if request is not None:
            if isinstance(request.count, bool) or int(request.count) != request.count or request.count <= 0:
                raise ValueError(f"Particle count must be a positive integer, got {request.count!r}")
            return self._generator.resolve(request.pattern), int(request.count), float(request.scale)

        if stable is not None and stable != state.stable_gesture:
            mapped = self._gesture_patterns.get(stable)
            if mapped is not None:
                return mapped, state.count, state.scale

        return state.pattern, state.count, state.scale

    @property
    def gesture_patterns(self) -> Dict[GestureType, Optional[PatternType]]:
        return dict(self._gesture_patterns)
