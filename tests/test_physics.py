"""
Tests for Particle Physics
==========================
"""

import numpy as np
import pytest

from particle_hands.core.types import GestureSnapshot, GestureType, PhysicsState
from particle_hands.modules.noise.simplex import SimplexNoise
from particle_hands.modules.physics.simulator import (
    PhysicsParams, PhysicsSimulator, hand_world_position,
)


def hand(openness, position=(0.5, 0.5), velocity=(0.0, 0.0)):
    return GestureSnapshot(
        detected=True,
        gesture=GestureType.OPEN if openness > 0.5 else GestureType.FIST,
        openness=openness,
        position=position,
        velocity=velocity,
        depth=0.5,
        confidence=1.0,
    )


@pytest.fixture
def calm():
    """Simulator with turbulence disabled."""
    return PhysicsSimulator(PhysicsParams(turbulence_intensity=0.0), SimplexNoise(seed=1))


@pytest.fixture
def single():
    """One particle at rest at x = 3."""
    cloud = np.array([[3.0, 0.0, 0.0]])
    return PhysicsState.at_rest(cloud)


class TestPhysicsParams:

    def test_defaults(self):
        params = PhysicsParams()
        assert params.attraction_strength == 0.05
        assert params.velocity_damping == 0.92
        assert params.max_velocity == 0.5

    def test_from_dict_partial(self):
        params = PhysicsParams.from_dict({"velocity_damping": 0.8})
        assert params.velocity_damping == 0.8
        assert params.return_strength == 0.03

    @pytest.mark.parametrize("bad", [
        {"velocity_damping": 1.0},
        {"velocity_damping": -0.1},
        {"min_distance": 0.0},
        {"max_velocity": -1.0},
    ])
    def test_invalid_values_rejected(self, bad):
        with pytest.raises(ValueError):
            PhysicsParams.from_dict(bad)


class TestPhysicsSimulator:
    """Test suite for PhysicsSimulator."""

    def test_hand_world_position(self):
        np.testing.assert_allclose(hand_world_position((0.5, 0.5)), [0.0, 0.0, 0.0])
        np.testing.assert_allclose(hand_world_position((0.0, 1.0)), [5.0, -5.0, 0.0])

    def test_converges_to_base(self, calm):
        rng = np.random.default_rng(0)
        base = rng.normal(size=(300, 3))
        state = PhysicsState(base + rng.normal(scale=0.5, size=base.shape),
                             np.zeros_like(base), base)
        neutral = GestureSnapshot.neutral()
        for frame in range(600):
            state = calm.step(state, neutral, frame / 60.0)
        np.testing.assert_allclose(state.positions, base, atol=1e-6)
        np.testing.assert_allclose(state.velocities, 0.0, atol=1e-6)

    def test_at_rest_stays_at_rest(self, calm, single):
        state = calm.step(single, GestureSnapshot.neutral(), 0.0)
        np.testing.assert_array_equal(state.positions, single.positions)

    def test_open_hand_attracts(self, calm, single):
        state = calm.step(single, hand(1.0), 0.0)
        assert state.positions[0, 0] < 3.0

    def test_closed_hand_repels(self, calm, single):
        state = calm.step(single, hand(0.0), 0.0)
        assert state.positions[0, 0] > 3.0

    def test_particle_on_hand_stays_finite(self, calm):
        state = PhysicsState.at_rest(np.zeros((4, 3)))
        for _ in range(10):
            state = calm.step(state, hand(0.0), 0.0)
        assert np.all(np.isfinite(state.positions))

    def test_velocity_clamped(self):
        simulator = PhysicsSimulator(PhysicsParams(turbulence_intensity=0.0, attraction_strength=50.0))
        state = PhysicsState.at_rest(np.array([[0.2, 0.0, 0.0]]))
        state = simulator.step(state, hand(1.0), 0.0)
        assert np.all(np.abs(state.velocities) <= 0.5 + 1e-12)

    def test_hand_motion_drags_particles(self, calm, single):
        still = calm.step(single, hand(0.6, velocity=(0.0, 0.0)), 0.0)
        moving = calm.step(single, hand(0.6, velocity=(2.0, 0.0)), 0.0)
        assert moving.positions[0, 0] > still.positions[0, 0]

    def test_step_is_pure(self, single):
        simulator = PhysicsSimulator()
        before = single.positions.copy()
        simulator.step(single, hand(1.0), 1.0)
        np.testing.assert_array_equal(single.positions, before)
        np.testing.assert_array_equal(single.velocities, 0.0)

    def test_turbulence_deterministic_per_seed(self):
        cloud = np.random.default_rng(5).normal(size=(50, 3))
        a = PhysicsSimulator(noise=SimplexNoise(seed=3)).step(
            PhysicsState.at_rest(cloud), GestureSnapshot.neutral(), 2.0)
        b = PhysicsSimulator(noise=SimplexNoise(seed=3)).step(
            PhysicsState.at_rest(cloud), GestureSnapshot.neutral(), 2.0)
        np.testing.assert_array_equal(a.positions, b.positions)
        assert not np.array_equal(a.positions, cloud)

    def test_burst_pushes_outward(self, calm, single):
        state = calm.apply_burst(single, (0.0, 0.0), 0.9)
        assert state.velocities[0, 0] == pytest.approx(0.1)
        np.testing.assert_array_equal(state.positions, single.positions)

    def test_gravity_drop(self, calm, single):
        state = calm.apply_gravity_drop(single, 0.05)
        assert state.velocities[0, 1] == pytest.approx(-0.05)
        assert single.velocities[0, 1] == 0.0
