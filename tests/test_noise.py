"""
Tests for Simplex Noise
=======================
"""

import numpy as np
import pytest

from particle_hands.modules.noise.simplex import SimplexNoise


class TestSimplexNoise:
    """Test suite for SimplexNoise."""

    @pytest.fixture
    def samples(self):
        rng = np.random.default_rng(0)
        return rng.uniform(-50.0, 50.0, size=(3, 5000))

    def test_deterministic_per_seed(self, samples):
        a = SimplexNoise(seed=42).noise3d(*samples)
        b = SimplexNoise(seed=42).noise3d(*samples)
        np.testing.assert_array_equal(a, b)

    def test_different_seeds_differ(self, samples):
        a = SimplexNoise(seed=1).noise3d(*samples)
        b = SimplexNoise(seed=2).noise3d(*samples)
        assert not np.allclose(a, b)

    def test_bounded(self, samples):
        values = SimplexNoise(seed=3).noise3d(*samples)
        assert np.all(np.isfinite(values))
        assert np.abs(values).max() <= 1.5

    def test_not_constant(self, samples):
        values = SimplexNoise().noise3d(*samples)
        assert values.std() > 0.05

    def test_scalar_input_returns_float(self):
        value = SimplexNoise().noise3d(0.3, 1.7, -2.2)
        assert isinstance(value, float)

    def test_scalar_matches_vector(self):
        noise = SimplexNoise(seed=9)
        xs = np.array([0.1, 2.5, -3.3])
        vector = noise.noise3d(xs, 0.5, 1.5)
        for i, x in enumerate(xs):
            assert noise.noise3d(float(x), 0.5, 1.5) == pytest.approx(vector[i])

    def test_zero_at_lattice_origin(self):
        assert SimplexNoise().noise3d(0.0, 0.0, 0.0) == pytest.approx(0.0)

    def test_continuity(self):
        noise = SimplexNoise(seed=4)
        a = noise.noise3d(1.2345, 2.3456, 3.4567)
        b = noise.noise3d(1.2346, 2.3456, 3.4567)
        assert abs(a - b) < 0.01

    def test_seed_property(self):
        assert SimplexNoise(seed=17).seed == 17
