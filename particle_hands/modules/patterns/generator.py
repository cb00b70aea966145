"""
Procedural point-cloud generation for every named pattern.

Each pattern is a fixed geometric rule evaluated per particle with fresh
draws from an injected numpy Generator. Pass a seeded generator for
reproducible clouds; production wiring uses an OS-entropy seed.
"""

import math
import logging
from typing import Callable, Dict, Optional
import numpy as np

from particle_hands.core.types import PatternType, PointCloud
from particle_hands.modules.utils.logger import log_timing

logger = logging.getLogger(__name__)

TWO_PI = 2.0 * math.pi

# Base radius of most patterns before scaling
_RADIUS = 3.0


def _uniform_directions(rng: np.random.Generator, count: int) -> np.ndarray:
    """Unit vectors uniformly distributed on the sphere, shape (count, 3)."""
    theta = rng.random(count) * TWO_PI
    phi = np.arccos(2.0 * rng.random(count) - 1.0)
    return np.column_stack([
        np.sin(phi) * np.cos(theta),
        np.sin(phi) * np.sin(theta),
        np.cos(phi),
    ])


def _centered(rng: np.random.Generator, count: int) -> np.ndarray:
    """Uniform draws in [-0.5, 0.5)."""
    return rng.random(count) - 0.5


# =============================================================================
# Pattern rules
# =============================================================================

def _sphere(rng, count, scale):
    r = np.cbrt(rng.random(count)) * _RADIUS * scale
    return _uniform_directions(rng, count) * r[:, None]


def _helix(rng, count, scale):
    turns = 5
    height = 6.0 * scale
    radius = 2.0 * scale

    t = np.arange(count) / count
    angle = t * turns * TWO_PI
    y = (t - 0.5) * height
    r = radius + _centered(rng, count) * 0.5 * scale
    noise = _centered(rng, count) * 0.3 * scale

    return np.column_stack([
        np.cos(angle) * r + noise,
        y + noise,
        np.sin(angle) * r + noise,
    ])


def _galaxy(rng, count, scale):
    arms = 3
    spin = 2.0

    arm_index = np.arange(count) % arms
    base_angle = arm_index / arms * TWO_PI
    distance = rng.random(count) * 4.0 * scale
    angle = base_angle + distance * spin + _centered(rng, count) * 0.5

    # Arms thin out exponentially away from the core
    arm_width = 0.3 * scale * np.exp(-distance * 0.3)
    offset_x = _centered(rng, count) * arm_width * 2.0
    offset_z = _centered(rng, count) * arm_width * 2.0
    offset_y = _centered(rng, count) * 0.2 * scale * np.exp(-distance * 0.5)

    return np.column_stack([
        np.cos(angle) * distance + offset_x,
        offset_y,
        np.sin(angle) * distance + offset_z,
    ])


def _cube(rng, count, scale):
    size = _RADIUS * scale
    points = rng.random((count, 3)) - 0.5
    face = rng.integers(0, 6, count)
    axis = face // 2
    side = np.where(face % 2 == 0, -0.5, 0.5)
    points[np.arange(count), axis] = side
    return points * size


def _dna(rng, count, scale):
    turns = 4
    height = 8.0 * scale
    radius = 1.5 * scale
    bridges = turns * 10

    per_strand = int(count * 0.4)
    bridge_count = count - 2 * per_strand

    def strand(phase):
        t = np.arange(per_strand) / max(per_strand, 1)
        angle = t * turns * TWO_PI + phase
        return np.column_stack([
            np.cos(angle) * radius + _centered(rng, per_strand) * 0.2 * scale,
            (t - 0.5) * height + _centered(rng, per_strand) * 0.1 * scale,
            np.sin(angle) * radius + _centered(rng, per_strand) * 0.2 * scale,
        ])

    # Spread bridge particles evenly over the rungs
    m = np.arange(bridge_count)
    rung = (m * bridges) // max(bridge_count, 1)
    _, first, inverse, sizes = np.unique(
        rung, return_inverse=True, return_index=True, return_counts=True
    )
    local_t = (m - first[inverse]) / sizes[inverse]
    rung_t = rung / bridges
    angle = rung_t * turns * TWO_PI + local_t * math.pi
    r = radius * (1.0 - np.abs(local_t - 0.5) * 0.3)
    rungs = np.column_stack([
        np.cos(angle) * r,
        (rung_t - 0.5) * height,
        np.sin(angle) * r,
    ])

    return np.concatenate([strand(0.0), strand(math.pi), rungs])


def _torus(rng, count, scale):
    major = 2.5 * scale
    minor = 1.0 * scale

    u = rng.random(count) * TWO_PI
    v = rng.random(count) * TWO_PI
    r = minor * (0.8 + rng.random(count) * 0.4)

    return np.column_stack([
        (major + r * np.cos(v)) * np.cos(u),
        r * np.sin(v),
        (major + r * np.cos(v)) * np.sin(u),
    ])


def _heart(rng, count, scale):
    t = rng.random(count) * TWO_PI
    fill = np.cbrt(rng.random(count))
    size = _RADIUS * scale / 17.0

    x = 16.0 * np.sin(t) ** 3
    y = 13.0 * np.cos(t) - 5.0 * np.cos(2 * t) - 2.0 * np.cos(3 * t) - np.cos(4 * t)
    z = _centered(rng, count) * 1.2 * scale * (1.0 - fill * 0.5)

    return np.column_stack([x * size * fill, y * size * fill, z])


_STAR_OUTER = 3.0
_STAR_INNER = 1.2


def _star_vertices(scale: float) -> np.ndarray:
    k = np.arange(10)
    angle = math.pi / 2 + k * math.pi / 5
    radius = np.where(k % 2 == 0, _STAR_OUTER, _STAR_INNER) * scale
    return np.column_stack([np.cos(angle) * radius, np.sin(angle) * radius])


def _star(rng, count, scale):
    vertices = _star_vertices(scale)
    edge = rng.integers(0, 10, count)
    t = rng.random(count)[:, None]
    start = vertices[edge]
    end = vertices[(edge + 1) % 10]
    xy = start + (end - start) * t + (rng.random((count, 2)) - 0.5) * 0.2 * scale
    z = _centered(rng, count) * 0.6 * scale
    return np.column_stack([xy, z])


_BURST_EXPONENT = 0.5
_BURST_OUTLIER_FRACTION = 0.05
_BURST_OUTLIER_STRETCH = 1.6


def _burst(rng, count, scale):
    # u**0.5 gives a volume density proportional to 1/r: dense core, sparse rim
    r = _RADIUS * scale * rng.random(count) ** _BURST_EXPONENT
    outliers = rng.random(count) < _BURST_OUTLIER_FRACTION
    r = np.where(outliers, r * _BURST_OUTLIER_STRETCH, r)
    return _uniform_directions(rng, count) * r[:, None]


def _heart_glyph(cx: float, cy: float, size: float, steps: int = 32) -> list:
    t = np.linspace(0.0, TWO_PI, steps + 1)
    x = 16.0 * np.sin(t) ** 3 / 17.0
    y = (13.0 * np.cos(t) - 5.0 * np.cos(2 * t) - 2.0 * np.cos(3 * t) - np.cos(4 * t)) / 17.0
    return list(zip(cx + x * size, cy + y * size))


def _ellipse(cx: float, cy: float, rx: float, ry: float, steps: int = 24) -> list:
    t = np.linspace(0.0, TWO_PI, steps + 1)
    return list(zip(cx + np.cos(t) * rx, cy + np.sin(t) * ry))


# "LOVE" in unit-height strokes with a heart above the word
LOVE_STROKES = [
    [(-1.9, 1.0), (-1.9, 0.0), (-1.3, 0.0)],
    _ellipse(-0.75, 0.5, 0.3, 0.5),
    [(-0.3, 1.0), (0.0, 0.0), (0.3, 1.0)],
    [(1.1, 1.0), (0.5, 1.0), (0.5, 0.0), (1.1, 0.0)],
    [(0.5, 0.5), (0.95, 0.5)],
    _heart_glyph(-0.4, 1.75, 0.55),
]

_LOVE_SAMPLES = 720
_LOVE_SIZE = 1.5


def build_stroke_samples(strokes, samples: int) -> np.ndarray:
    """Resample polylines at equal arc length into a (samples, 2) table."""
    segments = []
    for stroke in strokes:
        pts = np.asarray(stroke, dtype=np.float64)
        segments.extend(zip(pts[:-1], pts[1:]))
    starts = np.array([s for s, _ in segments])
    ends = np.array([e for _, e in segments])
    lengths = np.linalg.norm(ends - starts, axis=1)
    cumulative = np.concatenate([[0.0], np.cumsum(lengths)])

    s = (np.arange(samples) + 0.5) * cumulative[-1] / samples
    seg = np.clip(np.searchsorted(cumulative, s, side="right") - 1, 0, len(segments) - 1)
    local = (s - cumulative[seg]) / np.maximum(lengths[seg], 1e-12)
    table = starts[seg] + (ends[seg] - starts[seg]) * local[:, None]

    # Center the glyph block on the origin
    center = (table.min(axis=0) + table.max(axis=0)) / 2.0
    return table - center


_LOVE_TABLE = build_stroke_samples(LOVE_STROKES, _LOVE_SAMPLES)


def _love(rng, count, scale):
    idx = np.arange(count) % len(_LOVE_TABLE)
    xy = _LOVE_TABLE[idx] * _LOVE_SIZE * scale
    xy = xy + (rng.random((count, 2)) - 0.5) * 0.12 * scale
    z = _centered(rng, count) * 0.6 * scale
    return np.column_stack([xy, z])


PatternRule = Callable[[np.random.Generator, int, float], np.ndarray]

PATTERN_RULES: Dict[PatternType, PatternRule] = {
    PatternType.SPHERE: _sphere,
    PatternType.HELIX: _helix,
    PatternType.GALAXY: _galaxy,
    PatternType.CUBE: _cube,
    PatternType.DNA: _dna,
    PatternType.TORUS: _torus,
    PatternType.HEART: _heart,
    PatternType.STAR: _star,
    PatternType.BURST: _burst,
    PatternType.LOVE: _love,
}

_unhandled = set(PatternType) - set(PATTERN_RULES)
if _unhandled:
    raise RuntimeError(
        "No generator registered for patterns: %s"
        % sorted(p.value for p in _unhandled)
    )


class PatternGenerator:
    """Produces point clouds for named patterns."""

    def __init__(self, config: Optional[dict] = None,
                 rng: Optional[np.random.Generator] = None):
        """Initialize the generator.

        Args:
            config: ``particles`` section from config.yaml
            rng: Random source; a seeded one makes output reproducible.
                 Defaults to ``default_rng(config['seed'])``.
        """
        config = config or {}
        self._strict = config.get("strict_names", False)
        self._rng = rng if rng is not None else np.random.default_rng(config.get("seed"))

    def resolve(self, pattern) -> PatternType:
        """Turn a name or PatternType into a PatternType."""
        return PatternType.from_string(pattern, strict=self._strict)

    @log_timing
    def generate(self, pattern, count: int, scale: float = 1.0) -> PointCloud:
        """Generate ``count`` points for ``pattern``.

        Returns:
            Read-only np.ndarray of shape (count, 3)

        Raises:
            ValueError: count is not a positive integer or scale is not positive
        """
        if isinstance(count, bool) or int(count) != count or count <= 0:
            raise ValueError(f"Particle count must be a positive integer, got {count!r}")
        if not scale > 0 or not math.isfinite(scale):
            raise ValueError(f"Pattern scale must be positive, got {scale!r}")

        pattern_type = self.resolve(pattern)
        cloud = PATTERN_RULES[pattern_type](self._rng, int(count), float(scale))
        cloud = np.ascontiguousarray(cloud, dtype=np.float64)
        cloud.flags.writeable = False

        logger.debug("Generated %s: %d points (scale=%.2f)",
                     pattern_type.value, count, scale)
        return cloud
