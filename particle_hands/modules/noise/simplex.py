"""
Seedable 3D simplex gradient noise used for particle turbulence.
Evaluates scalars or whole numpy arrays in one vectorized pass.
"""

import logging
import numpy as np

logger = logging.getLogger(__name__)

_F3 = 1.0 / 3.0
_G3 = 1.0 / 6.0
_OUTPUT_SCALE = 32.0


class SimplexNoise:
    """3D simplex noise over a permutation table drawn from ``seed``.

    Identical seeds give identical fields; output stays roughly in [-1, 1].
    """

    def __init__(self, seed: int = 42):
        self._seed = seed
        rng = np.random.default_rng(seed)
        p = rng.permutation(256).astype(np.int64)
        self._perm = np.concatenate([p, p])
        logger.debug("SimplexNoise initialized (seed=%s)", seed)

    @property
    def seed(self) -> int:
        return self._seed

    def noise3d(self, x, y, z):
        """Sample the field at (x, y, z).

        Accepts floats or broadcastable arrays. Returns a float for scalar
        input, otherwise an array of the broadcast shape.
        """
        scalar = np.ndim(x) == 0 and np.ndim(y) == 0 and np.ndim(z) == 0
        x, y, z = np.broadcast_arrays(
            np.asarray(x, dtype=np.float64),
            np.asarray(y, dtype=np.float64),
            np.asarray(z, dtype=np.float64),
        )

        # Skew input space to find the containing simplex cell
        s = (x + y + z) * _F3
        i = np.floor(x + s)
        j = np.floor(y + s)
        k = np.floor(z + s)

        t = (i + j + k) * _G3
        x0 = x - (i - t)
        y0 = y - (j - t)
        z0 = z - (k - t)

        # Rank the offsets to pick the simplex corners
        a = x0 >= y0
        b = y0 >= z0
        c = x0 >= z0
        a1 = a & b
        a2 = a & ~b & c
        a3 = a & ~b & ~c
        b1 = ~a & ~b
        b2 = ~a & b & ~c
        b3 = ~a & b & c

        i1 = (a1 | a2).astype(np.int64)
        j1 = (b2 | b3).astype(np.int64)
        k1 = (a3 | b1).astype(np.int64)
        i2 = (a | b3).astype(np.int64)
        j2 = (a1 | ~a).astype(np.int64)
        k2 = (a2 | a3 | b1 | b2).astype(np.int64)

        x1 = x0 - i1 + _G3
        y1 = y0 - j1 + _G3
        z1 = z0 - k1 + _G3
        x2 = x0 - i2 + 2.0 * _G3
        y2 = y0 - j2 + 2.0 * _G3
        z2 = z0 - k2 + 2.0 * _G3
        x3 = x0 - 1.0 + 3.0 * _G3
        y3 = y0 - 1.0 + 3.0 * _G3
        z3 = z0 - 1.0 + 3.0 * _G3

        ii = i.astype(np.int64) & 255
        jj = j.astype(np.int64) & 255
        kk = k.astype(np.int64) & 255
        perm = self._perm

        gi0 = perm[ii + perm[jj + perm[kk]]]
        gi1 = perm[ii + i1 + perm[jj + j1 + perm[kk + k1]]]
        gi2 = perm[ii + i2 + perm[jj + j2 + perm[kk + k2]]]
        gi3 = perm[ii + 1 + perm[jj + 1 + perm[kk + 1]]]

        total = (
            self._corner(gi0, x0, y0, z0)
            + self._corner(gi1, x1, y1, z1)
            + self._corner(gi2, x2, y2, z2)
            + self._corner(gi3, x3, y3, z3)
        )
        result = _OUTPUT_SCALE * total
        if scalar:
            return float(result)
        return result

    @staticmethod
    def _corner(gi, x, y, z):
        t = 0.6 - x * x - y * y - z * z
        t = np.maximum(t, 0.0)
        t2 = t * t
        return t2 * t2 * SimplexNoise._grad(gi, x, y, z)

    @staticmethod
    def _grad(hash_value, x, y, z):
        h = hash_value & 15
        u = np.where(h < 8, x, y)
        v = np.where(h < 4, y, np.where((h == 12) | (h == 14), x, z))
        return np.where((h & 1) == 0, u, -u) + np.where((h & 2) == 0, v, -v)
