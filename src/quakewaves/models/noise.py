"""Deterministic smooth 2D noise for water wave motion.

Layered value noise: random values on an integer lattice, blended with a
smoothstep curve and summed over octaves of doubling frequency and halving
amplitude. Output lies in [0, 1) and small input deltas give small output
deltas.
"""

import math

import numpy as np

from quakewaves.core.constants import NOISE_FALLOFF, NOISE_LATTICE_SIZE, NOISE_OCTAVES


def _smoothstep(t: float) -> float:
    return t * t * (3.0 - 2.0 * t)


class ValueNoise:
    """Seeded 2D value-noise field.

    The lattice wraps every NOISE_LATTICE_SIZE units, so any finite float
    coordinate (negative included) is valid.
    """

    def __init__(
        self,
        seed: int = 0,
        octaves: int = NOISE_OCTAVES,
        falloff: float = NOISE_FALLOFF,
    ):
        if octaves < 1:
            raise ValueError("octaves must be >= 1")
        if not 0.0 < falloff < 1.0:
            raise ValueError("falloff must be in (0, 1)")

        self.seed = seed
        self.octaves = octaves
        self.falloff = falloff

        rng = np.random.default_rng(seed)
        self._lattice = rng.random((NOISE_LATTICE_SIZE, NOISE_LATTICE_SIZE))
        self._mask = NOISE_LATTICE_SIZE - 1

        # Weighted mean of single-octave values keeps the result in [0, 1)
        self._amplitudes = [falloff**i for i in range(octaves)]
        self._norm = sum(self._amplitudes)

    def _octave(self, x: float, y: float) -> float:
        """Single-octave value noise in [0, 1)."""
        x0 = math.floor(x)
        y0 = math.floor(y)
        tx = _smoothstep(x - x0)
        ty = _smoothstep(y - y0)

        m = self._mask
        i0, i1 = x0 & m, (x0 + 1) & m
        j0, j1 = y0 & m, (y0 + 1) & m
        lat = self._lattice

        top = lat[j0, i0] + (lat[j0, i1] - lat[j0, i0]) * tx
        bottom = lat[j1, i0] + (lat[j1, i1] - lat[j1, i0]) * tx
        return float(top + (bottom - top) * ty)

    def __call__(self, x: float, y: float) -> float:
        """Sample the layered noise field at (x, y)."""
        total = 0.0
        frequency = 1.0
        for amplitude in self._amplitudes:
            total += amplitude * self._octave(x * frequency, y * frequency)
            frequency *= 2.0
        return total / self._norm
