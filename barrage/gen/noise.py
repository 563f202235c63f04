from __future__ import annotations

import numpy as np

from ..config import TerrainShape

# (default octaves, base frequency) per terrain shape
_SHAPE_OCTAVES: dict[TerrainShape, tuple[int, float]] = {
    TerrainShape.HILLS: (3, 0.003),
    TerrainShape.MOUNTAINS: (6, 0.006),
}


def seeded_random(seed: np.ndarray | float) -> np.ndarray:
    """Hash a seed into [0, 1): frac(sin(seed) * 10000)."""
    v = np.sin(np.asarray(seed, dtype=np.float64)) * 10000.0
    return v - np.floor(v)


def smooth_noise(x: np.ndarray | float, seed: float) -> np.ndarray:
    """Cosine-interpolated value noise on integer lattice points."""
    x = np.asarray(x, dtype=np.float64)
    x1 = np.floor(x)
    t = x - x1
    v1 = seeded_random(seed + x1 * 0.01)
    v2 = seeded_random(seed + (x1 + 1.0) * 0.01)
    smooth_t = (1.0 - np.cos(t * np.pi)) * 0.5
    return v1 * (1.0 - smooth_t) + v2 * smooth_t


def fractal_noise(
    x: np.ndarray | float, seed: float, shape: TerrainShape, octaves: int | None = None
) -> np.ndarray:
    """
    Sum of octaves of smooth noise, normalised back to [0, 1].

    Hills use fewer, lower-frequency octaves than mountains. Each octave
    halves the amplitude and doubles the frequency.
    """
    default_octaves, frequency = _SHAPE_OCTAVES[shape]
    n = int(octaves) if octaves else default_octaves

    x = np.asarray(x, dtype=np.float64)
    value = np.zeros_like(x)
    amplitude = 1.0
    total = 0.0
    for i in range(n):
        value += smooth_noise(x * frequency, seed + i * 1000) * amplitude
        total += amplitude
        amplitude *= 0.5
        frequency *= 2.0
    return value / total
