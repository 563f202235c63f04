from __future__ import annotations

import numpy as np

from ..config import TerrainConfig, TerrainShape
from .noise import fractal_noise, seeded_random


def surface_profile(config: TerrainConfig) -> np.ndarray:
    """
    Normalised height profile in [0, 1] for every column (1 = lowest ground).

    Layers three fractal bands, three slow sine waves and a roughness-scaled
    per-column jitter. Pure function of the config, so the same seed always
    gives the same profile.
    """
    seed = float(config.seed)
    shape = config.shape
    x = np.arange(config.width, dtype=np.float64)

    primary = fractal_noise(x, seed, shape)
    secondary = fractal_noise(x, seed * 1.37 + 5000, shape, 2 if shape == TerrainShape.HILLS else 4)
    tertiary = fractal_noise(x, seed * 2.71 + 10000, shape, 2)

    sine1 = np.sin((x + seed) * 0.008) * 0.15
    sine2 = np.sin((x + seed * 1.618) * 0.015) * 0.1
    sine3 = np.sin((x + seed * 2.718) * 0.025) * 0.08

    local = (seeded_random(seed + x * 0.05) - 0.5) * config.roughness * 0.3

    combined = (
        primary * 0.35
        + secondary * 0.25
        + tertiary * 0.15
        + sine1 * 0.1
        + sine2 * 0.08
        + sine3 * 0.05
        + local * 0.02
    )
    return np.clip(combined, 0.0, 1.0)


def generate_surface(config: TerrainConfig) -> np.ndarray:
    """First solid row for each column (int32[width])."""
    if config.width <= 0 or config.height <= 0:
        raise ValueError(f"terrain must have a positive size, got {config.width}x{config.height}")
    if not 0.0 <= config.min_surface_frac <= config.max_surface_frac <= 1.0:
        raise ValueError(
            f"surface fractions must satisfy 0 <= min <= max <= 1, got "
            f"{config.min_surface_frac}..{config.max_surface_frac}"
        )

    profile = surface_profile(config)
    lo = config.height * config.min_surface_frac
    hi = config.height * config.max_surface_frac
    surface = np.floor(lo + (hi - lo) * profile).astype(np.int32)
    return np.clip(surface, 0, config.height)
