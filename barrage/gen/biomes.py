from __future__ import annotations

from dataclasses import dataclass, replace

import numpy as np

from ..config import Biome, TimeOfDay, Weather


@dataclass(frozen=True)
class EnvironmentEffects:
    """Per-round physics snapshot. Gravity and air density are multipliers on 1.0."""

    wind_x: float = 0.0
    wind_y: float = 0.0
    gravity: float = 1.0
    air_density: float = 1.0

    def with_wind(self, dx: float, dy: float) -> EnvironmentEffects:
        return replace(self, wind_x=self.wind_x + dx, wind_y=self.wind_y + dy)


CALM = EnvironmentEffects()

# Baseline per biome.
_BIOME_BASE: dict[Biome, EnvironmentEffects] = {
    Biome.TEMPERATE: CALM,
    Biome.ARCTIC: EnvironmentEffects(wind_x=0.5, air_density=1.2),
    Biome.DESERT: EnvironmentEffects(wind_y=-0.2, air_density=0.8),  # updrafts off hot ground
    Biome.VOLCANIC: EnvironmentEffects(gravity=1.2, air_density=0.6),
}

# (wind_x delta, air_density delta) per weather.
_WEATHER_DELTA: dict[Weather, tuple[float, float]] = {
    Weather.NONE: (0.0, 0.0),
    Weather.RAIN: (0.3, 0.1),
    Weather.SNOW: (0.4, 0.15),
}

NIGHT_WIND_FACTOR = 0.7

WIND_VARIATION_X = 0.5
WIND_VARIATION_Y = 0.2


def effects(biome: Biome, weather: Weather, time_of_day: TimeOfDay) -> EnvironmentEffects:
    base = _BIOME_BASE[biome]
    dwind, dair = _WEATHER_DELTA[weather]
    wind_x = base.wind_x + dwind
    if time_of_day == TimeOfDay.NIGHT:
        wind_x *= NIGHT_WIND_FACTOR
    return replace(base, wind_x=wind_x, air_density=base.air_density + dair)


def wind_variation(rng: np.random.Generator) -> tuple[float, float]:
    """Random per-round wind nudge, bounded to +-0.25 horizontally and +-0.1 vertically."""
    dx = (float(rng.random()) - 0.5) * WIND_VARIATION_X
    dy = (float(rng.random()) - 0.5) * WIND_VARIATION_Y
    return dx, dy


def describe(env: EnvironmentEffects) -> str:
    parts: list[str] = []

    if abs(env.wind_x) > 0.3:
        parts.append("Strong Wind →" if env.wind_x > 0 else "Strong Wind ←")
    elif abs(env.wind_x) > 0.1:
        parts.append("Wind →" if env.wind_x > 0 else "Wind ←")

    if env.wind_y < -0.1:
        parts.append("Updrafts ↑")
    elif env.wind_y > 0.1:
        parts.append("Downdrafts ↓")

    if env.gravity > 1.1:
        parts.append("High Gravity")
    elif env.gravity < 0.9:
        parts.append("Low Gravity")

    return " | ".join(parts) if parts else "Normal Conditions"
