from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from enum import Enum
from typing import Any, TypeVar

import numpy as np

from ..config import Biome, LevelConfig, Season, TerrainShape, TimeOfDay, Weather
from .biomes import EnvironmentEffects, effects, wind_variation

logger = logging.getLogger("barrage.levels")

E = TypeVar("E", bound=Enum)

DEFAULT_LEVEL = LevelConfig()

# Level files use camelCase keys.
_KEY_ALIASES = {"timeOfDay": "time_of_day"}


def _enum_field(raw: Mapping[str, Any], key: str, enum_cls: type[E], default: E) -> E:
    if key not in raw or raw[key] is None:
        return default
    value = raw[key]
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        logger.warning(f"Unknown {key} {value!r} in level config, using {default.value!r}")
        return default


def _roughness(raw: Mapping[str, Any]) -> float:
    value = raw.get("roughness")
    if value is None:
        return DEFAULT_LEVEL.roughness
    try:
        r = float(value)
    except (TypeError, ValueError):
        logger.warning(f"Bad roughness {value!r} in level config, using {DEFAULT_LEVEL.roughness}")
        return DEFAULT_LEVEL.roughness
    if not math.isfinite(r):
        logger.warning(f"Non-finite roughness {value!r} in level config, using {DEFAULT_LEVEL.roughness}")
        return DEFAULT_LEVEL.roughness
    return min(1.0, max(0.0, r))


def _seed(raw: Mapping[str, Any]) -> int | None:
    value = raw.get("seed")
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        logger.warning(f"Bad seed {value!r} in level config, a random seed will be used")
        return None


def parse_level(raw: Mapping[str, Any] | None) -> LevelConfig:
    """
    Build a LevelConfig from loosely-typed level data.

    Missing or unrecognised fields fall back to the defaults (temperate hills,
    clear weather, daytime) with a warning; this never raises.
    """
    if raw is None:
        return DEFAULT_LEVEL
    if not isinstance(raw, Mapping):
        logger.warning(f"Level config must be a mapping, got {type(raw).__name__}; using defaults")
        return DEFAULT_LEVEL

    data = {_KEY_ALIASES.get(k, k): v for k, v in raw.items()}
    return LevelConfig(
        biome=_enum_field(data, "biome", Biome, DEFAULT_LEVEL.biome),
        shape=_enum_field(data, "shape", TerrainShape, DEFAULT_LEVEL.shape),
        weather=_enum_field(data, "weather", Weather, DEFAULT_LEVEL.weather),
        roughness=_roughness(data),
        time_of_day=_enum_field(data, "time_of_day", TimeOfDay, DEFAULT_LEVEL.time_of_day),
        season=_enum_field(data, "season", Season, DEFAULT_LEVEL.season),
        seed=_seed(data),
    )


def random_level(rng: np.random.Generator) -> LevelConfig:
    """Uniformly random level for quick matches."""

    def pick(enum_cls: type[E]) -> E:
        members = list(enum_cls)
        return members[int(rng.integers(len(members)))]

    return LevelConfig(
        biome=pick(Biome),
        shape=pick(TerrainShape),
        weather=pick(Weather),
        roughness=float(rng.uniform(0.10, 0.50)),
        time_of_day=pick(TimeOfDay),
        season=pick(Season),
        seed=int(rng.integers(0, 1_000_000)),
    )


def round_environment(level: LevelConfig, rng: np.random.Generator) -> EnvironmentEffects:
    """Environment for one round: level effects plus one random wind nudge."""
    base = effects(level.biome, level.weather, level.time_of_day)
    dx, dy = wind_variation(rng)
    return base.with_wind(dx, dy)


# Solo campaign, easiest first.
CAMPAIGN_LEVELS: tuple[LevelConfig, ...] = (
    LevelConfig(Biome.TEMPERATE, TerrainShape.HILLS, Weather.NONE, 0.3, TimeOfDay.DAY, Season.SUMMER, 12345),
    LevelConfig(Biome.TEMPERATE, TerrainShape.HILLS, Weather.NONE, 0.3, TimeOfDay.NIGHT, Season.SUMMER, 23456),
    LevelConfig(Biome.DESERT, TerrainShape.HILLS, Weather.NONE, 0.3, TimeOfDay.DAY, Season.SUMMER, 34567),
    LevelConfig(Biome.ARCTIC, TerrainShape.HILLS, Weather.SNOW, 0.3, TimeOfDay.DAY, Season.WINTER, 45678),
    LevelConfig(Biome.TEMPERATE, TerrainShape.MOUNTAINS, Weather.RAIN, 0.3, TimeOfDay.DAY, Season.SUMMER, 56789),
    LevelConfig(Biome.VOLCANIC, TerrainShape.HILLS, Weather.NONE, 0.3, TimeOfDay.NIGHT, Season.SUMMER, 67890),
    LevelConfig(Biome.ARCTIC, TerrainShape.MOUNTAINS, Weather.SNOW, 0.3, TimeOfDay.NIGHT, Season.WINTER, 78901),
    LevelConfig(Biome.DESERT, TerrainShape.HILLS, Weather.NONE, 0.3, TimeOfDay.NIGHT, Season.SUMMER, 89012),
    LevelConfig(Biome.VOLCANIC, TerrainShape.MOUNTAINS, Weather.RAIN, 0.3, TimeOfDay.DAY, Season.SUMMER, 90123),
    LevelConfig(Biome.TEMPERATE, TerrainShape.MOUNTAINS, Weather.SNOW, 0.3, TimeOfDay.NIGHT, Season.WINTER, 101234),
)
