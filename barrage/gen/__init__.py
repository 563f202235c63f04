from .biomes import EnvironmentEffects, describe, effects, wind_variation
from .levels import CAMPAIGN_LEVELS, parse_level, random_level, round_environment
from .terrain import generate_surface

__all__ = [
    "CAMPAIGN_LEVELS",
    "EnvironmentEffects",
    "describe",
    "effects",
    "generate_surface",
    "parse_level",
    "random_level",
    "round_environment",
    "wind_variation",
]
