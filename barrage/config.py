from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from . import constants as C


class Biome(str, Enum):
    TEMPERATE = "temperate"
    DESERT = "desert"
    ARCTIC = "arctic"
    VOLCANIC = "volcanic"


class Weather(str, Enum):
    NONE = "none"
    RAIN = "rain"
    SNOW = "snow"


class TimeOfDay(str, Enum):
    DAY = "day"
    NIGHT = "night"


class Season(str, Enum):
    SUMMER = "summer"
    WINTER = "winter"


class TerrainShape(str, Enum):
    HILLS = "hills"
    MOUNTAINS = "mountains"


class CraterShape(str, Enum):
    CIRCLE = "circle"
    VERTICAL = "vertical"  # narrow and deep
    HORIZONTAL = "horizontal"  # wide and shallow


class WeaponKind(str, Enum):
    STANDARD = "standard"
    SALVO = "salvo"
    BOUNCING = "bouncing"
    HAZELNUT = "hazelnut"


class ShieldKind(str, Enum):
    SINGLE_USE = "single_use"
    MULTI_USE = "multi_use"


class GameMode(str, Enum):
    SOLO = "solo"  # human vs computer
    LOCAL = "local"  # two humans on one input device
    DEMO = "demo"  # computer vs computer


@dataclass(frozen=True)
class TerrainConfig:
    width: int = 800
    height: int = 600
    shape: TerrainShape = TerrainShape.HILLS
    roughness: float = 0.3
    seed: float = 0.0
    min_surface_frac: float = 0.45
    max_surface_frac: float = 0.85


@dataclass(frozen=True)
class LevelConfig:
    biome: Biome = Biome.TEMPERATE
    shape: TerrainShape = TerrainShape.HILLS
    weather: Weather = Weather.NONE
    roughness: float = 0.3
    time_of_day: TimeOfDay = TimeOfDay.DAY
    season: Season = Season.SUMMER
    seed: int | None = None


@dataclass(frozen=True)
class WeaponSpec:
    kind: WeaponKind
    name: str
    speed_multiplier: float
    drag_multiplier: float
    explosion_radius: float
    explosion_damage: int
    explosion_shape: CraterShape = CraterShape.CIRCLE
    shape_ratio: float = 1.0
    color: int = 0xFFFFFF

    # Salvo
    salvo_count: int = 1
    salvo_spread_deg: float = 0.0
    salvo_delay_s: float = 0.0

    # Bouncing
    max_bounces: int = 0
    bounce_speed_keep: float = 1.0
    min_bounce_speed: float = 0.0

    # Splitting
    split_count: int = 0
    split_spread_deg: float = 0.0
    split_min_distance: float = 0.0
    split_delay_s: float = 0.0
    split_jitter_px: float = 0.0

    @property
    def can_split(self) -> bool:
        return self.split_count > 0

    @property
    def can_bounce(self) -> bool:
        return self.max_bounces > 0


@dataclass(frozen=True)
class ShieldSpec:
    kind: ShieldKind
    name: str
    max_hp: int
    radius: float
    absorbs_any_hit: bool = False


@dataclass(frozen=True)
class GameConfig:
    width: int = 800
    height: int = 600
    min_surface_frac: float = 0.45
    max_surface_frac: float = 0.85
    sim_speed: float = C.SIM_UNITS_PER_SECOND
    max_tick_dt: float = 2.0
    turn_switch_delay_s: float = C.TURN_SWITCH_DELAY_S
    ai_think_delay_s: float = C.AI_THINK_DELAY_S
    ai_timeout_s: float = C.AI_DECISION_TIMEOUT_S
    ai_candidates_per_tick: int = C.AI_CANDIDATES_PER_TICK
    mode: GameMode = GameMode.SOLO

    @classmethod
    def from_settings(cls, mode: GameMode = GameMode.SOLO) -> GameConfig:
        from .settings import settings

        return cls(
            sim_speed=settings.SIM_SPEED,
            max_tick_dt=settings.MAX_TICK_DT,
            turn_switch_delay_s=settings.TURN_SWITCH_DELAY_S,
            ai_think_delay_s=settings.AI_THINK_DELAY_S,
            ai_timeout_s=settings.AI_DECISION_TIMEOUT_S,
            ai_candidates_per_tick=settings.AI_CANDIDATES_PER_TICK,
            mode=mode,
        )
