from .agents.targeting import Difficulty, TargetingAI
from .config import GameConfig, GameMode, LevelConfig, TerrainConfig, WeaponKind
from .game.match import Game, MatchOutcome
from .sim.world import TerrainField

__all__ = [
    "Difficulty",
    "Game",
    "GameConfig",
    "GameMode",
    "LevelConfig",
    "MatchOutcome",
    "TargetingAI",
    "TerrainConfig",
    "TerrainField",
    "WeaponKind",
]
