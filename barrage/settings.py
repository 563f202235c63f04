# barrage/settings.py
"""Runtime settings, overridable via BARRAGE_* environment variables or a .env file."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Tunables for the frame loop, turn flow and computer players."""

    # Simulation clock
    SIM_SPEED: float = Field(default=60.0, gt=0.0)
    MAX_TICK_DT: float = Field(default=2.0, gt=0.0)

    # Turn flow
    TURN_SWITCH_DELAY_S: float = Field(default=0.05, ge=0.0, le=5.0)

    # Computer players
    AI_THINK_DELAY_S: float = Field(default=0.05, ge=0.0, le=5.0)
    AI_DECISION_TIMEOUT_S: float = Field(default=2.0, gt=0.0, le=30.0)
    AI_CANDIDATES_PER_TICK: int = Field(default=64, ge=1)

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="BARRAGE_", env_file=".env", extra="ignore")


settings = Settings()
