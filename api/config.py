"""Server settings, read from MAFIA_* environment variables or a .env file."""

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

from game.rules import (
    DAY_DURATION,
    NIGHT_DURATION,
    RESULT_DISPLAY_DELAY,
    VOTING_DURATION,
    GameTimings,
)


class Settings(BaseSettings):
    night_seconds: int = NIGHT_DURATION
    day_seconds: int = DAY_DURATION
    voting_seconds: int = VOTING_DURATION
    result_display_seconds: float = RESULT_DISPLAY_DELAY
    # Length of one timer unit; lower it to speed games up in development
    tick_seconds: float = 1.0
    allowed_origins: List[str] = ["*"]
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3001

    model_config = SettingsConfigDict(
        env_prefix="MAFIA_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
    )

    def timings(self) -> GameTimings:
        return GameTimings(
            night=self.night_seconds,
            day=self.day_seconds,
            voting=self.voting_seconds,
            result_display=self.result_display_seconds,
            tick_seconds=self.tick_seconds,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
