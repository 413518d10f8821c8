from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import List, Literal

from pydantic_settings import BaseSettings
from pydantic import Field

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    cors_origins: str = Field(default="http://localhost:5173", alias="CORS_ORIGINS")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    turn_timeout_sec: int = Field(default=30, alias="TURN_TIMEOUT_SEC")
    tick_interval_ms: int = Field(default=250, alias="TICK_INTERVAL_MS")
    target_score: int = Field(default=61, alias="TARGET_SCORE")
    hand_size: int = Field(default=3, alias="HAND_SIZE")
    last_trick_bonus: int = Field(default=0, alias="LAST_TRICK_BONUS")
    vacant_seat_policy: Literal["reset", "autoplay"] = Field(default="reset", alias="VACANT_SEAT_POLICY")

    chat_max_length: int = Field(default=80, alias="CHAT_MAX_LENGTH")
    chat_history: int = Field(default=50, alias="CHAT_HISTORY")
    chat_tail: int = Field(default=25, alias="CHAT_TAIL")

    class Config:
        env_file = ".env"
        extra = "ignore"
        populate_by_name = True

    def allowed_origins(self) -> List[str]:
        """
        Splits CORS_ORIGINS on commas, dropping blanks.
        Example: "https://serra.example, https://www.serra.example"
        """
        return [x.strip() for x in self.cors_origins.split(",") if x.strip()]

    def log_status(self) -> None:
        env_name = os.getenv("RENDER_SERVICE_NAME") or os.getenv("ENV", "unknown")
        logger.info(
            "Game settings: turn_timeout=%ss tick=%sms target=%s hand=%s bonus=%s vacant=%s env=%s",
            self.turn_timeout_sec,
            self.tick_interval_ms,
            self.target_score,
            self.hand_size,
            self.last_trick_bonus,
            self.vacant_seat_policy,
            env_name,
        )


@lru_cache()
def get_settings() -> Settings:
    settings = Settings()
    settings.log_status()
    return settings
