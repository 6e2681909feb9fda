"""Game configuration loaded from the environment."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Any, Dict

from pydantic import BaseModel, Field, field_validator

from battleship.ai.targeting import Difficulty
from battleship.engine.placement import DEFAULT_MAX_ATTEMPTS
from battleship.telemetry.config import env_bool

_ENV_FIELDS = {
    "difficulty": "BATTLESHIP_DIFFICULTY",
    "seed": "BATTLESHIP_SEED",
    "reveal_ships": "BATTLESHIP_REVEAL_SHIPS",
    "maximise_openness": "BATTLESHIP_MAXIMISE_OPENNESS",
    "max_placement_attempts": "BATTLESHIP_MAX_PLACEMENT_ATTEMPTS",
    "log_level": "BATTLESHIP_LOG_LEVEL",
}
_BOOL_FIELDS = {"reveal_ships", "maximise_openness"}


class GameSettings(BaseModel):
    """Settings for a game session.

    ``reveal_ships`` is read by renderers only; the engine never consults it.
    """

    difficulty: Difficulty = Difficulty.RANDOM
    seed: int | None = None
    reveal_ships: bool = False
    maximise_openness: bool | None = None
    max_placement_attempts: int | None = Field(default=DEFAULT_MAX_ATTEMPTS, gt=0)
    log_level: str = "WARNING"

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value!r}")
        return level

    @classmethod
    def from_env(cls, **overrides: Any) -> "GameSettings":
        """Construct settings from ``BATTLESHIP_*`` env vars; overrides win."""

        data: Dict[str, Any] = {}
        for field, env_name in _ENV_FIELDS.items():
            if field in _BOOL_FIELDS:
                value = env_bool(env_name)
            else:
                value = os.getenv(env_name)
                if value is not None:
                    value = value.strip()
            if value is not None and value != "":
                data[field] = value

        data.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**data)


@lru_cache(maxsize=1)
def load_game_settings() -> GameSettings:
    """Load and cache game settings from the environment."""

    return GameSettings.from_env()
