"""Engine settings, read from NEPHROCALC_* environment variables."""

from __future__ import annotations

import logging
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

ENV_PREFIX = "NEPHROCALC_"

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Evaluation behaviour switches.

    Keyword arguments take precedence over the environment, so
    ``Settings(strict_units=False)`` ignores ``NEPHROCALC_STRICT_UNITS``.
    """

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, frozen=True, extra="ignore")

    # Unknown units raise instead of passing the value through unchanged
    strict_units: bool = True
    # Reject numeric inputs outside an InputSpec's [min, max]
    enforce_bounds: bool = True
    log_level: str = "WARNING"

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in _LEVELS:
            raise ValueError(f"Unknown log level: {value}")
        return level


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    settings = Settings()
    logger.debug(f"Loaded settings: {settings.model_dump()}")
    return settings
