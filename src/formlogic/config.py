"""
Engine configuration using Pydantic Settings.

Values come from ``FORMLOGIC_*`` environment variables or a ``.env`` file.
Settings only supply defaults; every operation also accepts explicit
overrides so the core stays a pure function of its arguments.
"""

import logging
from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FORMLOGIC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Aggregation
    missing_group_marker: str = "(missing)"
    group_key_separator: str = "\x1f"

    # Logging
    log_type_mismatches: bool = True
    log_level: str = "WARNING"

    @field_validator("log_level", mode="before")
    @classmethod
    def normalise_log_level(cls, v):
        if isinstance(v, str):
            value = v.strip().upper()
            if value not in logging.getLevelNamesMapping():
                raise ValueError(f"Unknown log level: {v}")
            return value
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(level: Optional[str] = None) -> None:
    """
    Install a basic handler for the ``formlogic`` logger.

    The library itself never configures logging; demos and host
    applications call this once at start-up.
    """
    logger = logging.getLogger("formlogic")
    logger.setLevel(level or get_settings().log_level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        logger.addHandler(handler)
