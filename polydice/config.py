"""Engine configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from polydice.types import DieType

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    """Settings loaded from POLYDICE_* environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_prefix="POLYDICE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: LogLevel = "WARNING"

    # Randomness
    rng_seed: int | None = None  # Applied by the CLI for reproducible rolls

    # CLI defaults
    default_die: DieType = DieType.D20
    show_modified_range: bool = True


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
