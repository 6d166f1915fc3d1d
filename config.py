"""
Configuration settings for the fluency drill scheduler.

Uses Pydantic Settings for environment variable management with .env file support.
Every field can be overridden with a FLUENCY_-prefixed environment variable.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FLUENCY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Storage
    # ========================================
    data_dir: Path = Field(
        default=Path.home() / ".fluency",
        description="Directory for local state",
    )
    database_path: Path | None = Field(
        default=None,
        description="SQLite file for stats, deadlines and baselines (defaults to <data_dir>/state.db)",
    )
    default_namespace: str = Field(
        default="notes",
        description="Storage namespace used when a command is not given one",
    )

    # ========================================
    # Scheduling
    # ========================================
    calibration_provider: str = Field(
        default="button",
        description="Speed-check provider whose motor baseline is applied",
    )
    expansion_threshold: float = Field(
        default=0.7,
        description="Average automaticity a group needs before the next one is suggested",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Minimum level written to stderr",
    )
    log_file: Path | None = Field(
        default=None,
        description="Optional file sink for full debug logs",
    )

    @property
    def resolved_database_path(self) -> Path:
        return self.database_path or self.data_dir / "state.db"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
