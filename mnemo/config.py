"""
Configuration settings for mnemo.

Uses Pydantic Settings for environment variable management with .env file support.
Every field can be overridden with an MNEMO_* environment variable.
"""
from __future__ import annotations

from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from mnemo.core.maturity import MaturityConfig
from mnemo.delivery.scheduler import SchedulerConfig

DEFAULT_DATA_DIR = Path.home() / ".mnemo"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="MNEMO_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Storage
    # ========================================
    data_dir: Path = Field(
        default=DEFAULT_DATA_DIR,
        description="Directory holding the database",
    )
    database_url: str | None = Field(
        default=None,
        description="SQLAlchemy URL; defaults to sqlite:///<data_dir>/mnemo.db",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Minimum level written to stderr",
    )

    # ========================================
    # Maturity model
    # ========================================
    strength_min: float = Field(default=0.0, ge=0.0)
    strength_max: float = Field(default=1.0, gt=0.0)
    stability_min_days: float = Field(default=1.0, gt=0.0)
    stability_max_days: float = Field(default=3650.0, gt=0.0)
    passing_grade: int = Field(default=3, ge=1, le=5)
    fail_penalty: float = Field(default=0.2, ge=0.0)
    stability_growth: float = Field(default=0.75, gt=0.0)
    strength_gain: float = Field(default=0.5, gt=0.0, lt=1.0)
    minimum_interval_minutes: float = Field(default=10.0, gt=0.0)

    # ========================================
    # Scheduling
    # ========================================
    completion_threshold: float = Field(
        default=0.9,
        description="Strength at which an item becomes complete",
    )
    stabilization_days: float = Field(
        default=3.0,
        ge=0.0,
        description="Days an item must stay complete before it resolves",
    )

    @property
    def resolved_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.data_dir / 'mnemo.db'}"

    def maturity_config(self) -> MaturityConfig:
        return MaturityConfig(
            strength_min=self.strength_min,
            strength_max=self.strength_max,
            stability_min=self.stability_min_days,
            stability_max=self.stability_max_days,
            passing_grade=self.passing_grade,
            fail_penalty=self.fail_penalty,
            stability_growth=self.stability_growth,
            strength_gain=self.strength_gain,
            minimum_interval=timedelta(minutes=self.minimum_interval_minutes),
        )

    def scheduler_config(self) -> SchedulerConfig:
        return SchedulerConfig(
            completion_threshold=self.completion_threshold,
            stabilization_window=timedelta(days=self.stabilization_days),
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
