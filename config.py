"""
Configuration settings for the lingo progression engine.

Uses Pydantic Settings for environment variable management with .env file support.
All variables are read with the LINGO_ prefix (e.g. LINGO_LOG_LEVEL=DEBUG).
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="LINGO_",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Database
    # ========================================
    database_url: str = Field(
        default="sqlite:///./lingo_progress.db",
        description="SQLAlchemy connection string for progress records",
    )

    # ========================================
    # Content
    # ========================================
    content_deck_path: str | None = Field(
        default=None,
        description="Path to the authored JSON content deck",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    # ========================================
    # Spaced Repetition (SM-2 derivative)
    # ========================================
    srs_min_ease: float = Field(
        default=1.3,
        description="Lower bound for the ease factor",
    )
    srs_max_ease: float = Field(
        default=2.5,
        description="Upper bound for the ease factor",
    )
    srs_default_ease: float = Field(
        default=2.5,
        description="Ease factor for a first-ever record",
    )
    srs_second_interval: int = Field(
        default=3,
        description="Interval in days after the second consecutive correct review",
    )
    srs_expected_response_ms: int = Field(
        default=8000,
        description="Response time treated as normal speed for quality derivation",
    )

    # ========================================
    # Session Planning
    # ========================================
    session_default_minutes: int = Field(
        default=10,
        description="Duration used when a non-positive duration is requested",
    )
    session_minutes_per_activity: float = Field(
        default=1.5,
        description="Average minutes one activity takes",
    )
    session_max_new_units: int = Field(
        default=5,
        description="Default ceiling on new target units per session",
    )
    session_max_review_units: int = Field(
        default=10,
        description="Default ceiling on review units per session",
    )
    session_context_units: int = Field(
        default=5,
        description="Acquired units included as scaffolding",
    )

    # ========================================
    # Affective-Risk Monitor
    # ========================================
    monitor_cooldown_seconds: int = Field(
        default=60,
        description="Window in which opposite difficulty directives are suppressed",
    )
    monitor_struggle_window_seconds: int = Field(
        default=120,
        description="Window for two consecutive wrong+help interactions",
    )

    # ========================================
    # Rewards
    # ========================================
    sun_drops_daily_cap: int = Field(
        default=50,
        description="Maximum Sun Drops a learner can earn per day",
    )

    def get_session_config(self) -> dict[str, Any]:
        """Get session planning defaults as a dictionary."""
        return {
            "default_minutes": self.session_default_minutes,
            "minutes_per_activity": self.session_minutes_per_activity,
            "max_new_units": self.session_max_new_units,
            "max_review_units": self.session_max_review_units,
            "context_units": self.session_context_units,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
