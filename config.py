"""
Configuration settings for the phrase drill game.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Corpus & Persistence
    # ========================================
    corpus_path: Path = Field(
        default=PROJECT_ROOT / "data" / "corpus" / "fr_en_001.json",
        description="JSON corpus file (texts, phrases, solutions)",
    )
    progress_dir: Path = Field(
        default=Path.home() / ".phrase_drill" / "progress",
        description="Directory holding one JSON progress document per learner",
    )
    learner_id: str = Field(
        default="local",
        description="Key of the learner's progress document",
    )

    # ========================================
    # Batch Planning
    # ========================================
    batch_min_phrases: int = Field(
        default=6,
        ge=1,
        description="Phrase count a batch should reach before it is closed",
    )
    batch_max_phrases: int = Field(
        default=10,
        ge=1,
        description="Hard ceiling on the phrase count of one batch",
    )

    # ========================================
    # Timing (milliseconds unless noted)
    # ========================================
    activation_grace_ms: int = Field(
        default=100,
        description="Delay before a phase accepts input after it starts",
    )
    feedback_ms: int = Field(
        default=1000,
        description="How long answer feedback stays visible",
    )
    timeout_overlay_ms: int = Field(
        default=2000,
        description="How long the time-expired overlay stays visible",
    )
    countdown_seconds: int = Field(
        default=15,
        ge=1,
        description="Countdown duration for one challenge (seconds)",
    )
    reveal_penalty_seconds: int = Field(
        default=3,
        ge=0,
        description="Seconds removed from the countdown when retrieval translations are revealed",
    )

    # ========================================
    # Game
    # ========================================
    max_lives: int = Field(
        default=10,
        ge=1,
        description="Lives available at the start of a game",
    )
    random_seed: int | None = Field(
        default=None,
        description="Seed for answer-option shuffling (None = system randomness)",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging level",
    )

    def get_timing_config(self) -> dict[str, int]:
        """Get phase timing configuration as a dictionary."""
        return {
            "activation_grace_ms": self.activation_grace_ms,
            "feedback_ms": self.feedback_ms,
            "timeout_overlay_ms": self.timeout_overlay_ms,
            "countdown_seconds": self.countdown_seconds,
            "reveal_penalty_seconds": self.reveal_penalty_seconds,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
