# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for detection defaults and logging setup.
Explicit ``DetectionOptions`` passed to the facade take precedence.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Community detection ===
    community_resolution: float = 1.0
    community_min_size: int = 3
    community_max_level: int = 5
    community_max_passes: int = 100
    community_seed: int | None = None
    community_seed_from_folders: bool = True
    community_merge_threshold: float = 0.7

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("community_resolution")
    @classmethod
    def validate_resolution(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("community_resolution must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.community_min_size < 1:
            errors.append("COMMUNITY_MIN_SIZE must be >= 1")

        if self.community_max_level < 0:
            errors.append("COMMUNITY_MAX_LEVEL must be >= 0")

        if self.community_max_passes < 1:
            errors.append("COMMUNITY_MAX_PASSES must be >= 1")

        if not 0.0 < self.community_merge_threshold <= 1.0:
            errors.append("COMMUNITY_MERGE_THRESHOLD must be in (0, 1]")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-run config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
