"""Configuration models and loading utilities for the matching engine."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

import structlog
from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from buddymatch.domain.profiles import VisibilityScope

logger = structlog.get_logger(__name__)


class DatabaseSettings(BaseSettings):
    """Runtime configuration for the match request and profile database."""

    model_config = SettingsConfigDict(env_prefix="BUDDYMATCH_DATABASE_")

    dsn: str = Field(
        "sqlite+aiosqlite:///./buddymatch.db",
        description="SQLAlchemy async DSN for the primary database.",
    )
    echo: bool = Field(False, description="Log emitted SQL statements.")


class MatchingSettings(BaseSettings):
    """Tunables for candidate discovery."""

    model_config = SettingsConfigDict(env_prefix="BUDDYMATCH_MATCHING_")

    default_max_distance_km: float = Field(
        50.0,
        gt=0,
        description="Search radius applied when the caller does not send one.",
    )
    default_page_size: int = Field(20, ge=1, description="Page size used when none is requested.")
    max_page_size: int = Field(50, ge=1, description="Upper bound applied to requested page sizes.")
    visibility: VisibilityScope = Field(
        VisibilityScope.PUBLIC,
        description="Which profiles may appear in candidate pools.",
    )


@dataclass(slots=True)
class Settings:
    """Aggregated application settings loaded from environment variables."""

    database: DatabaseSettings
    matching: MatchingSettings
    log_level: str = "INFO"
    log_format: str = "json"
    allowed_origins: list[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> Settings:
        """Hydrate the composed settings model from environment variables."""

        load_dotenv(override=False)

        database = DatabaseSettings()
        matching = MatchingSettings()

        if matching.default_page_size > matching.max_page_size:
            logger.warning(
                "default_page_size_clamped",
                default_page_size=matching.default_page_size,
                max_page_size=matching.max_page_size,
            )
            matching = matching.model_copy(update={"default_page_size": matching.max_page_size})

        log_level = os.getenv("LOG_LEVEL", "INFO")
        log_format = os.getenv("LOG_FORMAT", "json").lower()
        if log_format not in ("json", "console"):
            logger.warning("log_format_unknown", log_format=log_format)
            log_format = "json"

        allowed_origins_raw = os.getenv("ALLOWED_ORIGINS", "*")
        allowed_origins = [
            origin.strip()
            for origin in allowed_origins_raw.split(",")
            if origin.strip()
        ]
        if not allowed_origins:
            allowed_origins = ["*"]

        return cls(
            database=database,
            matching=matching,
            log_level=log_level,
            log_format=log_format,
            allowed_origins=allowed_origins,
        )


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create singleton settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None


__all__ = [
    "DatabaseSettings",
    "MatchingSettings",
    "Settings",
    "get_settings",
    "reset_settings",
]
