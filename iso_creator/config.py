"""Configuration settings for iso_creator.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_artifacts_dir() -> Path:
    """Return the default artifacts directory."""
    return Path.home() / ".local" / "share" / "iso-creator" / "artifacts"


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the ISO_CREATOR_
    prefix. CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="ISO_CREATOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    work_dir: Path | None = Field(
        default=None,
        description="Parent directory for per-job build trees (system temp if unset)",
    )
    artifacts_dir: Path = Field(
        default_factory=_default_artifacts_dir,
        description="Root directory for locally stored images",
    )
    keep_build_dir: bool = Field(
        default=False,
        description="Keep per-job build trees after the pipeline finishes",
    )

    # Object storage
    storage_url: str | None = Field(
        default=None,
        description="HTTP object storage endpoint (local storage if not set)",
    )
    storage_public_url: str | None = Field(
        default=None,
        description="Public base URL used in download links",
    )
    storage_token: str | None = Field(
        default=None,
        description="Bearer token for the object storage endpoint",
    )

    # Operational modes
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Concurrency
    max_concurrent_builds: int = Field(
        default=2,
        ge=1,
        le=32,
        description="Maximum concurrently running build pipelines",
    )
    status_poll_interval: float = Field(
        default=0.5,
        gt=0,
        description="Seconds between registry polls in a status stream",
    )

    # Timeouts (in seconds)
    tool_timeout: float = Field(
        default=3600,
        gt=0,
        description="Timeout for each external tool invocation",
    )
    upload_timeout: float = Field(
        default=3600,
        gt=0,
        description="Timeout for image uploads",
    )


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2, exclude={"storage_token"})


__all__ = ["Settings", "get_settings", "print_settings_json"]
