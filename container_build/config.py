"""Configuration settings for container_build.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the CONTAINER_BUILD_
    prefix. CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="CONTAINER_BUILD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Engine
    engine: str = Field(
        default="docker",
        description="Build engine used when neither options nor env select one",
    )

    # Paths
    tmp_dir: Path | None = Field(
        default=None,
        description="Root for per-run temp directories (uses system default if not set)",
    )
    output_file: Path | None = Field(
        default=None,
        description="File that build outputs are appended to as key=value pairs",
    )

    # Operational
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    build_timeout: int | None = Field(
        default=None,
        ge=1,
        description="Timeout for the build process in seconds (unlimited if not set)",
    )

    # Collaborators
    metadata_entry_point: str = Field(
        default="default",
        description="Entry point name in the container_build.metadata group",
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
    return settings.model_dump_json(indent=2)


__all__ = ["Settings", "get_settings", "print_settings_json"]
