"""
Configuration management using pydantic-settings.

Loads configuration from STAGER_* environment variables and .env files.
Every field has a default, so a bare environment yields a working store in
the platform temp directory.
"""

from __future__ import annotations

import os
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Stager settings loaded from environment variables.

    Optional:
        TEMP_DIR: Directory for backing files (platform temp dir when unset)
        FILE_PREFIX: Filename prefix for backing files
        FILE_SUFFIX: Filename suffix for backing files
        COPY_BUFFER_SIZE: Block size used when copying into backing files
        FETCH_PARAM: Query parameter carrying the resource identifier
        ORPHAN_MAX_AGE_HOURS: Age after which unowned backing files are swept
        LOG_LEVEL: Logging level
        LOG_FILE: JSON Lines log file (console only when unset)
    """

    model_config = SettingsConfigDict(
        env_prefix="STAGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Backing store
    TEMP_DIR: Path | None = Field(
        default=None, description="Directory for backing files"
    )
    FILE_PREFIX: str = Field(default="stager-", description="Backing file prefix")
    FILE_SUFFIX: str = Field(default=".blob", description="Backing file suffix")
    COPY_BUFFER_SIZE: int = Field(
        default=16 * 1024,
        ge=1024,
        le=16 * 1024 * 1024,
        description="Copy block size in bytes",
    )

    # URLs
    FETCH_PARAM: str = Field(
        default="rid", min_length=1, description="Query parameter for identifiers"
    )

    # Housekeeping
    ORPHAN_MAX_AGE_HOURS: float = Field(
        default=24.0, gt=0.0, description="Age before orphaned files are swept"
    )

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    LOG_FILE: Path | None = Field(default=None, description="JSON Lines log file")

    @field_validator("FILE_PREFIX")
    @classmethod
    def validate_file_prefix(cls, v: str) -> str:
        """Backing files are matched by prefix, so it must be a plain name."""
        if not v:
            raise ValueError("FILE_PREFIX must not be empty")
        if os.sep in v or (os.altsep and os.altsep in v):
            raise ValueError("FILE_PREFIX must not contain path separators")
        return v

    @property
    def temp_dir(self) -> Path:
        """Effective backing directory."""
        return self.TEMP_DIR if self.TEMP_DIR is not None else Path(tempfile.gettempdir())

    def ensure_directories(self) -> None:
        """Create the backing directory if it doesn't exist."""
        self.temp_dir.mkdir(parents=True, exist_ok=True)

    def display(self) -> dict[str, str | int | float | None]:
        """Return effective settings for display."""
        return {
            "TEMP_DIR": str(self.temp_dir),
            "FILE_PREFIX": self.FILE_PREFIX,
            "FILE_SUFFIX": self.FILE_SUFFIX,
            "COPY_BUFFER_SIZE": self.COPY_BUFFER_SIZE,
            "FETCH_PARAM": self.FETCH_PARAM,
            "ORPHAN_MAX_AGE_HOURS": self.ORPHAN_MAX_AGE_HOURS,
            "LOG_LEVEL": self.LOG_LEVEL,
            "LOG_FILE": str(self.LOG_FILE) if self.LOG_FILE else None,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If settings are invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
