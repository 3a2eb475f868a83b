"""Pydantic Settings model for application configuration."""

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from github_issues_sync.utils.constants import (
    DEFAULT_DEBOUNCE_SECONDS,
    DEFAULT_GITHUB_API_URL,
    DEFAULT_ISSUES_DIR,
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_SYNC_INTERVAL,
)


class Settings(BaseSettings):
    """Environment variable settings for the application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Generic application-wide settings
    DEBUG: bool = False

    # GitHub API settings
    GITHUB_API_URL: str = DEFAULT_GITHUB_API_URL
    REPO: str | None = Field(default=None, validation_alias=AliasChoices("REPO", "GITHUB_REPO"))

    # GitHub PAT settings
    GITHUB_PAT_TOKEN: str | None = Field(default=None, validation_alias=AliasChoices("GITHUB_PAT_TOKEN", "GITHUB_TOKEN"))

    # GitHub App settings
    GITHUB_APP_ID: int | None = None
    GITHUB_APP_PRIVATE_KEY_PATH: Path | None = None
    GITHUB_APP_INSTALLATION_ID: int | None = None

    # Synchronization settings
    ISSUES_DIR: Path = Path(DEFAULT_ISSUES_DIR)
    SYNC_INTERVAL: float = DEFAULT_SYNC_INTERVAL
    DEBOUNCE_SECONDS: float = DEFAULT_DEBOUNCE_SECONDS
    MAX_CONCURRENCY: int = DEFAULT_MAX_CONCURRENCY
    STATE_FILE: Path | None = None
