"""
App Configuration.

This module defines the global application settings using Pydantic Settings.
It loads configuration variables from environment variables and/or a .env file,
and, when started through the command line entry point, from CLI flags.

Usage:
    from bors.core.config import get_settings

    settings = get_settings()
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application Settings.

    Attributes:
        WEBHOOK_SECRET: Secret used to authenticate webhooks.
        APP_ID: GitHub App ID.
        PRIVATE_KEY: Private key (PEM) used to authenticate as a GitHub App.
        DATABASE_URL: Database connection string.
        CMD_PREFIX: Literal that must precede every bot command in a comment.
        MAX_CONCURRENT_REQUESTS: Requests served at once; further ones wait.
        REFRESH_INTERVAL_SECONDS: How often running builds are checked for timeouts.
    """

    # Core
    PROJECT_NAME: str = "bors"
    WEBHOOK_SECRET: SecretStr
    APP_ID: int
    PRIVATE_KEY: SecretStr
    DATABASE_URL: str

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8080
    MAX_CONCURRENT_REQUESTS: int = Field(default=100, gt=0)
    LOG_LEVEL: str = "INFO"

    # Bot behaviour
    CMD_PREFIX: str = "@bors"
    REFRESH_INTERVAL_SECONDS: float = 60.0

    # GitHub
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_TIMEOUT_SECONDS: float = 30.0
    BOT_LOGIN: Optional[str] = None  # Resolved from the App slug when unset

    model_config = SettingsConfigDict(
        env_file=".env", env_ignore_empty=True, extra="ignore"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings, read from the environment on first use."""
    return Settings()
