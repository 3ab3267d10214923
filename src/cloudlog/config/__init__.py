"""
cloudlog Configuration Module.

Implements the Nested Settings Pattern: each sub-module is an independent
concern with its own environment variable prefix.

Multi-Environment Support:
    Set `CLOUDLOG_ENV` to one of: development, testing, staging, production
    The system will load .env files in this order (later overrides earlier):
    1. .env
    2. .env.local
    3. .env.{environment}
    4. .env.{environment}.local

Usage:
    from cloudlog.config import settings

    settings.client.project_id
    settings.client.max_entry_size
    settings.logging.level
"""

from functools import cached_property
import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from .client import ClientSettings
from .logging import LoggingSettings


def _get_env_files() -> tuple[str, ...]:
    """Determine which .env files to load based on CLOUDLOG_ENV."""
    env = os.getenv("CLOUDLOG_ENV", "development")
    return (
        ".env",
        ".env.local",
        f".env.{env}",
        f".env.{env}.local",
    )


class Settings(BaseSettings):
    """Composite settings aggregating the client and logging domains."""

    model_config = SettingsConfigDict(
        env_file=_get_env_files(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @cached_property
    def client(self) -> ClientSettings:
        return ClientSettings()

    @cached_property
    def logging(self) -> LoggingSettings:
        return LoggingSettings()

    @property
    def log_level(self) -> str:
        return self.logging.level.value

    @property
    def log_sinks(self) -> str:
        return self.logging.sinks

    @property
    def log_format(self) -> str:
        return self.logging.format.value

    @property
    def log_file_path(self) -> str:
        return self.logging.file_path


# Singleton instance
settings = Settings()

__all__ = [
    "Settings",
    "settings",
    "ClientSettings",
    "LoggingSettings",
]
