"""
Base configuration for session status services.

Settings are read from the environment (and an optional .env file) through
pydantic-settings and instantiated lazily on first access.
"""

from __future__ import annotations

import os
import pathlib
from typing import TypeVar

import lazy_object_proxy
import pydantic
import pydantic_settings

T = TypeVar('T', bound='BaseStatusSettings')


class BaseStatusSettings(pydantic_settings.BaseSettings):
    """Shared configuration across session status entry points."""

    model_config = pydantic_settings.SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=True,  # Fail fast on misconfiguration
        extra='forbid',  # Reject unknown .env entries
    )

    # Application metadata
    APP_NAME: str = 'claude-session-status'
    VERSION: str = '0.1.0'

    # Where Claude Code keeps per-project session logs
    CLAUDE_PROJECTS_DIR: pathlib.Path = pathlib.Path.home() / '.claude' / 'projects'

    # Sessions whose last activity is older than this never show as busy
    STALE_AFTER_SECONDS: int = 600

    @pydantic.field_validator('STALE_AFTER_SECONDS')
    @classmethod
    def validate_stale_after(cls, v: int) -> int:
        """Staleness window must be positive."""
        if v <= 0:
            raise ValueError('STALE_AFTER_SECONDS must be greater than 0')
        return v


def get_settings(settings_class: type[T], env_file: str | None = None) -> T:
    """
    Factory for creating settings with dynamic .env file loading.

    LOAD_ENV_FILE environment variable specifies custom .env file path.
    When unset, loads from environment variables only.

    Args:
        settings_class: Settings class to instantiate
        env_file: Optional path to .env file (overrides LOAD_ENV_FILE)

    Returns:
        Settings instance

    Raises:
        FileNotFoundError: If specified .env file doesn't exist
    """
    env_file_path = env_file or os.getenv('LOAD_ENV_FILE')

    if not env_file_path:
        return settings_class()  # No .env file, load from environment only

    resolved_path = pathlib.Path(env_file_path).resolve()
    if not resolved_path.exists():
        raise FileNotFoundError(f'Environment file not found: {resolved_path}')

    return settings_class(_env_file=resolved_path)


def lazy_settings(settings_class: type[T]) -> T:
    """
    Lazy settings - defers instantiation until first access.

    Args:
        settings_class: Settings class to instantiate

    Returns:
        Proxy that instantiates settings on first access
    """
    return lazy_object_proxy.Proxy(lambda: get_settings(settings_class))
