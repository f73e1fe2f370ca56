"""
Conversation panel configuration.

Extends base configuration with listing and pin settings.
"""

from __future__ import annotations

import pathlib

import pydantic

from session_status.config.base import BaseStatusSettings, lazy_settings


class PanelSettings(BaseStatusSettings):
    """Settings for listing conversations and persisting pins."""

    PIN_FILE: pathlib.Path = pathlib.Path.home() / '.claude' / 'conversation-pins.json'

    # Lines read from the start of each log for title/session id/model
    HEAD_LINE_LIMIT: int = 30

    @pydantic.field_validator('HEAD_LINE_LIMIT')
    @classmethod
    def validate_head_line_limit(cls, v: int) -> int:
        if v <= 0:
            raise ValueError('HEAD_LINE_LIMIT must be greater than 0')
        return v


# Module-level singleton (lazy-loaded)
settings = lazy_settings(PanelSettings)
