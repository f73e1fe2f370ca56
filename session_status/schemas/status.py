"""
Output models: the classifier verdict and the panel's per-conversation metadata.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from pathlib import Path
from typing import Annotated, Self

import pydantic

from session_status.schemas.types import BaseStrictModel

__all__ = [
    'ClassificationResult',
    'ConversationMeta',
    'StatusIcon',
]


class ClassificationResult(BaseStrictModel):
    """
    Verdict for one session log.

    At most one flag is set:
    - is_waiting: the assistant's next turn is expected (spinner)
    - is_tool_use_waiting: a permission-gated tool call awaits human approval
    Both false means idle.

    git_branch and last_timestamp come from the newest primary-conversation
    user/assistant record the scan reached.
    """

    is_waiting: bool = False
    is_tool_use_waiting: bool = False
    git_branch: str | None = None
    last_timestamp: str | None = None

    @pydantic.model_validator(mode='after')
    def check_exclusive_flags(self) -> Self:
        if self.is_waiting and self.is_tool_use_waiting:
            raise ValueError('is_waiting and is_tool_use_waiting cannot both be set')
        return self

    @classmethod
    def idle(cls, git_branch: str | None = None, last_timestamp: str | None = None) -> ClassificationResult:
        """All-false default."""
        return cls(git_branch=git_branch, last_timestamp=last_timestamp)

    @property
    def is_busy(self) -> bool:
        return self.is_waiting or self.is_tool_use_waiting


class StatusIcon(StrEnum):
    """Panel icon identifiers, highest precedence first."""

    TOOL_PERMISSION = 'shield'
    BUSY = 'loading~spin'
    PINNED = 'pinned'
    DEFAULT = 'comment-discussion'


class ConversationMeta(BaseStrictModel):
    """One row of the conversation panel."""

    session_id: str
    title: str
    timestamp: Annotated[datetime, pydantic.Field(strict=False)]  # File mtime (tz-aware)
    file_path: Path
    message_count: int  # Estimated from file size
    model: str | None = None
    git_branch: str | None = None
    project_path: str
    project_dir: str
    is_pinned: bool = False
    is_waiting: bool = False
    is_tool_use_waiting: bool = False
    last_timestamp: str | None = None

    @property
    def icon(self) -> StatusIcon:
        """Tool permission > busy spinner > pinned > default."""
        if self.is_tool_use_waiting:
            return StatusIcon.TOOL_PERMISSION
        if self.is_waiting:
            return StatusIcon.BUSY
        if self.is_pinned:
            return StatusIcon.PINNED
        return StatusIcon.DEFAULT
