"""Pydantic models for session log records and status output."""

from __future__ import annotations

from session_status.schemas.records import (
    AssistantRecord,
    ContentBlock,
    EventRecord,
    EventRecordAdapter,
    Message,
    OpaqueBlock,
    OtherRecord,
    SummaryRecord,
    TextBlock,
    TokenUsage,
    ToolResultBlock,
    ToolUseBlock,
    UserRecord,
    decode_record,
)
from session_status.schemas.status import ClassificationResult, ConversationMeta, StatusIcon

__all__ = [
    # Records
    'AssistantRecord',
    'EventRecord',
    'EventRecordAdapter',
    'OtherRecord',
    'SummaryRecord',
    'UserRecord',
    'decode_record',
    # Message content
    'ContentBlock',
    'Message',
    'OpaqueBlock',
    'TextBlock',
    'TokenUsage',
    'ToolResultBlock',
    'ToolUseBlock',
    # Output
    'ClassificationResult',
    'ConversationMeta',
    'StatusIcon',
]
