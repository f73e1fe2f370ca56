"""
Pydantic models for the slice of a Claude Code session JSONL line that drives status detection.

A session log is append-only; every line is an independent JSON object tagged by `type`.
Only four shapes matter for deciding whether a session is busy:

- summary: the conversation was wrapped up
- user: a human turn, a tool result, a meta message or a system pseudo-message
- assistant: a model turn (possibly a streaming placeholder)
- everything else (file-history-snapshot, custom-title, queue-operation, progress, system,
  tags added by future Claude Code releases): opaque

Both the record union and the content block union use a callable discriminator with an
explicit catch-all member, so an unknown tag validates to OtherRecord / OpaqueBlock
instead of failing the line.

Field names mirror the JSON keys (camelCase on records, snake_case inside `message`)
so the models read like the log they describe.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Annotated, Any, Literal

import pydantic

from session_status.schemas.types import PermissiveModel, TolerantModel

__all__ = [
    'AssistantRecord',
    'ContentBlock',
    'EventRecord',
    'EventRecordAdapter',
    'Message',
    'OpaqueBlock',
    'OtherRecord',
    'SYNTHETIC_MODEL',
    'SummaryRecord',
    'TextBlock',
    'TokenUsage',
    'ToolResultBlock',
    'ToolUseBlock',
    'UserRecord',
    'decode_record',
]

# Model name on replay records written after an interruption
SYNTHETIC_MODEL = '<synthetic>'


def _type_field(v: Any) -> Any:
    """Read the `type` tag from raw input (dict) or a model instance (re-validation)."""
    if isinstance(v, Mapping):
        return v.get('type')
    return getattr(v, 'type', None)


# ==============================================================================
# Message Content Blocks (Tagged Union)
# ==============================================================================


class TextBlock(TolerantModel):
    """Text content block."""

    type: Literal['text']
    text: str | None = None


class ToolUseBlock(TolerantModel):
    """Tool invocation requested by the assistant."""

    type: Literal['tool_use']
    id: str | None = None
    name: str | None = None  # Empty string is still a name; only null/missing is not


class ToolResultBlock(TolerantModel):
    """Tool response written back as a user record."""

    type: Literal['tool_result']
    tool_use_id: str | None = None


class OpaqueBlock(PermissiveModel):
    """Any other block kind (image, thinking, document, ...)."""

    type: Any = None


_BLOCK_TAGS = frozenset({'text', 'tool_use', 'tool_result'})


def get_block_tag(v: Any) -> str:
    """Callable discriminator for ContentBlock."""
    block_type = _type_field(v)
    if isinstance(block_type, str) and block_type in _BLOCK_TAGS:
        return block_type
    return 'opaque'


ContentBlock = Annotated[
    Annotated[TextBlock, pydantic.Tag('text')]
    | Annotated[ToolUseBlock, pydantic.Tag('tool_use')]
    | Annotated[ToolResultBlock, pydantic.Tag('tool_result')]
    | Annotated[OpaqueBlock, pydantic.Tag('opaque')],
    pydantic.Discriminator(get_block_tag),
]


# ==============================================================================
# Message Structure
# ==============================================================================


def _numeric_or_none(v: Any) -> Any:
    """Keep JSON numbers, drop anything else (strings, booleans, objects)."""
    if isinstance(v, bool) or not isinstance(v, int | float):
        return None
    return v


class TokenUsage(TolerantModel):
    """Token usage reported on assistant messages (low fidelity while streaming)."""

    output_tokens: Annotated[int | float | None, pydantic.BeforeValidator(_numeric_or_none)] = None


class Message(TolerantModel):
    """The `message` object nested in user and assistant records."""

    role: str | None = None
    content: str | Sequence[ContentBlock] | None = None
    model: str | None = None
    stop_reason: str | None = None  # null while streaming or mid tool call
    usage: TokenUsage | None = None


# ==============================================================================
# Records
# ==============================================================================


class ConversationRecord(TolerantModel):
    """Fields shared by user and assistant records."""

    sessionId: str | None = None
    timestamp: str | None = None
    gitBranch: str | None = None
    isSidechain: bool | None = None
    message: Message | None = None

    @property
    def content(self) -> str | Sequence[ContentBlock] | None:
        return self.message.content if self.message else None

    @property
    def blocks(self) -> Sequence[ContentBlock]:
        """Content blocks, empty when content is plain text or absent."""
        content = self.content
        if content is None or isinstance(content, str):
            return ()
        return content


class UserRecord(ConversationRecord):
    """User record: human turn, tool result, meta message or system pseudo-message."""

    type: Literal['user']
    isMeta: bool | None = None

    @property
    def has_tool_result(self) -> bool:
        return any(isinstance(block, ToolResultBlock) for block in self.blocks)


class AssistantRecord(ConversationRecord):
    """Assistant record, written incrementally while a response streams."""

    type: Literal['assistant']

    @property
    def model(self) -> str | None:
        return self.message.model if self.message else None

    @property
    def is_synthetic(self) -> bool:
        """Replay written after an interruption, not a real model turn."""
        return self.model == SYNTHETIC_MODEL

    @property
    def stop_reason(self) -> str | None:
        return self.message.stop_reason if self.message else None

    @property
    def output_tokens(self) -> int | float | None:
        if self.message is None or self.message.usage is None:
            return None
        return self.message.usage.output_tokens

    @property
    def text_length(self) -> int:
        """Total characters across text blocks (0 for plain-string content)."""
        return sum(len(block.text or '') for block in self.blocks if isinstance(block, TextBlock))

    @property
    def first_named_tool_use(self) -> ToolUseBlock | None:
        """Leftmost tool_use block that carries a name."""
        for block in self.blocks:
            if isinstance(block, ToolUseBlock) and block.name is not None:
                return block
        return None


class SummaryRecord(TolerantModel):
    """Session summary record (written when a conversation is wrapped up)."""

    type: Literal['summary']
    summary: str | None = None


class OtherRecord(PermissiveModel):
    """Any record kind the status classifier does not interpret."""

    type: Any = None

    @property
    def session_id(self) -> str | None:
        value = self.get_extra_fields().get('sessionId')
        return value if isinstance(value, str) else None


# ==============================================================================
# Event Record (Tagged Union)
# ==============================================================================

_RECORD_TAGS = frozenset({'summary', 'user', 'assistant'})


def get_record_tag(v: Any) -> str:
    """
    Callable discriminator for EventRecord.

    Missing, non-string and unknown `type` values all route to 'other'.
    """
    record_type = _type_field(v)
    if isinstance(record_type, str) and record_type in _RECORD_TAGS:
        return record_type
    return 'other'


EventRecord = Annotated[
    Annotated[SummaryRecord, pydantic.Tag('summary')]
    | Annotated[UserRecord, pydantic.Tag('user')]
    | Annotated[AssistantRecord, pydantic.Tag('assistant')]
    | Annotated[OtherRecord, pydantic.Tag('other')],
    pydantic.Discriminator(get_record_tag),
]

# Cached adapter (required for union types)
EventRecordAdapter: pydantic.TypeAdapter[EventRecord] = pydantic.TypeAdapter(EventRecord)


def decode_record(line: str) -> EventRecord | None:
    """
    Decode one JSONL line into an EventRecord.

    The first line of a tail window is usually the cut-off end of a record that
    started before the window, so malformed input is expected: it yields None
    and the caller moves on to the next line.

    Args:
        line: One candidate line (without the trailing newline)

    Returns:
        The tagged record, or None if the line is not valid JSON of a usable shape
    """
    try:
        raw_data = json.loads(line)
    except json.JSONDecodeError:
        return None

    try:
        return EventRecordAdapter.validate_python(raw_data)
    except pydantic.ValidationError:
        return None
