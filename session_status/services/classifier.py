"""
Session state classifier - is this Claude Code session busy right now?

Given only the tail of a session log, decides between:
- idle
- waiting for the assistant's next turn (spinner)
- waiting for a human to approve a permission-gated tool call

The decision is a single backward scan, newest record first. Each record either
produces a verdict (stop) or is skipped (keep scanning); the only carry-state is
WalkerState, which lives for one call. Nothing is cached between calls, so two
calls on an unchanged file always agree.

Scan order per record:
1. summary -> idle
2. other record kinds -> skip
3. sidechain user/assistant -> skip (sub-agent traffic, ignored for branch/timestamp too)
4. synthetic assistant -> skip (replay written after an interruption)
5. capture git branch / timestamp from the newest surviving record
6. role-specific rules (_visit_user, _visit_assistant)

Assistant records with usage figures go through classify_placeholder() first,
because responses are written incrementally with unreliable token counts.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from pathlib import Path

from session_status.schemas.records import (
    AssistantRecord,
    ConversationRecord,
    EventRecord,
    OtherRecord,
    SummaryRecord,
    TextBlock,
    UserRecord,
    decode_record,
)
from session_status.schemas.status import ClassificationResult
from session_status.services.tail import TAIL_WINDOW_BYTES, read_tail_lines

__all__ = [
    'PERMISSION_GRACE_MS',
    'PERMISSION_TOOLS',
    'Placeholder',
    'WalkerState',
    'classify_lines',
    'classify_placeholder',
    'classify_records',
    'classify_session_file',
    'parse_timestamp',
]

# ==============================================================================
# Constants
# ==============================================================================

# Tools whose invocation may need explicit human approval
PERMISSION_TOOLS: frozenset[str] = frozenset(
    {'Bash', 'Write', 'Edit', 'NotebookEdit', 'AskUserQuestion', 'ExitPlanMode'}
)

TERMINAL_STOP_REASONS: frozenset[str] = frozenset({'end_turn', 'stop_sequence', 'refusal'})

INTERRUPT_PREFIX = '[Request interrupted by user'

# Permission tool calls younger than this show a spinner, not the approval icon
PERMISSION_GRACE_MS = 3000

# Empirically tuned placeholder thresholds
ABANDONED_TEXT_LENGTH = 100
MIN_RATIO_TEXT_LENGTH = 10
CHARS_PER_TOKEN_FLOOR = 20


# ==============================================================================
# Streaming Placeholder Heuristic
# ==============================================================================


class Placeholder(Enum):
    """What an assistant record with usage figures and no stop marker really is."""

    ABANDONED = 'abandoned'  # Completed response whose stop marker was never written
    TEXT_ONLY = 'text_only'  # Short text-only placeholder: skip, remember a text reply exists
    INTERMEDIATE = 'intermediate'  # Mid-stream write: skip
    NOT_PLACEHOLDER = 'not_placeholder'  # Real record: continue with tool-use detection


def classify_placeholder(
    output_tokens: int | float,
    text_length: int,
    has_tool_use: bool,
    tool_result_seen: bool,
) -> Placeholder:
    """
    Classify an assistant record by its token count versus its text volume.

    A token count of 0-1 almost always means "not a real message yet", unless
    the text is already substantial, in which case the final write (with the
    stop marker) was lost. With 2+ tokens, a text far too long for the token
    count is the same lost-final-write situation.

    Args:
        output_tokens: usage.output_tokens of the record
        text_length: Total characters across text blocks
        has_tool_use: Whether the content has a named tool_use block
        tool_result_seen: Whether a newer record was a tool result

    Returns:
        Placeholder verdict
    """
    if output_tokens <= 1:
        if text_length > ABANDONED_TEXT_LENGTH and not has_tool_use:
            return Placeholder.ABANDONED
        if text_length > 0 and not has_tool_use and not tool_result_seen:
            return Placeholder.TEXT_ONLY
        return Placeholder.INTERMEDIATE

    if (
        output_tokens >= 2
        and text_length > MIN_RATIO_TEXT_LENGTH
        and output_tokens < text_length / CHARS_PER_TOKEN_FLOOR
    ):
        return Placeholder.ABANDONED

    return Placeholder.NOT_PLACEHOLDER


# ==============================================================================
# Timestamps
# ==============================================================================


def parse_timestamp(value: str | None) -> datetime | None:
    """
    Parse an ISO-8601 record timestamp into an aware datetime.

    Naive values are read as UTC. Returns None for missing or unparseable input.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _age_ms(timestamp: str | None, now: datetime) -> float:
    """Milliseconds since `timestamp`; infinite when it is missing or unparseable."""
    parsed = parse_timestamp(timestamp)
    if parsed is None:
        return float('inf')
    return (now - parsed) / timedelta(milliseconds=1)


# ==============================================================================
# Backward Walker
# ==============================================================================


@dataclass
class WalkerState:
    """Carry-state for a single backward scan."""

    tool_result_seen: bool = False
    text_response_seen: bool = False
    git_branch: str | None = None
    last_timestamp: str | None = None

    def capture(self, record: ConversationRecord) -> None:
        """Take branch and timestamp from the newest record that has them."""
        if self.git_branch is None and record.gitBranch:
            self.git_branch = record.gitBranch
        if self.last_timestamp is None and record.timestamp:
            self.last_timestamp = record.timestamp

    def result(self, is_waiting: bool = False, is_tool_use_waiting: bool = False) -> ClassificationResult:
        return ClassificationResult(
            is_waiting=is_waiting,
            is_tool_use_waiting=is_tool_use_waiting,
            git_branch=self.git_branch,
            last_timestamp=self.last_timestamp,
        )


def _visit_user(record: UserRecord, state: WalkerState) -> ClassificationResult | None:
    content = record.content

    # Only block-sequence content can carry the interrupt marker or tool results
    if content is not None and not isinstance(content, str):
        first = content[0] if content else None
        if isinstance(first, TextBlock) and first.text and first.text.startswith(INTERRUPT_PREFIX):
            return state.result()
        if record.has_tool_result:
            state.tool_result_seen = True
            return None

    if record.isMeta:
        return None

    # System pseudo-messages: <task-notification>, <system-reminder>, ...
    if isinstance(content, str) and content.startswith('<'):
        return None

    return state.result(is_waiting=True)


def _visit_assistant(record: AssistantRecord, state: WalkerState, now: datetime) -> ClassificationResult | None:
    if record.stop_reason in TERMINAL_STOP_REASONS:
        return state.result()

    # First match wins, even when a later block is a permission tool
    tool_use = record.first_named_tool_use

    output_tokens = record.output_tokens
    if output_tokens is not None:
        match classify_placeholder(output_tokens, record.text_length, tool_use is not None, state.tool_result_seen):
            case Placeholder.ABANDONED:
                return state.result()
            case Placeholder.TEXT_ONLY:
                state.text_response_seen = True
                return None
            case Placeholder.INTERMEDIATE:
                return None
            case Placeholder.NOT_PLACEHOLDER:
                pass

    if tool_use is None:
        # No stop reason, no pending tool call: still generating
        return state.result(is_waiting=True)

    if not state.tool_result_seen:
        if tool_use.name in PERMISSION_TOOLS and _age_ms(record.timestamp, now) > PERMISSION_GRACE_MS:
            return state.result(is_tool_use_waiting=True)
        return state.result(is_waiting=True)

    # Tool call already answered further down the log
    if state.text_response_seen:
        return state.result()
    return state.result(is_waiting=True)


def _step(record: EventRecord, state: WalkerState, now: datetime) -> ClassificationResult | None:
    """Process one record. A result stops the scan; None continues it."""
    match record:
        case SummaryRecord():
            return state.result()
        case OtherRecord():
            return None
        case UserRecord() | AssistantRecord() if record.isSidechain:
            return None
        case AssistantRecord() if record.is_synthetic:
            return None
        case UserRecord():
            state.capture(record)
            return _visit_user(record, state)
        case AssistantRecord():
            state.capture(record)
            return _visit_assistant(record, state, now)
    return None


# ==============================================================================
# Public API
# ==============================================================================


def classify_records(records: Iterable[EventRecord], now: datetime | None = None) -> ClassificationResult:
    """
    Classify decoded records supplied newest first.

    Args:
        records: Decoded records, most recent first
        now: Reference time for the permission grace window (default: current UTC time)

    Returns:
        The first definitive verdict, or idle if the records run out
    """
    if now is None:
        now = datetime.now(UTC)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=UTC)

    state = WalkerState()
    for record in records:
        verdict = _step(record, state, now)
        if verdict is not None:
            return verdict
    return state.result()


def _decode_newest_first(lines: Sequence[str]) -> Iterator[EventRecord]:
    for line in reversed(lines):
        record = decode_record(line)
        if record is not None:
            yield record


def classify_lines(lines: Sequence[str], now: datetime | None = None) -> ClassificationResult:
    """
    Classify candidate JSONL lines given oldest first (file order).

    Lines are decoded lazily from the end, so the scan stops decoding as soon
    as a verdict is reached. Undecodable lines are skipped.
    """
    return classify_records(_decode_newest_first(lines), now=now)


def classify_session_file(
    path: Path,
    now: datetime | None = None,
    window_bytes: int = TAIL_WINDOW_BYTES,
) -> ClassificationResult:
    """
    Classify a session log from its tail window.

    Never raises for I/O or data problems: a missing, empty or unreadable file
    is idle.

    Args:
        path: Session JSONL file
        now: Reference time (default: current UTC time)
        window_bytes: Tail window size

    Returns:
        ClassificationResult for the session
    """
    return classify_lines(read_tail_lines(path, window_bytes), now=now)
