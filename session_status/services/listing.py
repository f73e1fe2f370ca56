"""
Session listing service - builds the conversation panel rows for a project.

For each session log in ~/.claude/projects/<encoded-workspace>/:
- title, session id, model and branch come from the first lines of the file
- the busy indicator comes from the classifier (tail of the file)
- a staleness gate forces the indicator off for sessions with no recent activity

The classifier reports what the log says; the staleness gate lives here because
"no activity for 10 minutes" is a presentation policy, not a property of the log.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path

from session_status.exceptions import ProjectNotFoundError
from session_status.paths import decode_project_dir, encode_path
from session_status.protocols import LoggerProtocol
from session_status.schemas.records import (
    AssistantRecord,
    ContentBlock,
    OtherRecord,
    TextBlock,
    UserRecord,
    decode_record,
)
from session_status.schemas.status import ClassificationResult, ConversationMeta
from session_status.services.classifier import classify_session_file, parse_timestamp
from session_status.services.pins import PinService

__all__ = [
    'HeadMetadata',
    'SessionListingService',
    'extract_title',
    'filter_conversations',
    'format_relative_time',
    'read_head_metadata',
]

MAX_TITLE_LENGTH = 60

DEFAULT_HEAD_LINE_LIMIT = 30

DEFAULT_STALE_AFTER = timedelta(minutes=10)

# Rough average size of one user/assistant exchange on disk
BYTES_PER_MESSAGE_ESTIMATE = 2048


# ==============================================================================
# Head Metadata
# ==============================================================================


@dataclass(frozen=True)
class HeadMetadata:
    """Identity fields read from the start of a session log."""

    session_id: str | None = None
    title: str | None = None
    git_branch: str | None = None
    model: str | None = None


def extract_title(content: str | Sequence[ContentBlock] | None) -> str | None:
    """
    Title candidate from a user message.

    Skips system pseudo-messages (text starting with '<'). For block content,
    the first qualifying text block wins.
    """
    if content is None:
        return None
    if isinstance(content, str):
        if not content or content.startswith('<'):
            return None
        return content[:MAX_TITLE_LENGTH]
    for block in content:
        if isinstance(block, TextBlock) and block.text and not block.text.startswith('<'):
            return block.text[:MAX_TITLE_LENGTH]
    return None


def read_head_metadata(path: Path, line_limit: int = DEFAULT_HEAD_LINE_LIMIT) -> HeadMetadata:
    """
    Scan the first `line_limit` lines of a session log for identity fields.

    Each field keeps its first value. Lines that do not decode are skipped.

    Raises:
        OSError: If the file cannot be read
    """
    session_id: str | None = None
    title: str | None = None
    git_branch: str | None = None
    model: str | None = None

    with open(path, encoding='utf-8', errors='replace') as f:
        for line_num, line in enumerate(f, start=1):
            if line_num > line_limit:
                break
            line = line.strip()
            if not line:
                continue

            record = decode_record(line)
            match record:
                case UserRecord() | AssistantRecord():
                    session_id = session_id or record.sessionId
                    git_branch = git_branch or record.gitBranch
                case OtherRecord():
                    session_id = session_id or record.session_id
                case _:
                    continue

            if title is None and isinstance(record, UserRecord) and not record.isMeta and not record.isSidechain:
                title = extract_title(record.content)

            if model is None and isinstance(record, AssistantRecord) and not record.is_synthetic:
                model = record.model

    return HeadMetadata(session_id=session_id, title=title, git_branch=git_branch, model=model)


# ==============================================================================
# Presentation Helpers
# ==============================================================================


def filter_conversations(conversations: Iterable[ConversationMeta], text: str) -> list[ConversationMeta]:
    """Case-insensitive match on title or git branch. Empty text keeps everything."""
    needle = text.lower()
    if not needle:
        return list(conversations)
    return [
        c
        for c in conversations
        if needle in c.title.lower() or (c.git_branch is not None and needle in c.git_branch.lower())
    ]


def format_relative_time(moment: datetime, now: datetime | None = None) -> str:
    """
    Compact age label: now, 5m, 3h, 2d, 1w, 4mo.

    Examples:
        >>> format_relative_time(datetime(2026, 1, 1, tzinfo=UTC), datetime(2026, 1, 1, 2, tzinfo=UTC))
        '2h'
    """
    if now is None:
        now = datetime.now(UTC)

    seconds = (now - moment) // timedelta(seconds=1)
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24

    if minutes < 1:
        return 'now'
    if minutes < 60:
        return f'{minutes}m'
    if hours < 24:
        return f'{hours}h'
    if days < 7:
        return f'{days}d'
    if days < 30:
        return f'{days // 7}w'
    return f'{days // 30}mo'


# ==============================================================================
# Session Listing Service
# ==============================================================================


class SessionListingService:
    """
    Service for listing conversations of a Claude Code project with live status.

    Stateless across calls: every listing re-reads the logs and re-runs the classifier.
    """

    def __init__(
        self,
        projects_dir: Path,
        pins: PinService | None = None,
        stale_after: timedelta = DEFAULT_STALE_AFTER,
        head_line_limit: int = DEFAULT_HEAD_LINE_LIMIT,
    ) -> None:
        """
        Args:
            projects_dir: Claude projects directory (usually ~/.claude/projects)
            pins: Pin store; no pins when omitted
            stale_after: Inactivity after which the busy indicator is suppressed
            head_line_limit: Lines scanned from the start of each log
        """
        self.projects_dir = projects_dir
        self.pins = pins
        self.stale_after = stale_after
        self.head_line_limit = head_line_limit

    def project_dir_for(self, workspace: Path) -> Path:
        """
        Session directory for a workspace.

        Raises:
            ProjectNotFoundError: If Claude Code has no sessions for the workspace
        """
        project_dir = self.projects_dir / encode_path(workspace)
        if not project_dir.is_dir():
            raise ProjectNotFoundError(workspace, project_dir)
        return project_dir

    def apply_staleness_gate(
        self, status: ClassificationResult, fallback_activity: datetime, now: datetime
    ) -> ClassificationResult:
        """
        Suppress the busy indicator for sessions without recent activity.

        Activity time is the record timestamp captured by the classifier, or
        `fallback_activity` (file mtime) when the tail had none.
        """
        last_activity = parse_timestamp(status.last_timestamp) or fallback_activity
        if status.is_busy and now - last_activity > self.stale_after:
            return ClassificationResult.idle(git_branch=status.git_branch, last_timestamp=status.last_timestamp)
        return status

    def describe_session(
        self,
        path: Path,
        project_dir: str,
        project_path: str,
        pinned: frozenset[str] = frozenset(),
        now: datetime | None = None,
    ) -> ConversationMeta | None:
        """
        Build the panel row for one session log.

        Returns:
            ConversationMeta, or None if the log has no title or session id in its head

        Raises:
            OSError: If the file cannot be read
        """
        if now is None:
            now = datetime.now(UTC)

        head = read_head_metadata(path, self.head_line_limit)
        if not head.title or not head.session_id:
            return None

        stat = path.stat()
        mtime = datetime.fromtimestamp(stat.st_mtime, UTC)
        status = self.apply_staleness_gate(classify_session_file(path, now=now), mtime, now)

        return ConversationMeta(
            session_id=head.session_id,
            title=head.title,
            timestamp=mtime,
            file_path=path,
            message_count=max(1, round(stat.st_size / BYTES_PER_MESSAGE_ESTIMATE)),
            model=head.model,
            # Tail branch tracks worktree switches made mid-session
            git_branch=status.git_branch or head.git_branch,
            project_path=project_path,
            project_dir=project_dir,
            is_pinned=head.session_id in pinned,
            is_waiting=status.is_waiting,
            is_tool_use_waiting=status.is_tool_use_waiting,
            last_timestamp=status.last_timestamp,
        )

    async def list_project(
        self,
        project_dir: str,
        logger: LoggerProtocol,
        project_path: str | None = None,
        now: datetime | None = None,
    ) -> list[ConversationMeta]:
        """
        List conversations in one project directory, newest first.

        Args:
            project_dir: Encoded directory name under projects_dir
            logger: Logger instance
            project_path: Real workspace path (best-effort decoded from project_dir if omitted)
            now: Reference time (default: current UTC time)

        Returns:
            Conversations sorted by file modification time, newest first.
            Empty if the directory does not exist.
        """
        dir_path = self.projects_dir / project_dir
        if not dir_path.is_dir():
            return []

        if project_path is None:
            project_path = decode_project_dir(project_dir)
        pinned = self.pins.get_pinned_ids() if self.pins else frozenset()

        conversations: list[ConversationMeta] = []
        for file_path in sorted(dir_path.glob('*.jsonl')):
            try:
                meta = self.describe_session(file_path, project_dir, project_path, pinned, now)
            except OSError as e:
                await logger.warning(f'Skipping unreadable session file {file_path.name}: {e}')
                continue

            if meta is None:
                await logger.info(f'Skipping {file_path.name}: no title or session id in first {self.head_line_limit} lines')
                continue
            conversations.append(meta)

        conversations.sort(key=lambda c: c.timestamp, reverse=True)
        await logger.info(f'Listed {len(conversations)} conversations from {dir_path}')
        return conversations

    async def list_workspace(
        self,
        workspace: Path,
        logger: LoggerProtocol,
        now: datetime | None = None,
    ) -> list[ConversationMeta]:
        """
        List conversations for a workspace directory.

        Raises:
            ProjectNotFoundError: If Claude Code has no sessions for the workspace
        """
        project_dir = self.project_dir_for(workspace)
        return await self.list_project(project_dir.name, logger, project_path=str(workspace), now=now)
