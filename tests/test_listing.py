"""Tests for the session listing service."""

from __future__ import annotations

import asyncio
import json
import os
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from session_status.exceptions import ProjectNotFoundError
from session_status.paths import decode_project_dir, encode_path, project_display_name
from session_status.protocols import NullLogger
from session_status.schemas.status import ConversationMeta, StatusIcon
from session_status.services.listing import (
    SessionListingService,
    extract_title,
    filter_conversations,
    format_relative_time,
    read_head_metadata,
)
from session_status.services.pins import PinService
from tests.records import assistant_msg, other_record, text_block, tool_use_block, user_msg

NOW = datetime(2026, 2, 19, 12, 0, 0, tzinfo=UTC)
PROJECT_DIR = '-Users-dev-project'


class RecordingLogger:
    """LoggerProtocol implementation that keeps messages for assertions."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    async def info(self, message: str) -> None:
        self.messages.append(('info', message))

    async def warning(self, message: str) -> None:
        self.messages.append(('warning', message))

    async def error(self, message: str) -> None:
        self.messages.append(('error', message))


def _set_mtime(path: Path, moment: datetime) -> None:
    os.utime(path, (moment.timestamp(), moment.timestamp()))


def _iso(moment: datetime) -> str:
    return moment.isoformat().replace('+00:00', 'Z')


@pytest.fixture
def projects_dir(tmp_path: Path) -> Path:
    path = tmp_path / 'projects'
    path.mkdir()
    return path


@pytest.fixture
def service(projects_dir: Path, tmp_path: Path) -> SessionListingService:
    return SessionListingService(projects_dir, pins=PinService(tmp_path / 'pins.json'))


# ==============================================================================
# Titles and head metadata
# ==============================================================================


@pytest.mark.parametrize(
    'content, expected',
    [
        ('Fix the login bug', 'Fix the login bug'),
        ('x' * 80, 'x' * 60),
        ('<command-name>/clear</command-name>', None),
        ('', None),
        (None, None),
        ([text_block('<system-reminder>'), text_block('Real question')], 'Real question'),
        ([{'type': 'image'}, text_block('Describe this')], 'Describe this'),
        ([text_block('')], None),
        ([], None),
    ],
    ids=['plain', 'truncated', 'pseudo-message', 'empty', 'none', 'skip-pseudo-block', 'skip-image', 'empty-text', 'no-blocks'],
)
def test_extract_title(write_jsonl, content, expected: str | None) -> None:
    path = write_jsonl([user_msg(content)])

    assert read_head_metadata(path).title == expected
    if not isinstance(content, list):
        assert extract_title(content) == expected


def test_head_metadata_fields(write_jsonl) -> None:
    path = write_jsonl(
        [
            other_record('file-history-snapshot'),
            user_msg('caveat', is_meta=True, git_branch='main'),
            user_msg('<command-name>/model</command-name>'),
            user_msg('side question', is_sidechain=True),
            user_msg('Add retries to the uploader'),
            assistant_msg('interrupted', model='<synthetic>'),
            assistant_msg('On it', model='claude-opus-4-1', git_branch='feature'),
            user_msg('second prompt'),
        ]
    )

    head = read_head_metadata(path)

    assert head.session_id == 'sess-1'
    assert head.title == 'Add retries to the uploader'
    assert head.git_branch == 'main'
    assert head.model == 'claude-opus-4-1'


def test_head_metadata_session_id_from_other_record(write_jsonl) -> None:
    path = write_jsonl([{'type': 'queue-operation', 'sessionId': 'sess-42'}, user_msg('hi', session_id='sess-1')])

    assert read_head_metadata(path).session_id == 'sess-42'


def test_head_metadata_line_limit(write_jsonl) -> None:
    records = [user_msg('meta', is_meta=True)] * 30 + [user_msg('too late')]
    path = write_jsonl(records)

    assert read_head_metadata(path).title is None
    assert read_head_metadata(path, line_limit=31).title == 'too late'


def test_head_metadata_skips_garbage_lines(write_raw) -> None:
    path = write_raw('not json\n\n' + json.dumps(user_msg('still found')) + '\n')

    assert read_head_metadata(path).title == 'still found'


def test_head_metadata_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(OSError):
        read_head_metadata(tmp_path / 'missing.jsonl')


# ==============================================================================
# describe_session and the staleness gate
# ==============================================================================


def test_describe_session(service: SessionListingService, write_jsonl, projects_dir: Path) -> None:
    path = write_jsonl(
        [
            user_msg('Refactor the parser', git_branch='main', timestamp=_iso(NOW - timedelta(minutes=1))),
            assistant_msg('Done', stop_reason='end_turn', model='claude-sonnet-4-5', git_branch='worktree-parser'),
        ],
        directory=projects_dir / PROJECT_DIR,
    )
    _set_mtime(path, NOW - timedelta(minutes=1))

    meta = service.describe_session(path, PROJECT_DIR, '/Users/dev/project', frozenset({'sess-1'}), now=NOW)

    assert meta is not None
    assert meta.session_id == 'sess-1'
    assert meta.title == 'Refactor the parser'
    assert meta.model == 'claude-sonnet-4-5'
    assert meta.git_branch == 'worktree-parser'
    assert meta.project_dir == PROJECT_DIR
    assert meta.project_path == '/Users/dev/project'
    assert meta.file_path == path
    assert meta.timestamp == NOW - timedelta(minutes=1)
    assert meta.message_count == 1
    assert meta.is_pinned
    assert not meta.is_waiting
    assert meta.icon is StatusIcon.PINNED


def test_describe_session_without_title(service: SessionListingService, write_jsonl) -> None:
    path = write_jsonl([user_msg('<local-command-stdout></local-command-stdout>'), assistant_msg('ok')])

    assert service.describe_session(path, PROJECT_DIR, '/p', now=NOW) is None


def test_describe_session_falls_back_to_head_branch(service: SessionListingService, write_jsonl) -> None:
    path = write_jsonl([user_msg('hello', git_branch='main'), assistant_msg('hi', stop_reason='end_turn')])

    meta = service.describe_session(path, PROJECT_DIR, '/p', now=NOW)

    assert meta is not None
    assert meta.git_branch == 'main'


def test_message_count_estimate(service: SessionListingService, write_jsonl) -> None:
    filler = [other_record('progress') | {'data': 'x' * 1000} for _ in range(20)]
    path = write_jsonl([user_msg('hello'), *filler])

    meta = service.describe_session(path, PROJECT_DIR, '/p', now=NOW)

    assert meta is not None
    assert meta.message_count == round(path.stat().st_size / 2048)


@pytest.mark.parametrize(
    'age, expected_waiting',
    [(timedelta(minutes=1), True), (timedelta(minutes=10), True), (timedelta(minutes=11), False)],
    ids=['recent', 'at-limit', 'stale'],
)
def test_staleness_gate_uses_record_timestamp(
    service: SessionListingService, write_jsonl, age: timedelta, expected_waiting: bool
) -> None:
    path = write_jsonl([user_msg('Run the migration', timestamp=_iso(NOW - age))])
    _set_mtime(path, NOW)

    meta = service.describe_session(path, PROJECT_DIR, '/p', now=NOW)

    assert meta is not None
    assert meta.is_waiting is expected_waiting
    assert meta.last_timestamp == _iso(NOW - age)


@pytest.mark.parametrize(
    'mtime_age, expected_waiting',
    [(timedelta(minutes=2), True), (timedelta(minutes=20), False)],
    ids=['recent-mtime', 'stale-mtime'],
)
def test_staleness_gate_falls_back_to_mtime(
    service: SessionListingService, write_jsonl, mtime_age: timedelta, expected_waiting: bool
) -> None:
    path = write_jsonl([user_msg('No timestamp on this one', timestamp=None)])
    _set_mtime(path, NOW - mtime_age)

    meta = service.describe_session(path, PROJECT_DIR, '/p', now=NOW)

    assert meta is not None
    assert meta.is_waiting is expected_waiting


def test_staleness_gate_clears_tool_permission(service: SessionListingService, write_jsonl) -> None:
    path = write_jsonl(
        [
            user_msg('Deploy it'),
            assistant_msg([tool_use_block('Bash')], timestamp=_iso(NOW - timedelta(hours=1)), git_branch='main'),
        ]
    )

    meta = service.describe_session(path, PROJECT_DIR, '/p', now=NOW)

    assert meta is not None
    assert not meta.is_tool_use_waiting
    assert not meta.is_waiting
    assert meta.git_branch == 'main'


def test_custom_stale_after(projects_dir: Path, write_jsonl) -> None:
    service = SessionListingService(projects_dir, stale_after=timedelta(hours=2))
    path = write_jsonl(
        [user_msg('Deploy it'), assistant_msg([tool_use_block('Bash')], timestamp=_iso(NOW - timedelta(hours=1)))]
    )

    meta = service.describe_session(path, PROJECT_DIR, '/p', now=NOW)

    assert meta is not None
    assert meta.is_tool_use_waiting
    assert meta.icon is StatusIcon.TOOL_PERMISSION


# ==============================================================================
# list_project / list_workspace
# ==============================================================================


def test_list_project_missing_directory(service: SessionListingService) -> None:
    assert asyncio.run(service.list_project('-does-not-exist', NullLogger())) == []


def test_list_project_newest_first_with_pins(
    service: SessionListingService, projects_dir: Path, write_jsonl
) -> None:
    project = projects_dir / PROJECT_DIR
    older = write_jsonl([user_msg('Older task', session_id='a')], name='a.jsonl', directory=project)
    newer = write_jsonl([user_msg('Newer task', session_id='b')], name='b.jsonl', directory=project)
    write_jsonl([other_record('file-history-snapshot')], name='untitled.jsonl', directory=project)
    (project / 'notes.txt').write_text('not a session')
    _set_mtime(older, NOW - timedelta(days=2))
    _set_mtime(newer, NOW - timedelta(hours=1))
    assert service.pins is not None
    service.pins.pin('a')

    conversations = asyncio.run(service.list_project(PROJECT_DIR, NullLogger(), now=NOW))

    assert [c.session_id for c in conversations] == ['b', 'a']
    assert [c.is_pinned for c in conversations] == [False, True]
    assert all(c.project_path == decode_project_dir(PROJECT_DIR) for c in conversations)


def test_list_project_skips_unreadable_files(
    service: SessionListingService, projects_dir: Path, write_jsonl
) -> None:
    project = projects_dir / PROJECT_DIR
    write_jsonl([user_msg('Readable')], directory=project)
    (project / 'broken.jsonl').mkdir()
    logger = RecordingLogger()

    conversations = asyncio.run(service.list_project(PROJECT_DIR, logger, now=NOW))

    assert [c.title for c in conversations] == ['Readable']
    warnings = [message for level, message in logger.messages if level == 'warning']
    assert len(warnings) == 1
    assert 'broken.jsonl' in warnings[0]


def test_list_workspace(service: SessionListingService, projects_dir: Path, write_jsonl, tmp_path: Path) -> None:
    workspace = tmp_path / 'my.workspace'
    write_jsonl([user_msg('Workspace task')], directory=projects_dir / encode_path(workspace))

    conversations = asyncio.run(service.list_workspace(workspace, NullLogger(), now=NOW))

    assert [c.title for c in conversations] == ['Workspace task']
    assert conversations[0].project_path == str(workspace)
    assert conversations[0].project_dir == encode_path(workspace)


def test_project_dir_for_unknown_workspace(service: SessionListingService, tmp_path: Path) -> None:
    with pytest.raises(ProjectNotFoundError) as exc_info:
        service.project_dir_for(tmp_path / 'never-used')

    assert exc_info.value.workspace == tmp_path / 'never-used'
    assert 'No Claude Code sessions' in str(exc_info.value)


# ==============================================================================
# Presentation helpers
# ==============================================================================


def _meta(title: str, git_branch: str | None = None, **flags: bool) -> ConversationMeta:
    return ConversationMeta(
        session_id=title,
        title=title,
        timestamp=NOW,
        file_path=Path(f'/tmp/{title}.jsonl'),
        message_count=1,
        git_branch=git_branch,
        project_path='/p',
        project_dir='-p',
        **flags,
    )


def test_filter_conversations() -> None:
    conversations = [_meta('Fix Login'), _meta('Docs', git_branch='feature/LOGIN-page'), _meta('Other')]

    assert [c.title for c in filter_conversations(conversations, 'login')] == ['Fix Login', 'Docs']
    assert len(filter_conversations(conversations, '')) == 3
    assert filter_conversations(conversations, 'nothing') == []


@pytest.mark.parametrize(
    'flags, expected',
    [
        ({'is_tool_use_waiting': True, 'is_pinned': True}, StatusIcon.TOOL_PERMISSION),
        ({'is_waiting': True, 'is_pinned': True}, StatusIcon.BUSY),
        ({'is_pinned': True}, StatusIcon.PINNED),
        ({}, StatusIcon.DEFAULT),
    ],
    ids=['tool-permission', 'busy', 'pinned', 'default'],
)
def test_icon_precedence(flags: dict[str, bool], expected: StatusIcon) -> None:
    assert _meta('t', **flags).icon is expected


@pytest.mark.parametrize(
    'age, expected',
    [
        (timedelta(seconds=30), 'now'),
        (timedelta(seconds=-30), 'now'),
        (timedelta(minutes=5), '5m'),
        (timedelta(minutes=59, seconds=59), '59m'),
        (timedelta(hours=3), '3h'),
        (timedelta(days=2), '2d'),
        (timedelta(days=7), '1w'),
        (timedelta(days=29), '4w'),
        (timedelta(days=65), '2mo'),
    ],
    ids=['seconds', 'future', 'minutes', 'just-under-hour', 'hours', 'days', 'week', 'weeks', 'months'],
)
def test_format_relative_time(age: timedelta, expected: str) -> None:
    assert format_relative_time(NOW - age, NOW) == expected


@pytest.mark.parametrize(
    'project_path, expected',
    [('/Users/dev/work/project', 'work/project'), ('/project', 'project'), ('/', '')],
    ids=['deep', 'single', 'root'],
)
def test_project_display_name(project_path: str, expected: str) -> None:
    assert project_display_name(project_path) == expected


def test_encode_and_decode_project_dir() -> None:
    assert encode_path('/Users/dev/My Project.app') == '-Users-dev-My-Project-app'
    assert decode_project_dir('-Users-dev-project') == '/Users/dev/project'
