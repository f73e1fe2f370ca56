#!/usr/bin/env python3
"""
Command-line interface for claude-session-status.

Provides commands to inspect the live state of Claude Code sessions and to
manage pinned conversations.
"""

from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime, timedelta
from pathlib import Path

import typer

from session_status.cli.logger import CLILogger
from session_status.config.panel import settings
from session_status.exceptions import SessionStatusError
from session_status.paths import project_display_name
from session_status.schemas.status import ClassificationResult, ConversationMeta, StatusIcon
from session_status.services.classifier import classify_session_file
from session_status.services.listing import SessionListingService, filter_conversations, format_relative_time
from session_status.services.pins import PinService

app = typer.Typer(
    name='claude-session-status',
    help='Show whether Claude Code sessions are busy or waiting for approval',
    add_completion=False,
)

# One-character markers for the plain-text listing
ICON_MARKERS: dict[StatusIcon, str] = {
    StatusIcon.TOOL_PERMISSION: '!',
    StatusIcon.BUSY: '*',
    StatusIcon.PINNED: '^',
    StatusIcon.DEFAULT: ' ',
}


def _status_label(result: ClassificationResult) -> str:
    if result.is_tool_use_waiting:
        return 'tool-permission'
    if result.is_waiting:
        return 'waiting'
    return 'idle'


def _listing_service() -> SessionListingService:
    return SessionListingService(
        projects_dir=settings.CLAUDE_PROJECTS_DIR,
        pins=PinService(settings.PIN_FILE),
        stale_after=timedelta(seconds=settings.STALE_AFTER_SECONDS),
        head_line_limit=settings.HEAD_LINE_LIMIT,
    )


@app.command()
def status(
    path: Path = typer.Argument(..., help='Session JSONL file'),
    as_json: bool = typer.Option(False, '--json', help='Print the verdict as JSON'),
) -> None:
    """Classify one session log: idle, waiting or tool-permission."""
    if not path.is_file():
        typer.secho(f'Error: Session file not found: {path}', fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    result = classify_session_file(path)

    if as_json:
        typer.echo(result.model_dump_json(indent=2))
        return

    typer.echo(_status_label(result))
    if result.git_branch:
        typer.echo(f'  Branch: {result.git_branch}')
    if result.last_timestamp:
        typer.echo(f'  Last activity: {result.last_timestamp}')


@app.command('list')
def list_conversations(
    workspace: Path | None = typer.Option(None, '--workspace', '-w', help='Workspace directory (default: current)'),
    filter_text: str = typer.Option('', '--filter', help='Only show conversations whose title or branch matches'),
    as_json: bool = typer.Option(False, '--json', help='Print conversations as JSON'),
    verbose: bool = typer.Option(False, '--verbose', '-v', help='Verbose output'),
) -> None:
    """List conversations of a workspace, newest first, with live status."""
    asyncio.run(_list_async(workspace, filter_text, as_json, verbose))


async def _list_async(workspace: Path | None, filter_text: str, as_json: bool, verbose: bool) -> None:
    """Async implementation of list command."""
    logger = CLILogger(verbose=verbose)
    workspace_path = workspace.resolve() if workspace else Path.cwd()

    try:
        conversations = await _listing_service().list_workspace(workspace_path, logger)
    except SessionStatusError as e:
        typer.secho(f'Error: {e}', fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    conversations = filter_conversations(conversations, filter_text)

    if as_json:
        typer.echo(json.dumps([_conversation_json(c) for c in conversations], indent=2))
        return

    await logger.info(f'Project: {project_display_name(str(workspace_path))}')
    if not conversations:
        typer.echo('No conversations found.')
        return

    now = datetime.now(UTC)
    # Pinned group first, newest-first order kept within each group
    for conversation in sorted(conversations, key=lambda c: not c.is_pinned):
        branch = f'  [{conversation.git_branch}]' if conversation.git_branch else ''
        age = format_relative_time(conversation.timestamp, now)
        typer.echo(
            f'{ICON_MARKERS[conversation.icon]} {age:>4}  {conversation.session_id[:8]}  {conversation.title}{branch}'
        )


def _conversation_json(conversation: ConversationMeta) -> dict[str, object]:
    return {**conversation.model_dump(mode='json'), 'icon': conversation.icon.value}


@app.command()
def pin(session_id: str = typer.Argument(..., help='Session ID to pin')) -> None:
    """Pin a conversation to the top of the panel."""
    if PinService(settings.PIN_FILE).pin(session_id):
        typer.secho(f'✓ Pinned {session_id}', fg=typer.colors.GREEN)
    else:
        typer.echo(f'Already pinned: {session_id}')


@app.command()
def unpin(session_id: str = typer.Argument(..., help='Session ID to unpin')) -> None:
    """Remove a conversation pin."""
    if PinService(settings.PIN_FILE).unpin(session_id):
        typer.secho(f'✓ Unpinned {session_id}', fg=typer.colors.GREEN)
    else:
        typer.echo(f'Not pinned: {session_id}')


def main() -> None:
    app()


if __name__ == '__main__':
    main()
