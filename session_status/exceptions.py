"""
Shared exceptions for claude-session-status.

Exception Hierarchy:
    SessionStatusError (base)
    └── ProjectNotFoundError (workspace has no Claude Code project directory)

The classifier, tail reader and record decoder do not raise: bad input
degrades to an idle verdict. These exceptions belong to the listing and
command-line layers.
"""

from __future__ import annotations

from pathlib import Path


class SessionStatusError(Exception):
    """Base exception for all claude-session-status errors."""


class ProjectNotFoundError(SessionStatusError):
    """Raised when a workspace has no session directory under the Claude projects dir."""

    def __init__(self, workspace: Path, project_dir: Path) -> None:
        self.workspace = workspace
        self.project_dir = project_dir
        super().__init__(f'No Claude Code sessions for {workspace} (expected directory: {project_dir})')
