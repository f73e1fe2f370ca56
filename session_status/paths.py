"""
Path encoding utilities for Claude Code project directories.

Claude Code stores sessions under ~/.claude/projects/<encoded-workspace>/,
where the workspace path is encoded by replacing:
- `/` -> `-`
- `.` -> `-`
- ` ` -> `-`
- `~` -> `-`

WARNING: This encoding is LOSSY. decode_project_dir() is a best-effort guess
meant for display only; the real path is the `cwd` field of session records.
"""

from __future__ import annotations

from pathlib import Path

__all__ = ['decode_project_dir', 'encode_path', 'project_display_name']


def encode_path(path: Path | str) -> str:
    """
    Encode path for Claude's directory naming.

    Examples:
        >>> encode_path("/Users/chris/project")
        '-Users-chris-project'

        >>> encode_path("/Users/chris/My Project.app")
        '-Users-chris-My-Project-app'
    """
    result = str(path) if isinstance(path, Path) else path
    for char in ['/', '.', ' ', '~']:
        result = result.replace(char, '-')
    return result


def decode_project_dir(dir_name: str) -> str:
    """
    Best-effort decode of an encoded project directory name.

    Every dash becomes a slash, so dashes, dots and spaces that were part of
    the original path are not recovered.

    Examples:
        >>> decode_project_dir('-Users-chris-project')
        '/Users/chris/project'
    """
    if dir_name.startswith('-'):
        dir_name = '/' + dir_name[1:]
    return dir_name.replace('-', '/')


def project_display_name(project_path: str) -> str:
    """Last two path segments, for compact display."""
    parts = [part for part in project_path.split('/') if part]
    return '/'.join(parts[-2:])
