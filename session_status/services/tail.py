"""
Tail window reader for session JSONL files.

Reads a bounded byte range from the end of the log so the cost of a status
check does not grow with the length of the conversation.
"""

from __future__ import annotations

import os
from pathlib import Path

__all__ = ['TAIL_WINDOW_BYTES', 'read_tail_lines']

# Large enough to hold a few records with sizeable tool_use inputs
TAIL_WINDOW_BYTES = 16384


def read_tail_lines(path: Path, window_bytes: int = TAIL_WINDOW_BYTES) -> list[str]:
    """
    Read the last `window_bytes` of a file and split them into candidate lines.

    The window usually starts in the middle of a record (and possibly in the
    middle of a multi-byte character), so the first line is often a fragment.
    Undecodable bytes are replaced rather than raised on; the record decoder
    drops the fragment later.

    Splits on '\\n' only: str.splitlines() would also split on U+2028/U+2029,
    which may appear unescaped inside JSON strings.

    Args:
        path: Session JSONL file
        window_bytes: Maximum number of bytes to read from the end

    Returns:
        Non-blank lines, oldest first. Empty if the file is missing, empty or unreadable.
    """
    try:
        with open(path, 'rb') as f:
            size = os.fstat(f.fileno()).st_size
            read_size = min(size, window_bytes)
            if read_size <= 0:
                return []
            f.seek(size - read_size)
            data = f.read(read_size)
    except OSError:
        return []

    text = data.decode('utf-8', errors='replace')
    return [line for line in text.split('\n') if line.strip()]
