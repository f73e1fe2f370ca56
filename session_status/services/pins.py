"""
Pinned conversation tracking.

Stores pinned session IDs in ~/.claude/conversation-pins.json:

    {"pinnedSessionIds": ["<session-id>", ...]}

Reads never fail: a missing or corrupt file reads as "nothing pinned" and is
replaced by the next write. Writes are serialized with a file lock and land
atomically via temp file + rename.
"""

from __future__ import annotations

import json
from pathlib import Path

import pydantic
from filelock import FileLock

from session_status.schemas.types import BaseStrictModel

__all__ = ['PinFile', 'PinService']


class PinFile(BaseStrictModel):
    """The conversation-pins.json file structure."""

    model_config = {'extra': 'ignore', 'strict': True, 'frozen': True}

    pinnedSessionIds: tuple[str, ...] = ()


class PinService:
    """Service for pinning and unpinning conversations."""

    def __init__(self, pin_file: Path) -> None:
        self.pin_file = pin_file
        self.lock_file = pin_file.with_suffix('.lock')

    def get_pinned_ids(self) -> frozenset[str]:
        """All pinned session IDs."""
        return frozenset(self._read_pin_file().pinnedSessionIds)

    def is_pinned(self, session_id: str) -> bool:
        return session_id in self.get_pinned_ids()

    def pin(self, session_id: str) -> bool:
        """
        Pin a session.

        Returns:
            True if the session was newly pinned, False if it already was
        """
        self.pin_file.parent.mkdir(parents=True, exist_ok=True)
        with FileLock(self.lock_file):
            pins = self._read_pin_file()
            if session_id in pins.pinnedSessionIds:
                return False
            self._write_pin_file(PinFile(pinnedSessionIds=(*pins.pinnedSessionIds, session_id)))
        return True

    def unpin(self, session_id: str) -> bool:
        """
        Unpin a session.

        Returns:
            True if the session was pinned before, False otherwise
        """
        self.pin_file.parent.mkdir(parents=True, exist_ok=True)
        with FileLock(self.lock_file):
            pins = self._read_pin_file()
            if session_id not in pins.pinnedSessionIds:
                return False
            remaining = tuple(sid for sid in pins.pinnedSessionIds if sid != session_id)
            self._write_pin_file(PinFile(pinnedSessionIds=remaining))
        return True

    def _read_pin_file(self) -> PinFile:
        """Read and parse the pin file (empty if missing or corrupt)."""
        if not self.pin_file.exists():
            return PinFile()

        try:
            return PinFile.model_validate_json(self.pin_file.read_bytes())
        except (OSError, pydantic.ValidationError):
            return PinFile()

    def _write_pin_file(self, pins: PinFile) -> None:
        """Write the pin file atomically using temp file + rename."""
        tmp_file = self.pin_file.with_suffix('.tmp.json')

        with tmp_file.open('w', encoding='utf-8') as f:
            json.dump(pins.model_dump(mode='json'), f, indent=2)

        tmp_file.replace(self.pin_file)
