"""Shared fixtures: session log files written under tmp_path."""

from __future__ import annotations

import json
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pytest

WriteJsonl = Callable[..., Path]


@pytest.fixture
def write_jsonl(tmp_path: Path) -> WriteJsonl:
    """Write records as one JSON object per line (trailing newline included)."""

    def _write(records: Sequence[Any], name: str = 'session.jsonl', directory: Path | None = None) -> Path:
        target_dir = directory or tmp_path
        target_dir.mkdir(parents=True, exist_ok=True)
        path = target_dir / name
        path.write_text(''.join(json.dumps(record, ensure_ascii=False) + '\n' for record in records), encoding='utf-8')
        return path

    return _write


@pytest.fixture
def write_raw(tmp_path: Path) -> Callable[[str | bytes], Path]:
    """Write raw text or bytes to a session file."""

    def _write(content: str | bytes) -> Path:
        path = tmp_path / 'raw.jsonl'
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding='utf-8')
        return path

    return _write
