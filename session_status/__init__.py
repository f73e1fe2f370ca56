"""Live session status for Claude Code conversation logs."""

from __future__ import annotations

from session_status.schemas.status import ClassificationResult
from session_status.services.classifier import classify_lines, classify_session_file

__all__ = [
    'ClassificationResult',
    'classify_lines',
    'classify_session_file',
]

__version__ = '0.1.0'
