"""Service layer for session status."""

from session_status.services.classifier import classify_lines, classify_records, classify_session_file
from session_status.services.listing import SessionListingService, filter_conversations, format_relative_time
from session_status.services.pins import PinService
from session_status.services.tail import read_tail_lines

__all__ = [
    'classify_lines',
    'classify_records',
    'classify_session_file',
    'read_tail_lines',
    'SessionListingService',
    'PinService',
    'filter_conversations',
    'format_relative_time',
]
