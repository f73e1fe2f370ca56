"""Command-line interface for claude-session-status."""
