"""Configuration for session status services."""
