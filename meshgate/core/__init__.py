"""Core: errors and structured logging helpers."""
