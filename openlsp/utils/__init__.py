"""Shared utilities: configuration, structured logging and retry helpers."""
