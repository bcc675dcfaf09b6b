"""Logging setup and context helpers."""
