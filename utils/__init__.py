"""Shared helpers: datetime handling, exceptions and logging setup."""
