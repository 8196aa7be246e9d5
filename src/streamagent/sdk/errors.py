"""SDK error types."""

from __future__ import annotations


class SettingsValidationError(Exception):
    """Raised when an agent settings file fails parsing or validation."""
