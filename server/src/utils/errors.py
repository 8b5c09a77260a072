"""
Error types for the settings layer and consistent error message extraction.
"""

from __future__ import annotations


class SettingsValidationError(Exception):
    """Raised when an incoming settings update fails validation.

    ``errors`` maps each offending field to a human-readable message.
    """

    def __init__(self, errors: dict[str, str]) -> None:
        super().__init__("Settings validation failed.")
        self.errors = errors


class SettingsPersistenceError(Exception):
    """Raised when the settings document cannot be written."""


def get_error_message(error: BaseException | object) -> str:
    """
    Safely extract an error message from an unknown error type.

    Falls back to the exception class name when the message is empty.
    """
    if isinstance(error, Exception):
        return str(error) or type(error).__name__
    return "Unknown error"
