"""
Custom error types and exit codes for langport.
"""

from typing import List, Optional


class LangPortError(Exception):
    """Base exception for langport errors."""

    exit_code = 1

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigurationError(LangPortError):
    """Configuration or path-related errors."""

    exit_code = 2


class ValidationError(LangPortError):
    """Malformed or version-incompatible bundle. Aborts an import before any write."""

    exit_code = 5

    def __init__(self, message: str, issues: Optional[List[str]] = None):
        super().__init__(message)
        self.issues = issues or []


class LanguageNotFoundError(ValidationError):
    """A source or target language token could not be resolved."""

    def __init__(self, token: str, role: str = "language"):
        super().__init__(f"Cannot find {role}: {token}")
        self.token = token
        self.role = role


class StorageError(LangPortError):
    """Content store missing or inconsistent."""

    exit_code = 6


# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_VALIDATION_ERROR = 5
EXIT_STORAGE_ERROR = 6
