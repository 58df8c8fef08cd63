"""
buildretry exception hierarchy.

All domain-specific exceptions inherit from BuildRetryError, so callers can
catch any library error with a single base class while still handling the
individual cases where it matters.

Hierarchy::

    BuildRetryError
    ├── ConfigurationError        - config loading, parsing, validation
    │   ├── InvalidPatternError   - malformed gating regular expression
    │   └── ExpressionError       - malformed or failing combination filter
    └── LogUnavailableError       - build log missing or unreadable (also OSError)
"""

from __future__ import annotations


class BuildRetryError(Exception):
    """Base exception for all buildretry errors."""

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# --- Configuration -----------------------------------------------------------


class ConfigurationError(BuildRetryError):
    """Raised when configuration loading, parsing, or validation fails."""


class InvalidPatternError(ConfigurationError):
    """Raised when a gating pattern is not a valid regular expression."""

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"Invalid gating pattern {pattern!r}: {reason}", details={"pattern": pattern})
        self.pattern = pattern


class ExpressionError(ConfigurationError):
    """Raised when a combination filter cannot be parsed or evaluated."""

    def __init__(self, expression: str, reason: str) -> None:
        super().__init__(f"Invalid combination filter {expression!r}: {reason}", details={"expression": expression})
        self.expression = expression


# --- Logs --------------------------------------------------------------------


class LogUnavailableError(BuildRetryError, OSError):
    """Raised when a build log cannot be opened or read.

    Also an ``OSError`` so hosts that already handle I/O failures catch it
    without knowing about this library.
    """

    def __init__(self, log: object, *, cause: Exception | None = None) -> None:
        reason = f": {cause}" if cause is not None else ""
        super().__init__(f"Build log unavailable ({log}){reason}", details={"log": str(log)})
        self.log = log
        if cause is not None:
            self.__cause__ = cause
