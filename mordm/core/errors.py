"""Exceptions raised by mordm.

Every failure is fatal for the call that raised it; nothing is retried.
"""

from __future__ import annotations


class MORDMError(Exception):
    """Base class for all mordm errors."""


class DimensionMismatchError(MORDMError, ValueError):
    """Raised when a design or response does not match the problem arity."""


class ProtocolViolationError(MORDMError, RuntimeError):
    """Raised when an external evaluator emits malformed output."""


class InvalidDesignError(MORDMError, ValueError):
    """Raised when design generation produces unusable (non-finite) cells."""


class UnknownColumnError(MORDMError, LookupError):
    """Raised when an objective selector names no known column."""

    def __init__(self, column: object, choices: list[str] | tuple[str, ...]):
        self.column = column
        self.choices = tuple(choices)
        super().__init__(
            f"Unable to find matching column {column!r}, valid columns are: "
            + ", ".join(self.choices)
        )


class UnknownMethodError(MORDMError, LookupError):
    """Raised for an unrecognized sensitivity, robustness or sampling method."""

    def __init__(self, method: object, choices: list[str] | tuple[str, ...]):
        self.method = method
        self.choices = tuple(choices)
        super().__init__(
            f"Unsupported method {method!r}, valid methods are: " + ", ".join(self.choices)
        )


class UnsupportedInputError(MORDMError, TypeError):
    """Raised when an argument has the wrong type or shape."""
