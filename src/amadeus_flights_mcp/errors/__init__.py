"""Unified error handling for the flight tools.

- ErrorCode: Closed taxonomy (validation, provider, network, unknown)
- FlightError/FlightException: Structured errors and the exception that carries them
- FieldIssue: One violated input field
- classify_exception: Type-based mapping of arbitrary exceptions
"""

from .errors import (
    ErrorCode,
    FieldIssue,
    FlightError,
    FlightException,
    classify_exception,
    issues_from_validation_error,
)

__all__ = [
    "ErrorCode",
    "FieldIssue",
    "FlightError",
    "FlightException",
    "classify_exception",
    "issues_from_validation_error",
]
