"""Standardized error handling for flight tools.

Provides a closed set of error codes and structured error payloads that are
rendered into text for the LLM instead of escaping to the transport.
Uses Pydantic for validation and serialization.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Self

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic import ValidationError as PydanticValidationError


class ErrorCode(StrEnum):
    """Closed error taxonomy for tool failures.

    Retry decisions switch on these codes, never on exception names or
    message text.
    """
    VALIDATION_ERROR = "VALIDATION_ERROR"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


# 4xx statuses worth another attempt (rate limiting, request timeout); 5xx is handled in is_retryable
_RETRYABLE_STATUSES: frozenset[int] = frozenset({408, 429})


class FieldIssue(BaseModel):
    """A single violated field from input validation."""

    model_config = ConfigDict(frozen=True)

    field: str
    message: str
    value: Any = None

    def render(self) -> str:
        where = self.field or "(input)"
        return f"- {where}: {self.message} (got {self.value!r})"


class FlightError(BaseModel):
    """Structured error for tool failures.

    Attributes:
        code: Machine-readable classification
        message: Human-readable error message
        status_code: HTTP status returned by the provider, if any
        provider_code: Vendor error code from the provider payload, if any
        issues: Violated fields (validation errors only)
    """

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        json_schema_extra={
            "title": "Flight Error",
            "examples": [{
                "code": "PROVIDER_ERROR",
                "message": "Amadeus API Error (429): Too many requests",
                "status_code": 429,
                "provider_code": "38194",
            }],
        },
    )

    code: ErrorCode = ErrorCode.UNKNOWN_ERROR
    message: Annotated[str, Field(min_length=1)]
    status_code: int | None = None
    provider_code: str | None = None
    issues: tuple[FieldIssue, ...] = ()

    @computed_field
    @property
    def is_retryable(self) -> bool:
        """Network failures and provider 5xx/429/408 are transient."""
        if self.code == ErrorCode.NETWORK_ERROR:
            return True
        if self.code == ErrorCode.PROVIDER_ERROR and self.status_code is not None:
            return self.status_code >= 500 or self.status_code in _RETRYABLE_STATUSES
        return False

    @computed_field
    @property
    def severity(self) -> str:
        """Log level name for this error."""
        return "warning" if self.code == ErrorCode.VALIDATION_ERROR else "error"

    def render(self) -> str:
        """Format error for LLM consumption."""
        text = f"Error: {self.message}"
        if self.issues:
            text += "\n" + "\n".join(issue.render() for issue in self.issues)
        return text

    __str__ = render


class FlightException(Exception):
    """Exception wrapping a FlightError for raising."""

    __slots__ = ("error",)

    def __init__(self, error: FlightError) -> None:
        self.error = error
        super().__init__(error.message)

    @property
    def code(self) -> ErrorCode:
        return self.error.code

    @classmethod
    def validation(cls, issues: list[FieldIssue] | tuple[FieldIssue, ...], message: str = "Invalid parameters provided") -> Self:
        return cls(FlightError(code=ErrorCode.VALIDATION_ERROR, message=message, issues=tuple(issues)))

    @classmethod
    def provider(cls, status_code: int, message: str, provider_code: str | None = None) -> Self:
        return cls(FlightError(
            code=ErrorCode.PROVIDER_ERROR,
            message=f"Amadeus API Error ({status_code}): {message}",
            status_code=status_code,
            provider_code=provider_code,
        ))

    @classmethod
    def network(cls, message: str) -> Self:
        return cls(FlightError(code=ErrorCode.NETWORK_ERROR, message=f"Network error: {message}"))

    @classmethod
    def unknown(cls, message: str) -> Self:
        return cls(FlightError(code=ErrorCode.UNKNOWN_ERROR, message=message or "An unknown error occurred"))


def issues_from_validation_error(exc: PydanticValidationError) -> list[FieldIssue]:
    """Flatten pydantic errors into FieldIssues (one per violated field)."""
    return [
        FieldIssue(
            field=".".join(str(part) for part in err["loc"]),
            message=err["msg"],
            value=err.get("input"),
        )
        for err in exc.errors(include_url=False)
    ]


def classify_exception(exc: BaseException) -> FlightError:
    """Map an exception to a FlightError by type."""
    if isinstance(exc, FlightException):
        return exc.error
    if isinstance(exc, PydanticValidationError):
        return FlightError(
            code=ErrorCode.VALIDATION_ERROR,
            message="Invalid parameters provided",
            issues=tuple(issues_from_validation_error(exc)),
        )
    if isinstance(exc, (TimeoutError, OSError)):
        return FlightException.network(str(exc) or type(exc).__name__).error
    return FlightException.unknown(str(exc) or type(exc).__name__).error
