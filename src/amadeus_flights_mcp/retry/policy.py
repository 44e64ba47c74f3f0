"""Retry policy for provider calls.

Retries are decided by the structured error's ``is_retryable`` flag, never by
exception type names or message text. Non-retryable failures surface on the
first attempt.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Annotated, Callable, TypeVar

from pydantic import BaseModel, ConfigDict, Field, computed_field

from amadeus_flights_mcp.errors import ErrorCode, FlightException, classify_exception
from amadeus_flights_mcp.observability import get_logger

from .backoff import Backoff, ExponentialBackoff

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from amadeus_flights_mcp.config import RetrySettings

T = TypeVar("T")

log = get_logger("retry")


class RetryPolicy(BaseModel):
    """Retry configuration for provider operations.

    Attributes:
        max_attempts: Total attempts including the first (1 = no retries)
        backoff: Backoff strategy for delay calculation
        on_retry: Optional callback(attempt, code, delay) fired before each wait

    Example:
        >>> policy = RetryPolicy(max_attempts=3, backoff=ExponentialBackoff(base=1.0))
    """

    model_config = ConfigDict(
        frozen=True,
        arbitrary_types_allowed=True,
        validate_default=True,
        extra="forbid",
        json_schema_extra={
            "title": "Retry Policy",
            "examples": [{"max_attempts": 3}],
        },
    )

    max_attempts: Annotated[int, Field(ge=1, le=10)] = 3
    backoff: Backoff = Field(default_factory=ExponentialBackoff, repr=False)
    on_retry: Callable[[int, ErrorCode, float], None] | None = Field(default=None, exclude=True, repr=False)

    @computed_field
    @property
    def is_disabled(self) -> bool:
        return self.max_attempts == 1

    @classmethod
    def from_settings(cls, settings: RetrySettings) -> RetryPolicy:
        return cls(
            max_attempts=settings.max_attempts,
            backoff=ExponentialBackoff.from_settings(settings),
        )

    def get_delay(self, retry: int) -> float:
        """Wait before retry number ``retry`` (1-indexed)."""
        return self.backoff.delay(retry)


async def execute_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    operation_name: str,
    *,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> T:
    """Execute an async operation, retrying transient failures.

    Args:
        operation: Zero-argument async callable
        policy: Retry policy configuration
        operation_name: Name used in log entries
        sleep: Awaitable delay function (injected by tests)

    Returns:
        The first successful result

    Raises:
        FlightException: the first non-retryable failure, or the last
            failure once attempts are exhausted
    """
    attempt = 1
    while True:
        try:
            return await operation()
        except Exception as exc:  # noqa: BLE001
            error = classify_exception(exc)
            if not error.is_retryable or attempt >= policy.max_attempts:
                if attempt > 1:
                    log.error(
                        "retries exhausted" if error.is_retryable else "retry aborted",
                        operation=operation_name,
                        attempts=attempt,
                        code=str(error.code),
                    )
                if isinstance(exc, FlightException):
                    raise
                raise FlightException(error) from exc

            delay = policy.get_delay(attempt)
            log.warning(
                "retrying operation",
                operation=operation_name,
                attempt=attempt,
                max_attempts=policy.max_attempts,
                delay_s=round(delay, 3),
                code=str(error.code),
                error=error.message,
            )
            if policy.on_retry:
                policy.on_retry(attempt, error.code, delay)
            await sleep(delay)
            attempt += 1
