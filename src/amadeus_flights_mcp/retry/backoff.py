"""Wait times between attempts of a provider call.

Retries are numbered from 1: retry n is attempt n + 1, made after attempt n
failed with a retryable error. With the default RetrySettings the waits are
1s, 2s, 4s ... capped at 30s.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from amadeus_flights_mcp.config import RetrySettings


@runtime_checkable
class Backoff(Protocol):
    def delay(self, retry: int) -> float:
        """Seconds to wait before retry number ``retry`` (1-indexed)."""
        ...


def _check_retry(retry: int) -> None:
    if retry < 1:
        raise ValueError(f"Retry numbers start at 1, got {retry}")


@dataclass(frozen=True, slots=True)
class ExponentialBackoff:
    """min(base * multiplier^(retry-1), max_delay), optionally jittered.

    Attributes:
        base: Wait before the first retry, in seconds
        max_delay: Cap on any single wait, in seconds
        multiplier: Growth factor between consecutive retries
        jitter: Scale each wait by a random 0.5-1.5x so that sessions
            hitting the same 429 do not retry in lockstep
    """

    base: float = 1.0
    max_delay: float = 30.0
    multiplier: float = 2.0
    jitter: bool = False

    @classmethod
    def from_settings(cls, settings: RetrySettings) -> ExponentialBackoff:
        return cls(base=settings.base_delay, max_delay=settings.max_delay)

    def delay(self, retry: int) -> float:
        _check_retry(retry)
        d = min(self.base * (self.multiplier ** (retry - 1)), self.max_delay)
        return d * (0.5 + random.random()) if self.jitter else d


@dataclass(frozen=True, slots=True)
class ConstantBackoff:
    """Same wait before every retry; ConstantBackoff(0) retries immediately."""

    delay_seconds: float = 1.0

    def delay(self, retry: int) -> float:
        _check_retry(retry)
        return self.delay_seconds
