"""Retry for transient provider failures.

Retries network errors and provider 5xx/429/408 with exponential backoff.
Everything else fails fast.

Example:
    >>> policy = RetryPolicy.from_settings(get_settings().retry)
    >>> result = await execute_with_retry(lambda: client.search_flights(params), policy, "search_flights")
"""

from .backoff import Backoff, ConstantBackoff, ExponentialBackoff
from .policy import RetryPolicy, execute_with_retry

__all__ = [
    "Backoff",
    "ConstantBackoff",
    "ExponentialBackoff",
    "RetryPolicy",
    "execute_with_retry",
]
