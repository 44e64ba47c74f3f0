"""Flight data provider (Amadeus Self-Service API)."""

from .client import (
    FALLBACK_DAYS_AHEAD,
    FALLBACK_DESTINATION,
    FALLBACK_ORIGIN,
    AmadeusClient,
    ProviderResponse,
    translate_provider_error,
)

__all__ = [
    "FALLBACK_DAYS_AHEAD",
    "FALLBACK_DESTINATION",
    "FALLBACK_ORIGIN",
    "AmadeusClient",
    "ProviderResponse",
    "translate_provider_error",
]
