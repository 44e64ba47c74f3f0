"""Configuration management.

Environment-based settings via pydantic-settings, grouped by prefix.
"""

from .settings import (
    AmadeusSettings,
    FlightsSettings,
    HttpSettings,
    LoggingSettings,
    RateLimitSettings,
    RetrySettings,
    ServerInfoSettings,
    clear_settings_cache,
    get_settings,
    missing_variables,
)

__all__ = [
    "AmadeusSettings",
    "FlightsSettings",
    "HttpSettings",
    "LoggingSettings",
    "RateLimitSettings",
    "RetrySettings",
    "ServerInfoSettings",
    "clear_settings_cache",
    "get_settings",
    "missing_variables",
]
