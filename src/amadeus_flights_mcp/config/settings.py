"""Environment-based configuration using pydantic-settings.

Provides type-safe, validated configuration from environment variables.
Provider credentials are required; everything else has a default. Missing
credentials raise a ValidationError at startup.

Example:
    >>> from amadeus_flights_mcp.config import get_settings
    >>> settings = get_settings()
    >>> settings.amadeus.environment
    'test'
    >>> settings.http.port
    3000

    # Or with environment variables:
    # AMADEUS_CLIENT_ID=...
    # AMADEUS_CLIENT_SECRET=...
    # LOG_LEVEL=debug
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import (
    AliasChoices,
    Field,
    PositiveFloat,
    PositiveInt,
    SecretStr,
    computed_field,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict


class AmadeusSettings(BaseSettings):
    """Provider credentials and environment selector."""

    model_config = SettingsConfigDict(
        env_prefix="AMADEUS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    client_id: Annotated[str, Field(min_length=1)]
    client_secret: SecretStr
    environment: Literal["test", "production"] = "test"

    @field_validator("environment", mode="before")
    @classmethod
    def _normalize_env(cls, v: str) -> str:
        return v.strip().lower() if isinstance(v, str) else v

    @computed_field
    @property
    def hostname(self) -> str:
        """SDK hostname selector."""
        return "production" if self.environment == "production" else "test"


class ServerInfoSettings(BaseSettings):
    """Name and version announced to MCP clients."""

    model_config = SettingsConfigDict(env_prefix="MCP_SERVER_", extra="ignore")

    name: str = "amadeus-flights-server"
    version: str = "1.0.0"
    description: str = "MCP server for Amadeus flight search capabilities"


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_", extra="ignore")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json"] = "console"

    @field_validator("level", mode="before")
    @classmethod
    def _normalize_level(cls, v: str) -> str:
        """Accept lowercase names and the short 'warn' spelling."""
        if not isinstance(v, str):
            return v
        v = v.strip().upper()
        return "WARNING" if v == "WARN" else v


class RateLimitSettings(BaseSettings):
    """Rate limit hints (advertised, not enforced)."""

    model_config = SettingsConfigDict(env_prefix="RATE_LIMIT_", extra="ignore")

    requests_per_minute: PositiveInt = 60
    burst: PositiveInt = 10


class RetrySettings(BaseSettings):
    """Default retry configuration for provider calls."""

    model_config = SettingsConfigDict(env_prefix="RETRY_", extra="ignore")

    max_attempts: Annotated[int, Field(ge=1, le=10)] = 3
    base_delay: PositiveFloat = Field(default=1.0, description="Delay before the first retry, in seconds")
    max_delay: PositiveFloat = Field(default=30.0, description="Delay cap, in seconds")


class HttpSettings(BaseSettings):
    """Streamable HTTP transport configuration."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    host: str = Field(default="0.0.0.0", validation_alias=AliasChoices("HOST", "HTTP_HOST"))
    port: Annotated[int, Field(ge=1, le=65535)] = Field(default=3000, validation_alias=AliasChoices("PORT", "HTTP_PORT"))
    cors_origin: str = Field(default="*", validation_alias="CORS_ORIGIN")
    json_response: bool = Field(default=False, validation_alias="MCP_JSON_RESPONSE")

    @computed_field
    @property
    def cors_origins(self) -> list[str]:
        """Comma-separated CORS_ORIGIN as a list."""
        return [o.strip() for o in self.cors_origin.split(",") if o.strip()]


class FlightsSettings(BaseSettings):
    """Root settings for the flights MCP server.

    Nested groups load with their own prefixes (AMADEUS_, MCP_SERVER_, LOG_,
    RATE_LIMIT_, RETRY_) and the HTTP group reads HOST, PORT and CORS_ORIGIN.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
        validate_default=True,
    )

    default_currency: str = Field(default="USD", validation_alias="DEFAULT_CURRENCY", min_length=3, max_length=3)
    transport: Literal["stdio", "http"] = Field(default="stdio", validation_alias="MCP_TRANSPORT")

    amadeus: AmadeusSettings = Field(default_factory=AmadeusSettings)
    server: ServerInfoSettings = Field(default_factory=ServerInfoSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    http: HttpSettings = Field(default_factory=HttpSettings)

    @field_validator("default_currency", mode="before")
    @classmethod
    def _upper_currency(cls, v: str) -> str:
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("transport", mode="before")
    @classmethod
    def _lower_transport(cls, v: str) -> str:
        return v.strip().lower() if isinstance(v, str) else v


@lru_cache(maxsize=1)
def get_settings() -> FlightsSettings:
    """Get the global settings instance (cached).

    Raises:
        pydantic.ValidationError: required provider credentials are missing
    """
    return FlightsSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()


def missing_variables(exc: Exception) -> list[str]:
    """Environment variable names behind 'missing' errors in a settings ValidationError."""
    names: list[str] = []
    errors = getattr(exc, "errors", None)
    if errors is None:
        return names
    title = getattr(exc, "title", "")
    prefix = "AMADEUS_" if title == "AmadeusSettings" else ""
    for err in errors():
        if err.get("type") == "missing":
            names.append(prefix + "_".join(str(p) for p in err["loc"]).upper())
    return names
