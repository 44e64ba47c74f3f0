"""Observability: structured logging to stderr.

Quick Start:
    >>> from amadeus_flights_mcp.observability import configure_logging, get_logger
    >>> configure_logging(format="json", level="INFO")
    >>> get_logger("server").info("started", transport="stdio")
"""

from .logging import (
    BoundLogger,
    ConsoleRenderer,
    JsonRenderer,
    LogEntry,
    LogRenderer,
    NoOpRenderer,
    configure_logging,
    get_logger,
    log_context,
)

__all__ = [
    "BoundLogger",
    "ConsoleRenderer",
    "JsonRenderer",
    "LogEntry",
    "LogRenderer",
    "NoOpRenderer",
    "configure_logging",
    "get_logger",
    "log_context",
]
