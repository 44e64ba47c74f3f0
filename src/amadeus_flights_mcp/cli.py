"""Command-line entry point.

    amadeus-flights-mcp [--transport stdio|http] [--host H] [--port P] [--log-level L]

Settings come from the environment (and .env); flags override them.
"""

from __future__ import annotations

import argparse
import signal
import sys
from typing import TYPE_CHECKING

import anyio
from pydantic import ValidationError

from amadeus_flights_mcp.config import get_settings, missing_variables
from amadeus_flights_mcp.observability import configure_logging, get_logger
from amadeus_flights_mcp.server import (
    FlightsHTTPServer,
    FlightsMCPServer,
    install_fatal_handlers,
    install_loop_handler,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from amadeus_flights_mcp.config import FlightsSettings

log = get_logger("cli")

LOG_LEVELS = ("debug", "info", "warn", "warning", "error", "critical")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="amadeus-flights-mcp",
        description="MCP server for Amadeus flight search",
    )
    parser.add_argument("--transport", choices=["stdio", "http"], help="Transport (default: MCP_TRANSPORT or stdio)")
    parser.add_argument("--host", help="HTTP bind host (default: HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, help="HTTP port (default: PORT or 3000)")
    parser.add_argument("--log-level", type=str.lower, choices=LOG_LEVELS, help="Log level (default: LOG_LEVEL or info)")
    return parser


def load_settings() -> FlightsSettings | None:
    """Settings, or None after reporting what is missing on stderr."""
    try:
        return get_settings()
    except ValidationError as exc:
        missing = missing_variables(exc)
        if missing:
            print(f"Configuration error: missing required environment variables: {', '.join(missing)}", file=sys.stderr)
        else:
            print(f"Configuration error:\n{exc}", file=sys.stderr)
        return None


def _sigterm(signum: int, frame: FrameType | None) -> None:
    raise KeyboardInterrupt


async def _serve_stdio(server: FlightsMCPServer) -> None:
    install_loop_handler()
    await server.run_stdio()


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    settings = load_settings()
    if settings is None:
        return 1

    configure_logging(settings.logging.format, args.log_level or settings.logging.level)
    install_fatal_handlers()

    transport = args.transport or settings.transport
    log.info(
        "starting server",
        server=settings.server.name,
        version=settings.server.version,
        transport=transport,
        environment=settings.amadeus.environment,
    )

    if transport == "http":
        FlightsHTTPServer(settings, fatal_task_errors=True).run(args.host, args.port)
        return 0

    signal.signal(signal.SIGTERM, _sigterm)
    try:
        anyio.run(_serve_stdio, FlightsMCPServer(settings))
    except KeyboardInterrupt:
        log.info("shutting down")
    return 0


if __name__ == "__main__":
    sys.exit(main())
