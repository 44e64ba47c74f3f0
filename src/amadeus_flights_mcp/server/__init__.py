"""MCP server and its transports.

- FlightsMCPServer: protocol server for one connection (stdio or one HTTP session)
- FlightsHTTPServer: Streamable HTTP transport with a session registry
- install_fatal_handlers / install_loop_handler: exit on unrecoverable faults
"""

from .http import FlightsHTTPServer, Session, SessionRegistry, initialize_succeeded, is_initialize_request
from .lifecycle import install_fatal_handlers, install_loop_handler
from .mcp_server import FlightsMCPServer, ToolCallFailed, build_registry

__all__ = [
    "FlightsHTTPServer",
    "FlightsMCPServer",
    "Session",
    "SessionRegistry",
    "ToolCallFailed",
    "build_registry",
    "initialize_succeeded",
    "install_fatal_handlers",
    "install_loop_handler",
    "is_initialize_request",
]
