"""MCP protocol server for one connection.

FlightsMCPServer binds a ToolRegistry to the SDK's low-level Server. One
instance serves one stdio connection or one HTTP session.

Example:
    >>> server = FlightsMCPServer(get_settings())
    >>> anyio.run(server.run_stdio)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from amadeus_flights_mcp.observability import get_logger, log_context
from amadeus_flights_mcp.prompts import PROMPTS
from amadeus_flights_mcp.provider import AmadeusClient
from amadeus_flights_mcp.registry import ToolRegistry
from amadeus_flights_mcp.retry import RetryPolicy
from amadeus_flights_mcp.tools import FlightSearchTools

if TYPE_CHECKING:
    from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

    from amadeus_flights_mcp.config import FlightsSettings
    from amadeus_flights_mcp.tools import FlightProvider

log = get_logger("mcp")


class ToolCallFailed(Exception):
    """Raised from call_tool so the SDK marks the result isError; str() is the content text."""


def build_registry(client: FlightProvider, settings: FlightsSettings) -> ToolRegistry:
    """Registry with the six flight tools and the four prompts."""
    registry = ToolRegistry()
    tools = FlightSearchTools(
        client,
        policy=RetryPolicy.from_settings(settings.retry),
        default_currency=settings.default_currency,
    )
    for spec in tools.specs():
        registry.register(spec)
    for prompt in PROMPTS:
        registry.register_prompt(prompt)
    return registry


class FlightsMCPServer:
    """MCP server exposing the flight tools and prompts."""

    __slots__ = ("_settings", "_registry", "_server", "_session_id")

    def __init__(
        self,
        settings: FlightsSettings,
        client: FlightProvider | None = None,
        *,
        session_id: str | None = None,
    ) -> None:
        self._settings = settings
        self._session_id = session_id
        self._registry = build_registry(client if client is not None else AmadeusClient(settings.amadeus), settings)
        self._server: Server[Any, Any] = Server(
            settings.server.name,
            version=settings.server.version,
            instructions=settings.server.description,
        )
        self._bind()

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def server(self) -> Server[Any, Any]:
        return self._server

    def _bind(self) -> None:
        registry = self._registry
        server = self._server

        @server.list_tools()
        async def list_tools() -> list[types.Tool]:
            return [
                types.Tool(name=spec.name, description=spec.description, inputSchema=spec.input_schema)
                for spec in registry
            ]

        # SDK-side schema validation is off so structured field errors reach the model
        @server.call_tool(validate_input=False)
        async def call_tool(name: str, arguments: dict[str, Any] | None) -> list[types.TextContent]:
            outcome = await registry.dispatch(name, arguments or {})
            if outcome.is_error:
                raise ToolCallFailed(outcome.text)
            return [types.TextContent(type="text", text=outcome.text)]

        @server.list_prompts()
        async def list_prompts() -> list[types.Prompt]:
            return [
                types.Prompt(
                    name=p.name,
                    description=p.description,
                    arguments=[
                        types.PromptArgument(name=a.name, description=a.description, required=a.required)
                        for a in p.arguments
                    ],
                )
                for p in registry.prompts
            ]

        @server.get_prompt()
        async def get_prompt(name: str, arguments: dict[str, str] | None) -> types.GetPromptResult:
            prompt = registry.get_prompt(name)
            if prompt is None:
                log.warning("unknown prompt", prompt=name)
                raise KeyError(f"Unknown prompt: {name}")
            with log_context(prompt=name):
                messages = prompt.messages(arguments)
            return types.GetPromptResult(
                description=prompt.description,
                messages=[
                    types.PromptMessage(role=m.role, content=types.TextContent(type="text", text=m.text))
                    for m in messages
                ],
            )

    async def run(
        self,
        read_stream: MemoryObjectReceiveStream[Any],
        write_stream: MemoryObjectSendStream[Any],
    ) -> None:
        """Serve one connection until its streams close."""
        with log_context(session_id=self._session_id) if self._session_id else log_context():
            await self._server.run(
                read_stream,
                write_stream,
                self._server.create_initialization_options(),
                raise_exceptions=False,
            )

    async def run_stdio(self) -> None:
        log.info("starting stdio transport", server=self._settings.server.name, version=self._settings.server.version)
        async with stdio_server() as (read_stream, write_stream):
            await self.run(read_stream, write_stream)
        log.info("stdio transport closed")
