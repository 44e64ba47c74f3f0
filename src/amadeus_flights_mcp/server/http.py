"""Streamable HTTP transport with per-session MCP servers.

Routes:
    POST|GET|DELETE /mcp   MCP traffic, keyed by the mcp-session-id header
    GET /health            process status and active session count
    GET /                  server metadata

A POST without a session header whose body is an initialize request opens a
session: a fresh transport and FlightsMCPServer whose loop runs in the app's
task group. The entry is kept only if the transport answers the initialize
with a result; a rejected initialize (406, invalid params ...) discards it.
Otherwise it is removed when the loop ends, when a DELETE terminates the
transport, or at shutdown.

Example:
    >>> FlightsHTTPServer(get_settings()).run()
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Iterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import anyio
import orjson
import uvicorn
from mcp.server.streamable_http import MCP_SESSION_ID_HEADER, StreamableHTTPServerTransport
from starlette.applications import Starlette
from starlette.datastructures import Headers
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse
from starlette.routing import Route

from amadeus_flights_mcp.observability import get_logger

from .lifecycle import install_loop_handler
from .mcp_server import FlightsMCPServer

if TYPE_CHECKING:
    from anyio.abc import TaskGroup
    from starlette.types import ASGIApp, Message, Receive, Scope, Send

    from amadeus_flights_mcp.config import FlightsSettings

log = get_logger("http")

ServerFactory = Callable[[str], FlightsMCPServer]


# ═══════════════════════════════════════════════════════════════════════════════
# Session registry
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True)
class Session:
    id: str
    transport: StreamableHTTPServerTransport
    server: FlightsMCPServer


class SessionRegistry:
    """Open HTTP sessions by id. Mutated only from the event loop."""

    __slots__ = ("_sessions",)

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}

    def add(self, session: Session) -> None:
        if session.id in self._sessions:
            raise ValueError(f"Session '{session.id}' already registered")
        self._sessions[session.id] = session

    def get(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def remove(self, session_id: str) -> Session | None:
        return self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __iter__(self) -> Iterator[Session]:
        return iter(list(self._sessions.values()))

    async def close_all(self) -> None:
        """Terminate every transport and empty the registry."""
        for session in self:
            try:
                await session.transport.terminate()
            except Exception:  # noqa: BLE001
                log.exception("failed to close session", session_id=session.id)
            else:
                log.info("closed session", session_id=session.id)
        self._sessions.clear()


# ═══════════════════════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════════════════════


def is_initialize_request(payload: Any) -> bool:
    """True for an initialize JSON-RPC request, alone or inside a batch."""
    messages = payload if isinstance(payload, list) else [payload]
    return any(isinstance(m, dict) and m.get("method") == "initialize" and "id" in m for m in messages)


def _jsonrpc_error(code: int, message: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse(
        {"jsonrpc": "2.0", "error": {"code": code, "message": message}, "id": None},
        status_code=status_code,
    )


def initialize_succeeded(status: int | None, body: bytes) -> bool:
    """True when an initialize response carries a JSON-RPC result.

    The body is plain JSON in json-response mode and an SSE stream of
    ``data:`` lines otherwise.
    """
    if status != 200:
        return False
    try:
        payloads = [orjson.loads(body)]
    except orjson.JSONDecodeError:
        payloads = []
        for line in body.splitlines():
            if line.startswith(b"data:"):
                try:
                    payloads.append(orjson.loads(line[5:]))
                except orjson.JSONDecodeError:
                    continue
    messages = [m for p in payloads for m in (p if isinstance(p, list) else [p])]
    return any(isinstance(m, dict) and "result" in m for m in messages)


class _ResponseCapture:
    """Send wrapper that keeps the status and body it forwards."""

    __slots__ = ("_send", "status", "body")

    def __init__(self, send: Send) -> None:
        self._send = send
        self.status: int | None = None
        self.body = bytearray()

    async def __call__(self, message: Message) -> None:
        if message["type"] == "http.response.start":
            self.status = message["status"]
        elif message["type"] == "http.response.body":
            self.body.extend(message.get("body", b""))
        await self._send(message)


def _replay(body: bytes, receive: Receive) -> Receive:
    """Receive callable that yields an already-read body once, then defers to the original."""
    sent = False

    async def replay() -> Message:
        nonlocal sent
        if not sent:
            sent = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay


class RequestLogMiddleware:
    """Logs method, path and session of every HTTP request."""

    __slots__ = ("app",)

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            session = Headers(scope=scope).get(MCP_SESSION_ID_HEADER)
            log.info("request", method=scope["method"], path=scope["path"], session=session or "new")
        await self.app(scope, receive, send)


class _McpEndpoint:
    """ASGI endpoint for /mcp; transports write their own responses."""

    __slots__ = ("_server",)

    def __init__(self, server: FlightsHTTPServer) -> None:
        self._server = server

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self._server.handle_mcp(scope, receive, send)


# ═══════════════════════════════════════════════════════════════════════════════
# HTTP server
# ═══════════════════════════════════════════════════════════════════════════════


class FlightsHTTPServer:
    """Starlette app serving MCP sessions over Streamable HTTP."""

    def __init__(
        self,
        settings: FlightsSettings,
        *,
        server_factory: ServerFactory | None = None,
        fatal_task_errors: bool = False,
    ) -> None:
        self._settings = settings
        self._fatal_task_errors = fatal_task_errors
        self._server_factory = server_factory or (lambda sid: FlightsMCPServer(settings, session_id=sid))
        self._task_group: TaskGroup | None = None
        self.sessions = SessionRegistry()
        self.app = self._build_app()

    def _build_app(self) -> Starlette:
        http = self._settings.http
        return Starlette(
            routes=[
                Route("/", self._root, methods=["GET"]),
                Route("/health", self._health, methods=["GET"]),
                Route("/mcp", _McpEndpoint(self), methods=["GET", "POST", "DELETE"]),
            ],
            middleware=[
                Middleware(
                    CORSMiddleware,
                    allow_origins=http.cors_origins,
                    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
                    allow_headers=["Content-Type", MCP_SESSION_ID_HEADER, "mcp-protocol-version"],
                    expose_headers=["Mcp-Session-Id"],
                ),
                Middleware(RequestLogMiddleware),
            ],
            lifespan=self._lifespan,
        )

    @asynccontextmanager
    async def _lifespan(self, app: Starlette) -> AsyncIterator[None]:
        if self._fatal_task_errors:
            install_loop_handler()
        async with anyio.create_task_group() as tg:
            self._task_group = tg
            log.info("http transport ready", server=self._settings.server.name)
            try:
                yield
            finally:
                log.info("shutting down", active_sessions=len(self.sessions))
                await self.sessions.close_all()
                self._task_group = None
                tg.cancel_scope.cancel()

    # ─────────────────────────────────────────────────────────────────
    # Info endpoints
    # ─────────────────────────────────────────────────────────────────

    async def _health(self, request: Request) -> JSONResponse:
        info = self._settings.server
        return JSONResponse({
            "status": "healthy",
            "server": info.name,
            "version": info.version,
            "activeSessions": len(self.sessions),
        })

    async def _root(self, request: Request) -> JSONResponse:
        info, limits = self._settings.server, self._settings.rate_limit
        return JSONResponse({
            "name": info.name,
            "version": info.version,
            "description": info.description,
            "endpoints": {"mcp": "/mcp", "health": "/health"},
            "activeSessions": len(self.sessions),
            "rateLimit": {"requestsPerMinute": limits.requests_per_minute, "burst": limits.burst},
        })

    # ─────────────────────────────────────────────────────────────────
    # MCP endpoint
    # ─────────────────────────────────────────────────────────────────

    async def handle_mcp(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["method"] == "POST":
            await self._handle_post(scope, receive, send)
        else:
            await self._handle_session_request(scope, receive, send)

    async def _handle_post(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        body = await request.body()
        replay = _replay(body, receive)

        if session_id := request.headers.get(MCP_SESSION_ID_HEADER):
            session = self.sessions.get(session_id)
            if session is None:
                await _jsonrpc_error(-32000, "Bad Request: No valid session ID provided")(scope, receive, send)
                return
            await session.transport.handle_request(scope, replay, send)
            return

        try:
            payload = orjson.loads(body)
        except orjson.JSONDecodeError:
            await _jsonrpc_error(-32700, "Parse error: Invalid JSON")(scope, receive, send)
            return
        if not is_initialize_request(payload):
            await _jsonrpc_error(-32000, "Bad Request: No valid session ID provided")(scope, receive, send)
            return

        session = await self._open_session()
        capture = _ResponseCapture(send)
        try:
            await session.transport.handle_request(scope, replay, capture)
        except Exception:
            await self._discard_session(session, capture.status)
            raise
        if not initialize_succeeded(capture.status, bytes(capture.body)):
            await self._discard_session(session, capture.status)
            return
        log.info("session opened", session_id=session.id, active_sessions=len(self.sessions))

    async def _handle_session_request(self, scope: Scope, receive: Receive, send: Send) -> None:
        session_id = Headers(scope=scope).get(MCP_SESSION_ID_HEADER)
        session = self.sessions.get(session_id) if session_id else None
        if session is None:
            await PlainTextResponse("Invalid or missing session ID", status_code=400)(scope, receive, send)
            return
        await session.transport.handle_request(scope, receive, send)
        if scope["method"] == "DELETE" and session.transport.is_terminated:
            if self.sessions.remove(session.id) is not None:
                log.info("session terminated by client", session_id=session.id)

    async def _open_session(self) -> Session:
        if self._task_group is None:
            raise RuntimeError("HTTP server lifespan has not started")
        session_id = uuid4().hex
        transport = StreamableHTTPServerTransport(
            mcp_session_id=session_id,
            is_json_response_enabled=self._settings.http.json_response,
        )
        session = Session(session_id, transport, self._server_factory(session_id))
        self.sessions.add(session)
        await self._task_group.start(self._run_session, session)
        return session

    async def _discard_session(self, session: Session, status: int | None) -> None:
        """Drop a session whose initialize was not accepted."""
        self.sessions.remove(session.id)
        await session.transport.terminate()
        log.warning("initialize rejected, session discarded", session_id=session.id, status=status)

    async def _run_session(self, session: Session, *, task_status: anyio.abc.TaskStatus[None] = anyio.TASK_STATUS_IGNORED) -> None:
        try:
            async with session.transport.connect() as (read_stream, write_stream):
                task_status.started()
                await session.server.run(read_stream, write_stream)
        except Exception:  # noqa: BLE001
            log.exception("session loop failed", session_id=session.id)
        finally:
            if self.sessions.remove(session.id) is not None:
                log.info("session closed", session_id=session.id, active_sessions=len(self.sessions))

    # ─────────────────────────────────────────────────────────────────
    # Entry point
    # ─────────────────────────────────────────────────────────────────

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Serve with uvicorn (blocking). SIGINT/SIGTERM trigger lifespan shutdown."""
        host = host or self._settings.http.host
        port = port or self._settings.http.port
        log.info("starting http transport", host=host, port=port, mcp=f"http://{host}:{port}/mcp")
        uvicorn.run(self.app, host=host, port=port, log_config=None, log_level=self._settings.logging.level.lower())
