"""Tests for the Streamable HTTP transport.

Validates:
- Info endpoints report the active session count
- Requests without a valid session are rejected and create no entry
- initialize opens a session that serves tools until DELETE removes it
- Session entries go away when their loop ends and at shutdown
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager
from typing import Any

from anyio.lowlevel import checkpoint
import pytest
from starlette.testclient import TestClient

from amadeus_flights_mcp.config import FlightsSettings
from amadeus_flights_mcp.server import (
    FlightsHTTPServer,
    FlightsMCPServer,
    Session,
    SessionRegistry,
    initialize_succeeded,
    is_initialize_request,
)

from conftest import StubProvider, offers_response

HEADERS = {"Accept": "application/json, text/event-stream", "Content-Type": "application/json"}

INITIALIZE = {
    "jsonrpc": "2.0",
    "id": 1,
    "method": "initialize",
    "params": {
        "protocolVersion": "2025-03-26",
        "capabilities": {},
        "clientInfo": {"name": "test-client", "version": "0.0.1"},
    },
}
INITIALIZED = {"jsonrpc": "2.0", "method": "notifications/initialized"}


@pytest.fixture
def http_server(settings: FlightsSettings, provider: StubProvider) -> FlightsHTTPServer:
    return FlightsHTTPServer(settings, server_factory=lambda sid: FlightsMCPServer(settings, provider, session_id=sid))


@pytest.fixture
def client(http_server: FlightsHTTPServer) -> Iterator[TestClient]:
    with TestClient(http_server.app) as client:
        yield client


def _open(client: TestClient) -> str:
    response = client.post("/mcp", json=INITIALIZE, headers=HEADERS)
    assert response.status_code == 200
    session_id = response.headers["mcp-session-id"]
    assert client.post("/mcp", json=INITIALIZED, headers={**HEADERS, "mcp-session-id": session_id}).status_code == 202
    return session_id


def _active(client: TestClient) -> int:
    return client.get("/health").json()["activeSessions"]


# ═════════════════════════════════════════════════════════════════════════════
# Info endpoints
# ═════════════════════════════════════════════════════════════════════════════


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {
        "status": "healthy",
        "server": "amadeus-flights-server",
        "version": "1.0.0",
        "activeSessions": 0,
    }


def test_root(client: TestClient) -> None:
    body = client.get("/").json()
    assert body["endpoints"] == {"mcp": "/mcp", "health": "/health"}
    assert body["rateLimit"] == {"requestsPerMinute": 60, "burst": 10}
    assert body["activeSessions"] == 0


# ═════════════════════════════════════════════════════════════════════════════
# Rejected requests
# ═════════════════════════════════════════════════════════════════════════════


def test_non_initialize_without_session(client: TestClient, http_server: FlightsHTTPServer) -> None:
    response = client.post("/mcp", json={"jsonrpc": "2.0", "id": 1, "method": "tools/list"}, headers=HEADERS)
    assert response.status_code == 400
    assert response.json()["error"] == {"code": -32000, "message": "Bad Request: No valid session ID provided"}
    assert len(http_server.sessions) == 0


def test_unknown_session(client: TestClient, http_server: FlightsHTTPServer) -> None:
    response = client.post(
        "/mcp",
        json={"jsonrpc": "2.0", "id": 1, "method": "tools/list"},
        headers={**HEADERS, "mcp-session-id": "does-not-exist"},
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == -32000
    assert len(http_server.sessions) == 0


def test_rejected_initialize_leaves_no_session(client: TestClient, http_server: FlightsHTTPServer) -> None:
    for _ in range(3):
        response = client.post("/mcp", json=INITIALIZE, headers={**HEADERS, "Accept": "text/html"})
        assert response.status_code == 406

    response = client.post("/mcp", json={"jsonrpc": "2.0", "id": 1, "method": "initialize"}, headers=HEADERS)
    assert response.json()["error"]["code"] == -32602

    assert len(http_server.sessions) == 0
    assert _active(client) == 0

    _open(client)
    assert _active(client) == 1


@pytest.mark.parametrize(
    ("status", "body", "expected"),
    [
        (200, b'{"jsonrpc": "2.0", "id": 1, "result": {"protocolVersion": "2025-03-26"}}', True),
        (200, b'event: message\r\ndata: {"jsonrpc": "2.0", "id": 1, "result": {}}\r\n\r\n', True),
        (200, b'[{"jsonrpc": "2.0", "id": 1, "result": {}}]', True),
        (200, b'{"jsonrpc": "2.0", "id": 1, "error": {"code": -32602, "message": "Invalid request parameters"}}', False),
        (200, b'event: message\r\ndata: {"jsonrpc": "2.0", "id": 1, "error": {"code": -32602}}\r\n\r\n', False),
        (406, b'{"jsonrpc": "2.0", "id": "server-error", "error": {"code": -32600}}', False),
        (None, b"", False),
    ],
)
def test_initialize_outcome(status: int | None, body: bytes, expected: bool) -> None:
    assert initialize_succeeded(status, body) is expected


def test_invalid_json(client: TestClient) -> None:
    response = client.post("/mcp", content=b"{not json", headers=HEADERS)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == -32700


@pytest.mark.parametrize("method", ["GET", "DELETE"])
def test_session_required_for_get_and_delete(client: TestClient, method: str) -> None:
    for headers in ({}, {"mcp-session-id": "does-not-exist"}):
        response = client.request(method, "/mcp", headers=headers)
        assert response.status_code == 400
        assert response.text == "Invalid or missing session ID"


# ═════════════════════════════════════════════════════════════════════════════
# Session lifecycle
# ═════════════════════════════════════════════════════════════════════════════


def test_session_flow(client: TestClient, http_server: FlightsHTTPServer, provider: StubProvider) -> None:
    session_id = _open(client)
    assert session_id in http_server.sessions
    assert _active(client) == 1
    headers = {**HEADERS, "mcp-session-id": session_id}

    listed = client.post("/mcp", json={"jsonrpc": "2.0", "id": 2, "method": "tools/list"}, headers=headers)
    assert len(listed.json()["result"]["tools"]) == 6

    provider.queue("search_flights", offers_response(500, 300))
    called = client.post("/mcp", headers=headers, json={
        "jsonrpc": "2.0",
        "id": 3,
        "method": "tools/call",
        "params": {
            "name": "search_flights",
            "arguments": {"origin": "LHR", "destination": "JFK", "departureDate": "2025-01-15", "adults": 1},
        },
    })
    result = called.json()["result"]
    assert result["isError"] is False
    assert '"EUR 300"' in result["content"][0]["text"]

    assert client.delete("/mcp", headers={"mcp-session-id": session_id}).status_code == 200
    assert session_id not in http_server.sessions
    assert _active(client) == 0


def test_sessions_are_independent(client: TestClient, http_server: FlightsHTTPServer) -> None:
    first, second = _open(client), _open(client)
    assert first != second
    assert _active(client) == 2

    client.delete("/mcp", headers={"mcp-session-id": first})
    assert [s.id for s in http_server.sessions] == [second]


def test_shutdown_closes_sessions(http_server: FlightsHTTPServer) -> None:
    with TestClient(http_server.app) as client:
        _open(client)
        _open(client)
        assert len(http_server.sessions) == 2
    assert len(http_server.sessions) == 0


# ═════════════════════════════════════════════════════════════════════════════
# Session registry
# ═════════════════════════════════════════════════════════════════════════════


class FakeTransport:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.terminated = False

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[tuple[Any, Any]]:
        yield None, None

    async def terminate(self) -> None:
        if self.fail:
            raise RuntimeError("already gone")
        self.terminated = True


class FakeServer:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error

    async def run(self, read_stream: Any, write_stream: Any) -> None:
        await checkpoint()
        if self.error is not None:
            raise self.error


def _session(session_id: str, *, transport: FakeTransport | None = None, error: Exception | None = None) -> Session:
    return Session(session_id, transport or FakeTransport(), FakeServer(error))  # type: ignore[arg-type]


def test_registry_rejects_duplicates() -> None:
    registry = SessionRegistry()
    registry.add(_session("a"))
    with pytest.raises(ValueError, match="already registered"):
        registry.add(_session("a"))
    assert registry.remove("a") is not None
    assert registry.remove("a") is None


@pytest.mark.asyncio
async def test_close_all_survives_failures() -> None:
    registry = SessionRegistry()
    broken, healthy = FakeTransport(fail=True), FakeTransport()
    registry.add(_session("a", transport=broken))
    registry.add(_session("b", transport=healthy))

    await registry.close_all()
    assert healthy.terminated
    assert len(registry) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [None, RuntimeError("stream broke")])
async def test_entry_removed_when_loop_ends(settings: FlightsSettings, error: Exception | None) -> None:
    http_server = FlightsHTTPServer(settings)
    session = _session("s1", error=error)
    http_server.sessions.add(session)

    await http_server._run_session(session)
    assert "s1" not in http_server.sessions


def test_initialize_detection() -> None:
    assert is_initialize_request(INITIALIZE)
    assert is_initialize_request([INITIALIZED, INITIALIZE])
    assert not is_initialize_request(INITIALIZED)
    assert not is_initialize_request({"method": "initialize"})
    assert not is_initialize_request("initialize")
