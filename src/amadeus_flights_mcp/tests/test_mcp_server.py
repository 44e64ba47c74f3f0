"""Tests for the MCP protocol surface, over in-memory client streams."""

from __future__ import annotations

import orjson
import pytest
from mcp.shared.exceptions import McpError
from mcp.shared.memory import create_connected_server_and_client_session

from amadeus_flights_mcp.config import FlightsSettings
from amadeus_flights_mcp.server import FlightsMCPServer

from conftest import StubProvider, offers_response, provider_error

SEARCH = {"origin": "LHR", "destination": "JFK", "departureDate": "2025-01-15", "adults": 1}


@pytest.fixture
def flights(settings: FlightsSettings, provider: StubProvider) -> FlightsMCPServer:
    return FlightsMCPServer(settings, provider)


@pytest.mark.asyncio
async def test_list_tools(flights: FlightsMCPServer) -> None:
    async with create_connected_server_and_client_session(flights.server) as client:
        tools = {t.name: t for t in (await client.list_tools()).tools}

    assert set(tools) == {
        "search_flights",
        "get_flight_offers",
        "search_airports",
        "get_airlines",
        "search_multi_city_flights",
        "search_flight_cheapest_dates",
    }
    schema = tools["search_flights"].inputSchema
    assert {"origin", "destination", "departureDate", "adults", "returnDate"} <= set(schema["properties"])


@pytest.mark.asyncio
async def test_call_tool(flights: FlightsMCPServer, provider: StubProvider) -> None:
    provider.queue("search_flights", offers_response(500, 300))
    async with create_connected_server_and_client_session(flights.server) as client:
        result = await client.call_tool("search_flights", SEARCH)

    assert not result.isError
    offers = orjson.loads(result.content[0].text)["offers"]
    assert [o["priceValue"] for o in offers] == [300.0, 500.0]


@pytest.mark.asyncio
async def test_call_tool_failures_flagged(flights: FlightsMCPServer, provider: StubProvider) -> None:
    provider.queue("search_flights", provider_error(401, "Invalid access token"))
    async with create_connected_server_and_client_session(flights.server) as client:
        invalid = await client.call_tool("search_flights", {**SEARCH, "departureDate": "15/01/2025"})
        rejected = await client.call_tool("search_flights", SEARCH)
        unknown = await client.call_tool("book_flight", {})

    assert invalid.isError
    assert invalid.content[0].text.startswith("Error: Invalid parameters provided\n- departureDate: ")
    assert rejected.isError
    assert rejected.content[0].text == "Error: Amadeus API Error (401): Invalid access token"
    assert unknown.isError
    assert unknown.content[0].text == "Error: Unknown tool 'book_flight'"


@pytest.mark.asyncio
async def test_prompts(flights: FlightsMCPServer) -> None:
    async with create_connected_server_and_client_session(flights.server) as client:
        prompts = {p.name: p for p in (await client.list_prompts()).prompts}
        planned = await client.get_prompt("travel-planning", {"destination": "Lisbon"})

    assert len(prompts) == 4
    assert [a.name for a in prompts["compare-flights"].arguments if a.required] == ["flightOptions"]
    assert planned.messages[0].role == "user"
    assert "Lisbon" in planned.messages[0].content.text


@pytest.mark.asyncio
async def test_prompt_errors(flights: FlightsMCPServer) -> None:
    async with create_connected_server_and_client_session(flights.server) as client:
        with pytest.raises(McpError):
            await client.get_prompt("no-such-prompt")
        with pytest.raises(McpError):
            await client.get_prompt("travel-planning", {})
