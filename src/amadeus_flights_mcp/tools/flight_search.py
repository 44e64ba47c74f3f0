"""Flight tool handlers.

Each handler takes an already-validated params model, calls the provider
(through the retry policy where the endpoint benefits from it) and returns
formatted text. Failures propagate as FlightException; the registry turns
them into error content.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from amadeus_flights_mcp.errors import ErrorCode, FlightException
from amadeus_flights_mcp.formatting import (
    format_airlines,
    format_airports,
    format_cheapest_dates,
    format_flight_offers,
)
from amadeus_flights_mcp.observability import get_logger
from amadeus_flights_mcp.registry import ToolSpec
from amadeus_flights_mcp.retry import RetryPolicy, execute_with_retry
from amadeus_flights_mcp.validation import (
    CheapestDatesParams,
    GetAirlinesParams,
    GetFlightOfferParams,
    SearchAirportsParams,
    SearchFlightsParams,
    SearchMultiCityParams,
)

if TYPE_CHECKING:
    from amadeus_flights_mcp.provider import ProviderResponse

log = get_logger("tools")


class FlightProvider(Protocol):
    """What the handlers need from a provider client."""

    async def search_flights(self, params: SearchFlightsParams) -> ProviderResponse: ...
    async def search_multi_city_flights(self, params: SearchMultiCityParams) -> ProviderResponse: ...
    async def get_flight_offer(self, offer_id: str) -> ProviderResponse: ...
    async def search_airports(self, params: SearchAirportsParams) -> ProviderResponse: ...
    async def get_airlines(self, params: GetAirlinesParams) -> ProviderResponse: ...
    async def search_cheapest_dates(self, params: CheapestDatesParams) -> ProviderResponse: ...


def unsupported_route_message(origin: str, destination: str) -> str:
    return (
        f"⚠️ The cheapest dates search is not available for {origin} → {destination}. "
        "This is because the Flight Dates API only works with pre-computed cached routes. "
        "For broader coverage, consider using the regular flight search API instead.\n\n"
        "Alternative: Use search_flights with specific dates to find the best prices. "
        "The regular flight search supports all routes but requires specific dates."
    )


def _is_unsupported_route(exc: FlightException) -> bool:
    status = exc.error.status_code
    return exc.code == ErrorCode.PROVIDER_ERROR and status is not None and (status == 404 or status >= 500)


class FlightSearchTools:
    """Tool handlers bound to one provider client.

    Example:
        >>> tools = FlightSearchTools(client, policy=RetryPolicy(), default_currency="EUR")
        >>> for spec in tools.specs():
        ...     registry.register(spec)
    """

    __slots__ = ("_client", "_policy", "_currency")

    def __init__(self, client: FlightProvider, *, policy: RetryPolicy | None = None, default_currency: str = "USD") -> None:
        self._client = client
        self._policy = policy or RetryPolicy()
        self._currency = default_currency

    async def search_flights(self, params: SearchFlightsParams) -> str:
        response = await execute_with_retry(lambda: self._client.search_flights(params), self._policy, "search_flights")
        return format_flight_offers(response, self._currency)

    async def get_flight_offers(self, params: GetFlightOfferParams) -> str:
        response = await execute_with_retry(
            lambda: self._client.get_flight_offer(params.offer_id), self._policy, "get_flight_offers"
        )
        return format_flight_offers(response, self._currency)

    async def search_airports(self, params: SearchAirportsParams) -> str:
        response = await execute_with_retry(lambda: self._client.search_airports(params), self._policy, "search_airports")
        return format_airports(response)

    async def get_airlines(self, params: GetAirlinesParams) -> str:
        response = await execute_with_retry(lambda: self._client.get_airlines(params), self._policy, "get_airlines")
        return format_airlines(response)

    async def search_multi_city_flights(self, params: SearchMultiCityParams) -> str:
        response = await execute_with_retry(
            lambda: self._client.search_multi_city_flights(params), self._policy, "search_multi_city_flights"
        )
        return format_flight_offers(response, self._currency)

    async def search_flight_cheapest_dates(self, params: CheapestDatesParams) -> str:
        # Not retried: routes outside the provider's cache fail identically every time
        try:
            response = await self._client.search_cheapest_dates(params)
        except FlightException as exc:
            if not _is_unsupported_route(exc):
                raise
            log.warning(
                "cheapest dates unavailable for route",
                origin=params.origin,
                destination=params.destination,
                status=exc.error.status_code,
            )
            return unsupported_route_message(params.origin, params.destination)
        return format_cheapest_dates(response, self._currency)

    def specs(self) -> list[ToolSpec]:
        return [
            ToolSpec(
                "search_flights",
                "PRIMARY TOOL for finding flights between airports. Use this tool when users ask for "
                '"flights from X to Y", "best flights", "cheapest flights", or any flight search request. '
                "Returns prices, schedules, airlines and stops, cheapest first (top 10). "
                "Common airport codes: LAX (Los Angeles), SEA (Seattle), JFK (New York), LHR (London), CDG (Paris).",
                SearchFlightsParams,
                self.search_flights,
            ),
            ToolSpec(
                "get_flight_offers",
                "Get details of a flight offer by its ID. Limited: the provider has no lookup by ID, so this "
                "re-runs a fixed LHR → JFK search 30 days ahead and filters by ID. Offers from other searches "
                "are usually not found; prefer the details already returned by search_flights.",
                GetFlightOfferParams,
                self.get_flight_offers,
            ),
            ToolSpec(
                "search_airports",
                'ONLY use this tool when you need to find airport codes for city names (e.g., "Seattle" → "SEA"). '
                "Do NOT use this tool if you already have airport codes.",
                SearchAirportsParams,
                self.search_airports,
            ),
            ToolSpec(
                "get_airlines",
                "ONLY use this tool when you need airline information (like full airline names) for specific "
                "airline codes. search_flights already provides airline codes.",
                GetAirlinesParams,
                self.get_airlines,
            ),
            ToolSpec(
                "search_multi_city_flights",
                "Search multi-city itineraries with up to 6 legs. Always use sources: [\"GDS\"]. "
                'Example: {"originDestinations": [...], "travelers": [...], "sources": ["GDS"]}',
                SearchMultiCityParams,
                self.search_multi_city_flights,
            ),
            ToolSpec(
                "search_flight_cheapest_dates",
                'ONLY use this tool when users specifically ask for "cheapest dates" or "when is the cheapest '
                'time to fly". Works only for routes the provider has pre-computed; use search_flights otherwise.',
                CheapestDatesParams,
                self.search_flight_cheapest_dates,
            ),
        ]
