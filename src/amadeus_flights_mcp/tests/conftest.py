"""Shared fixtures: silent logging, explicit settings and a stub provider."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest

from amadeus_flights_mcp.config import AmadeusSettings, FlightsSettings, HttpSettings, RetrySettings
from amadeus_flights_mcp.errors import FlightException
from amadeus_flights_mcp.observability import configure_logging
from amadeus_flights_mcp.provider import ProviderResponse


@pytest.fixture(autouse=True)
def _silence_logging() -> Iterator[None]:
    configure_logging("none")
    yield
    configure_logging("none")


@pytest.fixture
def settings() -> FlightsSettings:
    return FlightsSettings(
        _env_file=None,
        default_currency="USD",
        transport="stdio",
        amadeus=AmadeusSettings(_env_file=None, client_id="test-id", client_secret="test-secret"),
        retry=RetrySettings(max_attempts=3, base_delay=0.001, max_delay=0.002),
        http=HttpSettings(json_response=True),
    )


# ═════════════════════════════════════════════════════════════════════════════
# Provider payload builders
# ═════════════════════════════════════════════════════════════════════════════


def make_segment(
    origin: str,
    destination: str,
    departure: str = "2025-01-15T08:00:00",
    arrival: str = "2025-01-15T16:00:00",
    carrier: str = "BA",
    number: str = "117",
    **extra: Any,
) -> dict[str, Any]:
    return {
        "departure": {"iataCode": origin, "at": departure},
        "arrival": {"iataCode": destination, "at": arrival},
        "carrierCode": carrier,
        "number": number,
        "duration": "PT8H",
        "numberOfStops": 0,
        **extra,
    }


def make_offer(
    offer_id: str,
    total: str | float,
    currency: str = "EUR",
    *,
    itineraries: list[dict[str, Any]] | None = None,
    one_way: bool = False,
    seats: int = 9,
) -> dict[str, Any]:
    if itineraries is None:
        itineraries = [{"duration": "PT8H", "segments": [make_segment("LHR", "JFK")]}]
    return {
        "type": "flight-offer",
        "id": offer_id,
        "oneWay": one_way,
        "numberOfBookableSeats": seats,
        "itineraries": itineraries,
        "price": {"currency": currency, "total": str(total), "grandTotal": str(total)},
    }


def offers_response(*prices: float | str) -> ProviderResponse:
    data = [make_offer(str(i + 1), p) for i, p in enumerate(prices)]
    return ProviderResponse(data=data, meta={"count": len(data)})


# ═════════════════════════════════════════════════════════════════════════════
# Stub provider
# ═════════════════════════════════════════════════════════════════════════════


class StubProvider:
    """Provider double. Queue results or exceptions per operation; calls are recorded."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self._outcomes: dict[str, list[ProviderResponse | Exception]] = {}

    def queue(self, operation: str, *outcomes: ProviderResponse | Exception) -> StubProvider:
        self._outcomes.setdefault(operation, []).extend(outcomes)
        return self

    def count(self, operation: str) -> int:
        return sum(1 for name, _ in self.calls if name == operation)

    async def _next(self, operation: str, arg: Any) -> ProviderResponse:
        self.calls.append((operation, arg))
        queued = self._outcomes.get(operation) or []
        outcome = queued.pop(0) if len(queued) > 1 else (queued[0] if queued else ProviderResponse())
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def search_flights(self, params: Any) -> ProviderResponse:
        return await self._next("search_flights", params)

    async def search_multi_city_flights(self, params: Any) -> ProviderResponse:
        return await self._next("search_multi_city_flights", params)

    async def get_flight_offer(self, offer_id: str) -> ProviderResponse:
        return await self._next("get_flight_offer", offer_id)

    async def search_airports(self, params: Any) -> ProviderResponse:
        return await self._next("search_airports", params)

    async def get_airlines(self, params: Any) -> ProviderResponse:
        return await self._next("get_airlines", params)

    async def search_cheapest_dates(self, params: Any) -> ProviderResponse:
        return await self._next("search_cheapest_dates", params)


@pytest.fixture
def provider() -> StubProvider:
    return StubProvider()


def provider_error(status: int, message: str = "boom") -> FlightException:
    return FlightException.provider(status, message)
