"""Async wrapper around the Amadeus Self-Service SDK.

The SDK is synchronous, so every call runs in a worker thread. Each
operation returns a ProviderResponse or raises FlightException; SDK errors
never escape untranslated.
"""

from __future__ import annotations

import asyncio
import logging
import math
from datetime import date, timedelta
from typing import TYPE_CHECKING, Any, Callable

from amadeus import Client, Location, ResponseError
from pydantic import BaseModel, ConfigDict, Field

from amadeus_flights_mcp.errors import FlightException
from amadeus_flights_mcp.observability import get_logger

if TYPE_CHECKING:
    from amadeus_flights_mcp.config import AmadeusSettings
    from amadeus_flights_mcp.validation import (
        CheapestDatesParams,
        GetAirlinesParams,
        SearchAirportsParams,
        SearchFlightsParams,
        SearchMultiCityParams,
    )

log = get_logger("provider")

# The provider has no lookup by offer id. get_flight_offer scans this fixed
# route and filters client-side, so ids from other searches are not found.
FALLBACK_ORIGIN = "LHR"
FALLBACK_DESTINATION = "JFK"
FALLBACK_DAYS_AHEAD = 30


class ProviderResponse(BaseModel):
    """Parsed provider payload: data entries plus meta and dictionaries."""

    model_config = ConfigDict(frozen=True)

    data: list[dict[str, Any]] = Field(default_factory=list)
    meta: dict[str, Any] = Field(default_factory=dict)
    dictionaries: dict[str, Any] | None = None

    @classmethod
    def from_result(cls, result: Any) -> ProviderResponse:
        if not isinstance(result, dict):
            return cls()
        data = result.get("data") or []
        if isinstance(data, dict):
            data = [data]
        return cls(data=data, meta=result.get("meta") or {}, dictionaries=result.get("dictionaries"))

    def limited(self, max_items: int | None) -> ProviderResponse:
        """Truncate data to max_items, adjusting meta.count to match."""
        if not max_items or len(self.data) <= max_items:
            return self
        meta = dict(self.meta)
        if isinstance(meta.get("count"), int):
            meta["count"] = min(meta["count"], max_items)
        return self.model_copy(update={"data": self.data[:max_items], "meta": meta})


def translate_provider_error(exc: ResponseError) -> FlightException:
    """Map an SDK ResponseError to a network or provider FlightException.

    A missing or zero status means the request never got an HTTP answer.
    """
    response = getattr(exc, "response", None)
    status = getattr(response, "status_code", None)
    if not status:
        detail = str(exc) or "Connection failed"
        return FlightException.network(f"Unable to connect to Amadeus API - {detail}")

    message = "Unknown API error"
    provider_code: str | None = None
    result = getattr(response, "result", None)
    if isinstance(result, dict):
        errors = result.get("errors")
        if isinstance(errors, list) and errors:
            first = errors[0] if isinstance(errors[0], dict) else {}
            message = first.get("detail") or first.get("title") or first.get("message") or "API Error"
            if first.get("code") is not None:
                provider_code = str(first["code"])
        else:
            message = (
                result.get("error_description")
                or result.get("detail")
                or result.get("message")
                or result.get("error")
                or message
            )
    elif str(exc):
        message = str(exc)
    return FlightException.provider(int(status), str(message), provider_code)


def _query(**params: Any) -> dict[str, Any]:
    """Drop None values; booleans go on the wire as 'true'/'false'."""
    out: dict[str, Any] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        elif isinstance(value, date):
            value = value.isoformat()
        out[key] = value
    return out


class AmadeusClient:
    """Flight data provider client.

    Example:
        >>> client = AmadeusClient(get_settings().amadeus)
        >>> response = await client.search_flights(params)
        >>> len(response.data)
        12
    """

    __slots__ = ("_sdk",)

    def __init__(self, settings: AmadeusSettings, *, sdk: Any = None) -> None:
        self._sdk = sdk if sdk is not None else Client(
            client_id=settings.client_id,
            client_secret=settings.client_secret.get_secret_value(),
            hostname=settings.hostname,
            logger=logging.getLogger("amadeus"),
        )

    async def _call(self, operation: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> ProviderResponse:
        log.debug("provider request", operation=operation, params=kwargs or (args[0] if args else {}))
        try:
            response = await asyncio.to_thread(fn, *args, **kwargs)
        except ResponseError as exc:
            raise translate_provider_error(exc) from exc
        except (OSError, TimeoutError) as exc:
            raise FlightException.network(str(exc) or type(exc).__name__) from exc
        result = ProviderResponse.from_result(getattr(response, "result", None))
        log.debug("provider response", operation=operation, count=len(result.data))
        return result

    async def search_flights(self, params: SearchFlightsParams) -> ProviderResponse:
        return await self._call(
            "search_flights",
            self._sdk.shopping.flight_offers_search.get,
            **_query(
                originLocationCode=params.origin,
                destinationLocationCode=params.destination,
                departureDate=params.departure_date,
                returnDate=params.return_date,
                adults=params.adults,
                children=params.children,
                infants=params.infants,
                travelClass=params.travel_class,
                nonStop=params.non_stop,
                maxPrice=math.ceil(params.max_price) if params.max_price is not None else None,
                currencyCode=params.currency_code,
                max=params.max,
            ),
        )

    async def search_multi_city_flights(self, params: SearchMultiCityParams) -> ProviderResponse:
        body = params.model_dump(by_alias=True, exclude_none=True, mode="json")
        return await self._call("search_multi_city_flights", self._sdk.shopping.flight_offers_search.post, body)

    async def get_flight_offer(self, offer_id: str, *, today: date | None = None) -> ProviderResponse:
        """Find an offer by id in a fallback LHR-JFK search (known limitation)."""
        departure = (today or date.today()) + timedelta(days=FALLBACK_DAYS_AHEAD)
        log.warning(
            "offer lookup uses a fallback search",
            offer_id=offer_id,
            route=f"{FALLBACK_ORIGIN}-{FALLBACK_DESTINATION}",
            departure_date=departure.isoformat(),
        )
        response = await self._call(
            "get_flight_offer",
            self._sdk.shopping.flight_offers_search.get,
            **_query(
                originLocationCode=FALLBACK_ORIGIN,
                destinationLocationCode=FALLBACK_DESTINATION,
                departureDate=departure,
                adults=1,
            ),
        )
        matches = [offer for offer in response.data if str(offer.get("id")) == offer_id]
        return response.model_copy(update={"data": matches})

    async def search_airports(self, params: SearchAirportsParams) -> ProviderResponse:
        # locations has no max parameter; truncate locally
        response = await self._call(
            "search_airports",
            self._sdk.reference_data.locations.get,
            **_query(keyword=params.keyword, subType=Location.AIRPORT, countryCode=params.country_code),
        )
        return response.limited(params.max)

    async def get_airlines(self, params: GetAirlinesParams) -> ProviderResponse:
        response = await self._call(
            "get_airlines",
            self._sdk.reference_data.airlines.get,
            **_query(airlineCodes=params.airline_codes),
        )
        return response.limited(params.max)

    async def search_cheapest_dates(self, params: CheapestDatesParams) -> ProviderResponse:
        return await self._call(
            "search_cheapest_dates",
            self._sdk.shopping.flight_dates.get,
            **_query(
                origin=params.origin,
                destination=params.destination,
                departureDate=params.departure_date,
                returnDate=params.return_date,
                oneWay=params.one_way,
                nonStop=params.non_stop,
                duration=params.duration,
                viewBy=params.view_by,
                maxPrice=math.ceil(params.max_price) if params.max_price is not None else None,
                aggregationMode=params.aggregation_mode,
            ),
        )

    async def test_connection(self) -> bool:
        """Cheap locations lookup; False on any provider failure."""
        try:
            await self._call(
                "test_connection",
                self._sdk.reference_data.locations.get,
                keyword="LON",
                subType=Location.AIRPORT,
            )
        except FlightException as exc:
            log.error("connection test failed", error=exc.error.message, code=str(exc.code))
            return False
        return True
