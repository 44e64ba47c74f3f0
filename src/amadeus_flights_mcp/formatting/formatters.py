"""Shape provider payloads into compact JSON text for LLM clients.

shape_* functions return plain dicts (easy to assert on); format_* wrap them
into the 2-space indented JSON text sent back as tool content. Every shape
is capped at MAX_RESULTS entries so large searches do not flood the
client's context.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

import orjson

if TYPE_CHECKING:
    from amadeus_flights_mcp.provider import ProviderResponse

MAX_RESULTS = 10
DEFAULT_CURRENCY = "USD"


def _to_json(payload: dict[str, Any]) -> str:
    return orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode()


def _price_value(raw: Any) -> float:
    """Numeric price, or +inf when unparsable (sorts last)."""
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return math.inf
    return value if math.isfinite(value) else math.inf


def _by_price(entries: list[dict[str, Any]]) -> list[dict[str, Any]]:
    # sorted() is stable: equal prices keep provider order
    return sorted(entries, key=lambda e: _price_value(e.get("priceValue")))


def _meta(response: ProviderResponse, total_key: str, total: int, showing: int) -> dict[str, Any]:
    return {"count": response.meta.get("count", total), total_key: total, "showing": showing}


# ─────────────────────────────────────────────────────────────────────────────
# Flight offers
# ─────────────────────────────────────────────────────────────────────────────


def _leg(itinerary: dict[str, Any]) -> dict[str, Any]:
    segments = itinerary.get("segments") or []
    first = segments[0] if segments else {}
    last = segments[-1] if segments else {}
    dep, arr = first.get("departure") or {}, last.get("arrival") or {}
    return {
        "duration": itinerary.get("duration"),
        "route": f"{dep.get('iataCode', 'N/A')} → {arr.get('iataCode', 'N/A')}" if segments else "N/A",
        "departure": dep.get("at"),
        "arrival": arr.get("at"),
        "airline": f"{first.get('carrierCode', '')}{first.get('number', '')}" if segments else "N/A",
        "stops": max(len(segments) - 1, 0) + sum(s.get("numberOfStops", 0) or 0 for s in segments),
    }


def shape_flight_offer(offer: dict[str, Any], default_currency: str = DEFAULT_CURRENCY) -> dict[str, Any]:
    itineraries = offer.get("itineraries") or []
    price = offer.get("price") or {}
    currency = price.get("currency") or default_currency
    total = price.get("total") or price.get("grandTotal")
    one_way = bool(offer.get("oneWay")) or len(itineraries) < 2

    shaped: dict[str, Any] = {
        "id": offer.get("id"),
        "price": f"{currency} {total}" if total is not None else "N/A",
        "priceValue": _price_value(total) if total is not None else None,
        "oneWay": one_way,
        "seats": offer.get("numberOfBookableSeats"),
        "tripType": "one-way" if one_way else "round-trip",
    }
    if shaped["priceValue"] == math.inf:
        shaped["priceValue"] = None
    if itineraries:
        shaped["outbound"] = _leg(itineraries[0])
    if not one_way:
        shaped["return"] = _leg(itineraries[1])
    return shaped


def shape_flight_offers(response: ProviderResponse, default_currency: str = DEFAULT_CURRENCY) -> dict[str, Any]:
    """Project offers, sort by ascending price and cap at MAX_RESULTS."""
    offers = _by_price([shape_flight_offer(o, default_currency) for o in response.data])
    shown = offers[:MAX_RESULTS]
    return {"offers": shown, "meta": _meta(response, "totalOffers", len(offers), len(shown))}


def format_flight_offers(response: ProviderResponse, default_currency: str = DEFAULT_CURRENCY) -> str:
    return _to_json(shape_flight_offers(response, default_currency))


# ─────────────────────────────────────────────────────────────────────────────
# Reference data
# ─────────────────────────────────────────────────────────────────────────────


def shape_airports(response: ProviderResponse) -> dict[str, Any]:
    airports = []
    for airport in response.data:
        address = airport.get("address") or {}
        city, country = address.get("cityName"), address.get("countryName")
        airports.append({
            "code": airport.get("iataCode"),
            "name": airport.get("name"),
            "city": city,
            "country": country,
            "location": f"{city}, {country}" if city and country else "N/A",
        })
    shown = airports[:MAX_RESULTS]
    return {"airports": shown, "meta": _meta(response, "totalAirports", len(airports), len(shown))}


def format_airports(response: ProviderResponse) -> str:
    return _to_json(shape_airports(response))


def shape_airlines(response: ProviderResponse) -> dict[str, Any]:
    airlines = [
        {"code": a.get("iataCode") or a.get("icaoCode"), "name": a.get("commonName") or a.get("businessName")}
        for a in response.data
    ]
    shown = airlines[:MAX_RESULTS]
    return {"airlines": shown, "meta": _meta(response, "totalAirlines", len(airlines), len(shown))}


def format_airlines(response: ProviderResponse) -> str:
    return _to_json(shape_airlines(response))


# ─────────────────────────────────────────────────────────────────────────────
# Cheapest dates
# ─────────────────────────────────────────────────────────────────────────────


def shape_cheapest_dates(response: ProviderResponse, default_currency: str = DEFAULT_CURRENCY) -> dict[str, Any]:
    currency = response.meta.get("currency") or default_currency
    dates = []
    for entry in response.data:
        price = entry.get("price")
        total = price.get("total") if isinstance(price, dict) else price
        dates.append({
            "departureDate": entry.get("departureDate"),
            "returnDate": entry.get("returnDate"),
            "price": f"{currency} {total}" if total is not None else "N/A",
            "priceValue": total,
        })
    ordered = _by_price(dates)
    for d in ordered:
        value = _price_value(d["priceValue"])
        d["priceValue"] = None if value == math.inf else value
    shown = ordered[:MAX_RESULTS]
    return {"dates": shown, "meta": _meta(response, "totalDates", len(dates), len(shown))}


def format_cheapest_dates(response: ProviderResponse, default_currency: str = DEFAULT_CURRENCY) -> str:
    return _to_json(shape_cheapest_dates(response, default_currency))
