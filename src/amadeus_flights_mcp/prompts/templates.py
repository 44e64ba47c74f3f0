"""Prompt templates offered to MCP clients.

format-flight-results renders raw offer JSON into markdown itself; the other
three return a user message that steers the model toward the tools.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

import orjson

from amadeus_flights_mcp.registry import PromptArgument, PromptMessage, PromptSpec

NO_RESULTS = "No flight results found to format."


# ─────────────────────────────────────────────────────────────────────────────
# format-flight-results
# ─────────────────────────────────────────────────────────────────────────────


def _parse_datetime(value: Any) -> datetime | None:
    if not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def format_datetime(value: Any) -> str:
    """'2025-01-15T08:30:00' -> 'Wed, Jan 15, 2025, 08:30 AM'"""
    parsed = _parse_datetime(value)
    return parsed.strftime("%a, %b %d, %Y, %I:%M %p") if parsed else str(value)


def layover(arrival: Any, departure: Any) -> str:
    start, end = _parse_datetime(arrival), _parse_datetime(departure)
    if start is None or end is None or (start.tzinfo is None) != (end.tzinfo is None):
        return "Unknown"
    minutes = int((end - start).total_seconds() // 60)
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m" if hours > 0 else f"{minutes}m"


def _extract_offers(flight_data: str) -> tuple[list[dict[str, Any]], dict[str, Any]]:
    try:
        parsed = orjson.loads(flight_data)
    except orjson.JSONDecodeError:
        return [], {}
    if isinstance(parsed, list):
        return [o for o in parsed if isinstance(o, dict)], {}
    if isinstance(parsed, dict):
        offers = parsed.get("data") or parsed.get("flightOffers") or []
        dictionaries = parsed.get("dictionaries") or {}
        if isinstance(offers, list):
            return [o for o in offers if isinstance(o, dict)], dictionaries if isinstance(dictionaries, dict) else {}
    return [], {}


def _segment_lines(segment: dict[str, Any], carriers: Mapping[str, Any], include_details: bool) -> list[str]:
    dep, arr = segment.get("departure") or {}, segment.get("arrival") or {}
    carrier = segment.get("carrierCode", "")
    airline = f"• **Airline:** {carrier} {segment.get('number', '')}"
    if carrier in carriers:
        name = carriers[carrier]
        airline += f" ({name.get('businessName', name) if isinstance(name, dict) else name})"

    departure = f"• **Departure:** {format_datetime(dep.get('at'))}"
    if dep.get("terminal"):
        departure += f" (Terminal {dep['terminal']})"
    arrival = f"• **Arrival:** {format_datetime(arr.get('at'))}"
    if arr.get("terminal"):
        arrival += f" (Terminal {arr['terminal']})"

    stops = segment.get("numberOfStops") or 0
    lines = [
        airline,
        f"• **Route:** {dep.get('iataCode')} → {arr.get('iataCode')}",
        departure,
        arrival,
        f"• **Duration:** {segment.get('duration')}",
        f"• **Stops:** {'Non-stop' if stops == 0 else f'{stops} stop' + ('s' if stops > 1 else '')}",
    ]
    if include_details:
        if (segment.get("aircraft") or {}).get("code"):
            lines.append(f"• **Aircraft:** {segment['aircraft']['code']}")
        operating = (segment.get("operating") or {}).get("carrierCode")
        if operating and operating != carrier:
            lines.append(f"• **Operated by:** {operating}")
    return lines


def render_flight_results(offers: list[dict[str, Any]], dictionaries: Mapping[str, Any], include_details: bool) -> str:
    carriers = dictionaries.get("carriers") or {}
    out = ["## ✈️ Flight Search Results", ""]
    for index, offer in enumerate(offers, 1):
        price = offer.get("price") or {}
        out += [
            f"### Option {index}",
            f"**Price:** {price.get('currency')} {price.get('total')}",
            f"**Bookable Seats:** {offer.get('numberOfBookableSeats')}",
            "",
        ]
        itineraries = offer.get("itineraries") or []
        for i, itinerary in enumerate(itineraries):
            if len(itineraries) > 1:
                out.append(f"#### {'Outbound' if i == 0 else 'Return'} Journey")
            out += [f"**Total Duration:** {itinerary.get('duration')}", ""]
            segments = itinerary.get("segments") or []
            for s, segment in enumerate(segments):
                out.append(f"**Flight {s + 1}:**")
                out += _segment_lines(segment, carriers, include_details)
                if s < len(segments) - 1:
                    here = (segment.get("arrival") or {})
                    there = (segments[s + 1].get("departure") or {})
                    out.append(f"• **Layover:** {layover(here.get('at'), there.get('at'))} at {here.get('iataCode')}")
                out.append("")
            out += ["---", ""]
    return "\n".join(out)


def _format_flight_results(args: Mapping[str, str]) -> list[PromptMessage]:
    offers, dictionaries = _extract_offers(args["flightData"])
    if not offers:
        return [PromptMessage("assistant", NO_RESULTS)]
    include_details = str(args.get("includeDetails", "true")).strip().lower() == "true"
    return [PromptMessage("assistant", render_flight_results(offers, dictionaries, include_details))]


# ─────────────────────────────────────────────────────────────────────────────
# Guidance prompts
# ─────────────────────────────────────────────────────────────────────────────


def _known(args: Mapping[str, str], labels: Mapping[str, str]) -> list[str]:
    return [f"- {label}: {args[key]}" for key, label in labels.items() if args.get(key)]


def _flight_search_assistance(args: Mapping[str, str]) -> list[PromptMessage]:
    known = _known(args, {
        "origin": "Origin",
        "destination": "Destination",
        "departureDate": "Departure date",
        "returnDate": "Return date",
        "passengers": "Passengers",
        "travelClass": "Travel class",
        "budget": "Budget",
        "preferences": "Preferences",
    })
    text = "\n".join([
        "Help me find flights.",
        "",
        "What I know so far:" if known else "I have not decided any details yet.",
        *known,
        "",
        "Ask me for anything still missing (origin, destination, dates, number of passengers).",
        "Use search_airports only to turn city names into IATA codes, then call search_flights.",
        "Summarize the best options by price, duration and number of stops.",
    ])
    return [PromptMessage("user", text)]


def _compare_flights(args: Mapping[str, str]) -> list[PromptMessage]:
    criteria = args.get("criteria") or "price, total travel time, number of stops and departure times"
    text = "\n".join([
        "Compare the following flight options side by side.",
        "",
        args["flightOptions"],
        "",
        f"Criteria: {criteria}.",
        "Present a table, then recommend one option and explain the trade-offs.",
    ])
    return [PromptMessage("user", text)]


def _travel_planning(args: Mapping[str, str]) -> list[PromptMessage]:
    known = _known(args, {
        "origin": "Travelling from",
        "travelDates": "Travel dates",
        "tripDuration": "Trip duration",
        "travelers": "Travelers",
        "interests": "Interests",
        "budget": "Budget",
    })
    text = "\n".join([
        f"Help me plan a trip to {args['destination']}.",
        "",
        *known,
        *([""] if known else []),
        "Suggest when to go and find suitable flights with search_flights.",
        "If my dates are flexible, check search_flight_cheapest_dates for cheaper days.",
        "Finish with a short day-by-day outline and an estimated flight budget.",
    ])
    return [PromptMessage("user", text)]


PROMPTS: tuple[PromptSpec, ...] = (
    PromptSpec(
        name="format-flight-results",
        description=(
            "Format flight search results with airline information, departure/arrival times, "
            "and layover details in a user-friendly format"
        ),
        arguments=(
            PromptArgument("flightData", "Flight search results data to format", required=True),
            PromptArgument("includeDetails", "Whether to include aircraft type and operating carrier ('true'/'false')"),
        ),
        render=_format_flight_results,
    ),
    PromptSpec(
        name="flight-search-assistance",
        description="Guide a flight search, asking for whatever details are still missing",
        arguments=(
            PromptArgument("origin", "Departure city or airport"),
            PromptArgument("destination", "Arrival city or airport"),
            PromptArgument("departureDate", "Departure date (YYYY-MM-DD)"),
            PromptArgument("returnDate", "Return date (YYYY-MM-DD)"),
            PromptArgument("passengers", "Number of passengers"),
            PromptArgument("travelClass", "Preferred cabin class"),
            PromptArgument("budget", "Budget"),
            PromptArgument("preferences", "Other preferences (non-stop, airlines, times)"),
        ),
        render=_flight_search_assistance,
    ),
    PromptSpec(
        name="compare-flights",
        description="Compare flight options side by side",
        arguments=(
            PromptArgument("flightOptions", "Flight options to compare", required=True),
            PromptArgument("criteria", "Comparison criteria (price, duration, stops ...)"),
        ),
        render=_compare_flights,
    ),
    PromptSpec(
        name="travel-planning",
        description="Plan a trip around a destination, including flights",
        arguments=(
            PromptArgument("destination", "Destination city or country", required=True),
            PromptArgument("origin", "Departure city"),
            PromptArgument("travelDates", "Preferred travel dates"),
            PromptArgument("tripDuration", "Length of the trip"),
            PromptArgument("travelers", "Number and type of travelers"),
            PromptArgument("interests", "Interests and activities"),
            PromptArgument("budget", "Overall budget"),
        ),
        render=_travel_planning,
    ),
)
