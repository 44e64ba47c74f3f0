"""Parameter schemas for the flight tools.

Each tool accepts a free-form JSON object from the client. The models here
define its shape: camelCase aliases on the wire, snake_case attributes in
Python, normalized (uppercased codes, parsed dates) and frozen once built.
Counts, prices and flags are strict: "2", 1.0 and true are not coerced to
numbers or booleans. Codes and dates stay lax so they can be normalized.

Cross-field rules live in each schema's ``constraints`` and run only after
every field has validated on its own.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Annotated, Any, Callable, ClassVar, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, StrictBool, StrictFloat, StrictInt
from pydantic.alias_generators import to_camel

from amadeus_flights_mcp.errors import FieldIssue

# ─────────────────────────────────────────────────────────────────────────────
# Shared field types
# ─────────────────────────────────────────────────────────────────────────────

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _upper(v: Any) -> Any:
    return v.strip().upper() if isinstance(v, str) else v


def _iso_date(v: Any) -> Any:
    """Accept only YYYY-MM-DD strings that name a real calendar day."""
    if isinstance(v, date):
        return v
    if not isinstance(v, str) or not _DATE_RE.match(v.strip()):
        raise ValueError("Date must be in YYYY-MM-DD format")
    try:
        return date.fromisoformat(v.strip())
    except ValueError:
        raise ValueError("Date must be a valid calendar date") from None


def _airline_codes(v: Any) -> Any:
    """Normalize 'ba, lh' to 'BA,LH'."""
    if not isinstance(v, str):
        return v
    return ",".join(code.strip().upper() for code in v.split(",") if code.strip())


AirportCode = Annotated[
    str,
    BeforeValidator(_upper),
    Field(pattern=r"^[A-Z]{3}$", description="3-letter IATA airport code (e.g. LHR)"),
]
IsoDate = Annotated[date, BeforeValidator(_iso_date), Field(description="Date in YYYY-MM-DD format")]
Time = Annotated[str, Field(pattern=r"^\d{2}:\d{2}$", description="Time in HH:MM format")]
CurrencyCode = Annotated[
    str,
    BeforeValidator(_upper),
    Field(pattern=r"^[A-Z]{3}$", description="3-letter ISO currency code (e.g. EUR)"),
]
CountryCode = Annotated[
    str,
    BeforeValidator(_upper),
    Field(pattern=r"^[A-Z]{2}$", description="2-letter ISO country code (e.g. US)"),
]
TravelClass = Literal["ECONOMY", "PREMIUM_ECONOMY", "BUSINESS", "FIRST"]
TravelerType = Literal["ADULT", "CHILD", "SENIOR", "YOUNG", "HELD_INFANT", "SEATED_INFANT", "STUDENT"]
Coverage = Literal["MOST_SEGMENTS", "AT_LEAST_ONE_SEGMENT", "ALL_SEGMENTS"]
Duration = Annotated[str, BeforeValidator(_upper), Field(pattern=r"^\d+[DW]$", description="Trip length such as 7D or 2W")]


# ─────────────────────────────────────────────────────────────────────────────
# Cross-field constraints
# ─────────────────────────────────────────────────────────────────────────────

# check(params) -> True (pass) | False (fail with the constraint's message)
Check = Callable[[Any], bool]


@dataclass(slots=True, frozen=True)
class Constraint:
    """Cross-field rule reported against a single (aliased) field."""

    field: str
    check: Check
    message: str


def _return_after_departure(p: Any) -> bool:
    return p.return_date is None or p.return_date > p.departure_date


def _adults_with_minors(p: Any) -> bool:
    has_minors = bool(p.children) or bool(p.infants)
    return not has_minors or p.adults >= 1


RETURN_AFTER_DEPARTURE = Constraint("returnDate", _return_after_departure, "Return date must be after departure date")


class FlightParams(BaseModel):
    """Base for tool parameter schemas."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        str_strip_whitespace=True,
    )

    constraints: ClassVar[tuple[Constraint, ...]] = ()

    def violations(self) -> list[FieldIssue]:
        """Evaluate cross-field constraints; empty when all pass."""
        if not self.constraints:
            return []
        wire = self.model_dump(by_alias=True, mode="json")
        return [
            FieldIssue(field=c.field, message=c.message, value=wire.get(c.field))
            for c in self.constraints
            if not c.check(self)
        ]


# ─────────────────────────────────────────────────────────────────────────────
# Tool schemas
# ─────────────────────────────────────────────────────────────────────────────


class SearchFlightsParams(FlightParams):
    """Search for flight offers between two airports."""

    origin: AirportCode
    destination: AirportCode
    departure_date: IsoDate
    adults: Annotated[StrictInt, Field(ge=1, le=9, description="Adult passengers (1-9)")]
    children: Annotated[StrictInt, Field(ge=0, le=8, description="Child passengers (2-11 years)")] | None = None
    infants: Annotated[StrictInt, Field(ge=0, le=8, description="Infant passengers (under 2 years)")] | None = None
    return_date: IsoDate | None = None
    travel_class: TravelClass | None = None
    non_stop: StrictBool | None = None
    max_price: Annotated[StrictFloat, Field(gt=0, description="Maximum price per traveler")] | None = None
    currency_code: CurrencyCode | None = None
    max: Annotated[StrictInt, Field(ge=1, le=250, description="Maximum offers to request")] | None = None

    constraints: ClassVar[tuple[Constraint, ...]] = (
        Constraint("adults", _adults_with_minors, "Adults must be at least 1 when children or infants are present"),
        RETURN_AFTER_DEPARTURE,
    )


class GetFlightOfferParams(FlightParams):
    """Look up a flight offer by id."""

    offer_id: Annotated[str, Field(min_length=1, description="Flight offer id")]


class SearchAirportsParams(FlightParams):
    """Search airports by keyword."""

    keyword: Annotated[str, Field(min_length=1, max_length=100, description="City or airport name, or IATA code")]
    country_code: CountryCode | None = None
    max: Annotated[StrictInt, Field(ge=1, le=100, description="Maximum airports to return")] | None = None


class GetAirlinesParams(FlightParams):
    """Look up airlines, optionally by code."""

    airline_codes: Annotated[
        str,
        BeforeValidator(_airline_codes),
        Field(pattern=r"^[A-Z0-9]{2,3}(,[A-Z0-9]{2,3})*$", description="Comma-separated airline codes (e.g. BA,LH)"),
    ] | None = None
    max: Annotated[StrictInt, Field(ge=1, le=100, description="Maximum airlines to return")] | None = None


class DepartureDateTimeRange(FlightParams):
    date: IsoDate
    time: Time | None = None


class OriginDestination(FlightParams):
    id: Annotated[str, Field(min_length=1)]
    origin_location_code: AirportCode
    destination_location_code: AirportCode
    departure_date_time_range: DepartureDateTimeRange


class Traveler(FlightParams):
    id: Annotated[str, Field(min_length=1)]
    traveler_type: TravelerType


class CabinRestriction(FlightParams):
    cabin: TravelClass
    coverage: Coverage
    origin_destination_ids: list[str]


class FlightFilters(FlightParams):
    cabin_restrictions: list[CabinRestriction] | None = None


class SearchCriteria(FlightParams):
    max_flight_offers: Annotated[StrictInt, Field(ge=1, le=250)] | None = None
    flight_filters: FlightFilters | None = None


class SearchMultiCityParams(FlightParams):
    """Search multi-leg itineraries (up to 6 legs)."""

    origin_destinations: Annotated[list[OriginDestination], Field(min_length=1, max_length=6)]
    travelers: Annotated[list[Traveler], Field(min_length=1, max_length=9)]
    sources: Annotated[list[Literal["GDS"]], Field(min_length=1)] = Field(default_factory=lambda: ["GDS"])
    search_criteria: SearchCriteria | None = None


class CheapestDatesParams(FlightParams):
    """Find the cheapest travel dates on a cached route."""

    origin: AirportCode
    destination: AirportCode
    departure_date: IsoDate
    return_date: IsoDate | None = None
    one_way: StrictBool | None = None
    non_stop: StrictBool | None = None
    duration: Duration | None = None
    view_by: Literal["DURATION", "DATE", "DESTINATION"] | None = None
    max_price: Annotated[StrictFloat, Field(gt=0)] | None = None
    aggregation_mode: Literal["DAY", "DESTINATION", "WEEK"] | None = None

    constraints: ClassVar[tuple[Constraint, ...]] = (RETURN_AFTER_DEPARTURE,)
