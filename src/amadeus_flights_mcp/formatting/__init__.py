"""Response shaping: capped, price-sorted JSON text payloads."""

from .formatters import (
    MAX_RESULTS,
    format_airlines,
    format_airports,
    format_cheapest_dates,
    format_flight_offers,
    shape_airlines,
    shape_airports,
    shape_cheapest_dates,
    shape_flight_offer,
    shape_flight_offers,
)

__all__ = [
    "MAX_RESULTS",
    "format_airlines",
    "format_airports",
    "format_cheapest_dates",
    "format_flight_offers",
    "shape_airlines",
    "shape_airports",
    "shape_cheapest_dates",
    "shape_flight_offer",
    "shape_flight_offers",
]
