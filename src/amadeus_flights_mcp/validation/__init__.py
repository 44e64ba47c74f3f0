"""Input validation for tool arguments.

Schemas are frozen pydantic models with camelCase aliases. validate_params
returns the typed model or raises a VALIDATION_ERROR listing every bad field.
"""

from .schemas import (
    CheapestDatesParams,
    Constraint,
    FlightParams,
    GetAirlinesParams,
    GetFlightOfferParams,
    SearchAirportsParams,
    SearchFlightsParams,
    SearchMultiCityParams,
)
from .validate import input_schema, validate_params

__all__ = [
    "CheapestDatesParams",
    "Constraint",
    "FlightParams",
    "GetAirlinesParams",
    "GetFlightOfferParams",
    "SearchAirportsParams",
    "SearchFlightsParams",
    "SearchMultiCityParams",
    "input_schema",
    "validate_params",
]
