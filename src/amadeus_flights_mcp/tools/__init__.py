"""Flight tool handlers."""

from .flight_search import FlightProvider, FlightSearchTools, unsupported_route_message

__all__ = ["FlightProvider", "FlightSearchTools", "unsupported_route_message"]
