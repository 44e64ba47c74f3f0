"""amadeus-flights-mcp: Amadeus flight search over the Model Context Protocol.

Exposes six tools (flight, multi-city and cheapest-date search, offer
lookup, airport and airline reference data) and four prompts, served over
stdio or Streamable HTTP.

Quick Start:
    $ export AMADEUS_CLIENT_ID=... AMADEUS_CLIENT_SECRET=...
    $ amadeus-flights-mcp                      # stdio
    $ amadeus-flights-mcp --transport http     # http://0.0.0.0:3000/mcp

Embedding:
    >>> from amadeus_flights_mcp import FlightsMCPServer, get_settings
    >>> server = FlightsMCPServer(get_settings())
"""

from .config import FlightsSettings, get_settings
from .errors import ErrorCode, FlightError, FlightException
from .server import FlightsHTTPServer, FlightsMCPServer

__version__ = "1.0.0"

__all__ = [
    "ErrorCode",
    "FlightError",
    "FlightException",
    "FlightsHTTPServer",
    "FlightsMCPServer",
    "FlightsSettings",
    "__version__",
    "get_settings",
]
