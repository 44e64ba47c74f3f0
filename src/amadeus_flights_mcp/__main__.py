import sys

from amadeus_flights_mcp.cli import main

sys.exit(main())
