"""
Flight Search Tool for the Flight Planner

Builds the provider query from a complete TravelQuery, calls the provider,
normalises the raw cards into FlightOptions and applies the declared filters.
"""

from typing import List, Optional
import time

import httpx

from flightplan.config import MarketConfig
from flightplan.errors import SearchUnavailable
from flightplan.obs.logger import log_event
from flightplan.obs.metrics import inc_counter, record_timing
from flightplan.provider.client import FlightProviderClient
from flightplan.provider.transform import build_search_params, from_provider
from flightplan.search.filters import apply_filters
from flightplan.types import FlightOption, TravelQuery


class FlightSearchTool:
    """Execute a validated flight search against the provider"""

    def __init__(self, client: FlightProviderClient, market: Optional[MarketConfig] = None):
        self.client = client
        self.market = market or client.market

    async def search(self, query: TravelQuery) -> List[FlightOption]:
        if not query.is_complete:
            # the completeness gate runs first; reaching here is a wiring bug
            raise SearchUnavailable("Search attempted with an incomplete query")

        params = build_search_params(query)
        start = time.monotonic()
        try:
            payload = await self.client.search(params)
        except (httpx.HTTPError, ValueError) as e:
            # ValueError covers a body that is not JSON
            inc_counter("searches_total", {"outcome": "error"})
            log_event("search_failed", level="ERROR", error=f"{type(e).__name__}: {e}")
            raise SearchUnavailable(str(e)) from e
        finally:
            record_timing("search_latency_ms", (time.monotonic() - start) * 1000.0)

        flights = from_provider(payload, self.market.currency)
        filtered = apply_filters(flights, query.filters, self.market.departure_tz)

        inc_counter("searches_total", {"outcome": "ok" if filtered else "empty"})
        log_event("search_completed", found=len(flights), after_filters=len(filtered),
                  origin=query.origin_airport, destination=query.destination_airport)
        return filtered


def create_flight_search_tool(client: FlightProviderClient,
                              market: Optional[MarketConfig] = None) -> FlightSearchTool:
    return FlightSearchTool(client, market)
