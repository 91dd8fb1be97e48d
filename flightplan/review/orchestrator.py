"""Live price/availability confirmation for the selected candidates.

One review call per candidate runs concurrently inside a TaskGroup. Each call
catches its own failure, so one bad fare marks only that candidate as ERROR
and never cancels its siblings. The batch returns once every call settles.
"""

import asyncio
import time
from datetime import timezone
from typing import Any, Dict, List, Optional

from flightplan.config import MarketConfig
from flightplan.errors import ReviewFailure
from flightplan.obs.logger import log_event
from flightplan.obs.metrics import inc_counter, record_timing
from flightplan.provider.client import FlightProviderClient
from flightplan.types import FlightOption

STATUS_SUCCESS = "SUCCESS"
STATUS_ERROR = "ERROR"
CABIN_TYPE = "ECONOMY"


def build_review_request(flight: FlightOption, passenger_count: int,
                         market: MarketConfig) -> Dict[str, Any]:
    return {
        "flightParams": [
            {
                "cabinType": CABIN_TYPE,
                "departDate": flight.depart_time.astimezone(timezone.utc).date().isoformat(),
                "from": flight.origin_airport,
                "to": flight.destination_airport,
                "onwardFares": [
                    {
                        "fareKey": flight.fare_key,
                        "fareType": "NON_REFUNDABLE",
                        "price": flight.price,
                        "fareClass": "RETAIL",
                        "comboFBC": flight.fare_basis_code,
                    }
                ],
            }
        ],
        "itineraryMeta": {
            "domain": market.domain,
            "externalApi": False,
            "international": True,
            "sid": f"DC_Search-{int(time.time() * 1000)}",
            "sourceType": "B2C",
            "utmCurrency": market.currency,
            "convFeeRequired": False,
            "couponCode": "",
            "sft": "",
            "dcFlow": True,
        },
        "paxInfo": {
            "adults": passenger_count,
            "children": 0,
            "infants": 0,
        },
    }


class ItineraryReviewer:
    def __init__(self, client: FlightProviderClient, market: Optional[MarketConfig] = None,
                 threshold: int = 2, timeout: Optional[float] = None):
        self.client = client
        self.market = market or client.market
        self.threshold = threshold
        self.timeout = timeout or client.review_timeout

    async def review_all(self, candidates: List[FlightOption], passenger_count: int,
                         redirect: Optional[bool] = None) -> List[FlightOption]:
        """Confirm each candidate live, or stamp a redirect-only set without calls.

        ``redirect`` is the selector's truncation flag; when not given the set
        size is compared with the threshold.
        """
        if not candidates:
            return []

        if redirect is None:
            redirect = len(candidates) > self.threshold
        if redirect:
            # redirect-only set: stamped without a live confirmation call
            log_event("review_skipped", candidates=len(candidates), threshold=self.threshold)
            inc_counter("reviews_skipped_total", amount=len(candidates))
            return [
                c.model_copy(update={"itinerary_id": None, "itinerary_status": STATUS_SUCCESS})
                for c in candidates
            ]

        start = time.monotonic()
        async with asyncio.TaskGroup() as tg:
            tasks = [tg.create_task(self._review_one(c, passenger_count)) for c in candidates]
        record_timing("review_batch_latency_ms", (time.monotonic() - start) * 1000.0)
        return [t.result() for t in tasks]

    async def _review_one(self, flight: FlightOption, passenger_count: int) -> FlightOption:
        try:
            async with asyncio.timeout(self.timeout):
                response = await self.client.create_itinerary(
                    build_review_request(flight, passenger_count, self.market)
                )
            if not isinstance(response, dict) or "itineraryStatus" not in response:
                raise ReviewFailure(flight.id, "Review response missing itineraryStatus")
        except Exception as e:
            inc_counter("reviews_total", {"outcome": "error"})
            log_event("review_failed", level="WARNING", flight_id=flight.id,
                      error=f"{type(e).__name__}: {e}")
            return flight.model_copy(update={"itinerary_id": None, "itinerary_status": STATUS_ERROR})

        inc_counter("reviews_total", {"outcome": "ok"})
        itinerary_id = response.get("itineraryId")
        return flight.model_copy(update={
            "itinerary_id": str(itinerary_id) if itinerary_id is not None else None,
            "itinerary_status": str(response["itineraryStatus"]),
        })
