from typing import List, Optional

from flightplan.config import MarketConfig
from flightplan.types import (
    AskResponse,
    FlightOption,
    FlightsResponse,
    FormattedFlight,
    TravelQuery,
    TravelTip,
)
from flightplan.utils.dates import to_iso_utc

AIRLINE_SEPARATOR = " → "

REPHRASE_TEXT = "I'm having trouble understanding your request. Could you please rephrase it?"
SEARCH_TROUBLE_TEXT = (
    "I apologize, but I'm having trouble searching for flights at the moment. "
    "Please try again in a few minutes."
)


def airline_label(flight_numbers: List[str]) -> str:
    """Unique carrier codes in travel order, e.g. 6E-201, 6E-305, AI-11 -> "6E → AI"."""
    codes: List[str] = []
    for fn in flight_numbers or []:
        code = fn.split("-")[0].strip()
        if code and code not in codes:
            codes.append(code)
    return AIRLINE_SEPARATOR.join(codes)


def format_flight(flight: FlightOption, market: MarketConfig) -> FormattedFlight:
    review_url = market.itinerary_url(flight.itinerary_id) if flight.itinerary_id else None
    return FormattedFlight(
        id=flight.id,
        airline=airline_label(flight.flight_numbers),
        flight_numbers=list(flight.flight_numbers),
        depart_time=to_iso_utc(flight.depart_time),
        arrive_time=to_iso_utc(flight.arrive_time),
        duration_minutes=flight.duration_minutes,
        stops=flight.stops,
        price=flight.price,
        currency=flight.currency or market.currency,
        booking_url=flight.booking_url,
        fare_key=flight.fare_key,
        fare_basis_code=flight.fare_basis_code,
        origin_airport=flight.origin_airport,
        destination_airport=flight.destination_airport,
        coupon_data=flight.coupon_data,
        itinerary_id=flight.itinerary_id,
        itinerary_status=flight.itinerary_status or "",
        review_url=review_url,
        categories=list(flight.categories),
    )


def build_flights_response(flights: List[FlightOption], query: TravelQuery,
                           market: MarketConfig, truncated: bool = False,
                           tips: Optional[List[TravelTip]] = None) -> FlightsResponse:
    return FlightsResponse(
        flights=[format_flight(f, market) for f in flights],
        valid_query=query,
        truncated=truncated,
        tips=list(tips or []),
    )


def build_ask_response(text: str, missing: Optional[List[str]] = None,
                       partial_query: Optional[TravelQuery] = None) -> AskResponse:
    return AskResponse(ask=text, missing_fields=list(missing or []), partial_query=partial_query)
