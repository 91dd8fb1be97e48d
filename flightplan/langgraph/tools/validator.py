"""
Completeness Gate for the Flight Planner

Decides whether a merged TravelQuery is complete enough to search, and when it
is not, which fields are missing and how to ask for them. No search is ever
attempted with an incomplete query.
"""

from typing import List, Optional
from pydantic import BaseModel

from flightplan.types import TravelQuery

# Wire field name -> attribute, in the order they are asked for
MANDATORY_FIELDS = [
    ("originAirport", "origin_airport"),
    ("destinationAirport", "destination_airport"),
    ("departDate", "depart_date"),
    ("passengerCount", "passenger_count"),
    ("isRoundTrip", "is_round_trip"),
]

FIELD_PHRASES = {
    "originAirport": "departure airport",
    "destinationAirport": "destination airport",
    "departDate": "departure date",
    "passengerCount": "number of passengers",
    "isRoundTrip": "trip type (one-way or round-trip)",
    "returnDate": "return date",
}


class CompletenessResult(BaseModel):
    """Result of the completeness check"""
    complete: bool
    missing: List[str] = []
    ask_text: Optional[str] = None


def get_missing_fields(query: TravelQuery) -> List[str]:
    missing = [wire for wire, attr in MANDATORY_FIELDS if getattr(query, attr) is None]
    if query.is_round_trip and query.return_date is None:
        missing.append("returnDate")
    return missing


def compose_ask_text(missing: List[str]) -> str:
    names = ", ".join(FIELD_PHRASES.get(f, f) for f in missing)
    return (
        f"To help you find the best flights, I need to know your {names}. "
        "Could you please provide this information?"
    )


def check_completeness(query: TravelQuery) -> CompletenessResult:
    missing = get_missing_fields(query)
    if not missing:
        return CompletenessResult(complete=True)
    return CompletenessResult(complete=False, missing=missing, ask_text=compose_ask_text(missing))
