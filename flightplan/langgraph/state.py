"""
LangGraph Planner State Schema

Per-turn state carried through the planning graph. The graph never mutates
the caller's TravelQuery; each stage writes new values into its own keys.
"""

from datetime import date
from typing import List, Optional, Union
from typing_extensions import TypedDict

from flightplan.types import (
    AskResponse,
    FlightOption,
    FlightsResponse,
    PartialFields,
    TravelQuery,
    TravelTip,
)

# error codes written by nodes; any of them routes the turn to ask_user
EXTRACTION_FAILED = "extraction_failed"
SEARCH_UNAVAILABLE = "search_unavailable"
PIPELINE_FAILED = "pipeline_failed"


class PlannerState(TypedDict):
    """State schema for one conversational turn"""

    # Inputs
    user_message: str
    chat_context: str
    previous_query: Optional[TravelQuery]
    today: Optional[date]

    # Extracting / Merging / GateCheck
    extracted: Optional[PartialFields]
    query: Optional[TravelQuery]
    missing_fields: List[str]
    ask_text: Optional[str]

    # Searching / Selecting / Reviewing
    flights: List[FlightOption]
    candidates: List[FlightOption]
    truncated: bool
    reviewed: List[FlightOption]
    tips: List[TravelTip]

    # Outcome
    error: Optional[str]
    response: Optional[Union[AskResponse, FlightsResponse]]


def create_initial_state(user_message: str, chat_context: str = "",
                         previous_query: Optional[TravelQuery] = None,
                         today: Optional[date] = None) -> PlannerState:
    """Create the starting state for a turn"""
    return PlannerState(
        user_message=user_message,
        chat_context=chat_context,
        previous_query=previous_query,
        today=today,

        extracted=None,
        query=None,
        missing_fields=[],
        ask_text=None,

        flights=[],
        candidates=[],
        truncated=False,
        reviewed=[],
        tips=[],

        error=None,
        response=None,
    )
