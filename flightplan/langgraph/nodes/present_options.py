"""
Result nodes for the Flight Planner

SELECT_CANDIDATES picks the bounded candidate set, REVIEW_ITINERARIES confirms
live fares for it, TRAVEL_TIPS adds destination tips and FORMAT_RESPONSE shapes
the FlightsResponse. A failure in selecting, reviewing or formatting sends the
turn to ask_user with the apology message; tips degrade to an empty list.
"""

from typing import Any, Dict, Optional

from flightplan.config import MarketConfig
from flightplan.formatters.response import build_flights_response
from flightplan.langgraph.state import PIPELINE_FAILED, PlannerState
from flightplan.obs.logger import log_event
from flightplan.llm.travel_tips import TravelTipsGenerator
from flightplan.review.orchestrator import ItineraryReviewer


class SelectCandidatesNode:
    """SELECT_CANDIDATES node implementation"""

    def __init__(self, selector):
        self.selector = selector

    async def __call__(self, state: PlannerState) -> Dict[str, Any]:
        try:
            selection = self.selector.select(state.get("flights") or [], state["query"].filters)
        except Exception as e:
            log_event("select_node_error", level="ERROR", error=f"{type(e).__name__}: {e}")
            return {"error": PIPELINE_FAILED}
        log_event("candidates_selected", count=len(selection.candidates), truncated=selection.truncated)
        return {"candidates": selection.candidates, "truncated": selection.truncated}


class ReviewItinerariesNode:
    """REVIEW_ITINERARIES node implementation"""

    def __init__(self, reviewer: ItineraryReviewer):
        self.reviewer = reviewer

    async def __call__(self, state: PlannerState) -> Dict[str, Any]:
        try:
            reviewed = await self.reviewer.review_all(
                state.get("candidates") or [], state["query"].passenger_count,
                redirect=state.get("truncated", False),
            )
        except Exception as e:
            log_event("review_node_error", level="ERROR", error=f"{type(e).__name__}: {e}")
            return {"error": PIPELINE_FAILED}
        return {"reviewed": reviewed}


class TravelTipsNode:
    """TRAVEL_TIPS node implementation"""

    def __init__(self, generator: Optional[TravelTipsGenerator] = None):
        self.generator = generator

    async def __call__(self, state: PlannerState) -> Dict[str, Any]:
        if self.generator is None or not state.get("reviewed"):
            return {"tips": []}
        tips = await self.generator.generate(state["user_message"], state["query"])
        return {"tips": tips}


class FormatResponseNode:
    """FORMAT_RESPONSE node implementation"""

    def __init__(self, market: MarketConfig):
        self.market = market

    async def __call__(self, state: PlannerState) -> Dict[str, Any]:
        try:
            response = build_flights_response(
                state.get("reviewed") or [],
                state["query"],
                self.market,
                truncated=state.get("truncated", False),
                tips=state.get("tips"),
            )
        except Exception as e:
            log_event("format_node_error", level="ERROR", error=f"{type(e).__name__}: {e}")
            return {"error": PIPELINE_FAILED}
        return {"response": response}
