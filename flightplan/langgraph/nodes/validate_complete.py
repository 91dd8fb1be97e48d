"""
VALIDATE_COMPLETE Node for the Flight Planner

Gate between merging and searching: an incomplete query ends the turn with a
follow-up question; a complete one is frozen as the query the search runs on.
"""

from typing import Any, Dict

from flightplan.langgraph.state import PlannerState
from flightplan.langgraph.tools.validator import check_completeness
from flightplan.obs.logger import log_event


class ValidateCompleteNode:
    """VALIDATE_COMPLETE node implementation"""

    async def __call__(self, state: PlannerState) -> Dict[str, Any]:
        query = state["query"]
        result = check_completeness(query)

        if not result.complete:
            log_event("gate_blocked", missing=result.missing)
            return {"missing_fields": result.missing, "ask_text": result.ask_text}

        # a one-way search never carries a stale return date
        if not query.is_round_trip and query.return_date is not None:
            query = query.model_copy(update={"return_date": None})
        log_event("gate_passed", origin=query.origin_airport, destination=query.destination_airport,
                  depart_date=query.depart_date, passengers=query.passenger_count)
        return {"query": query, "missing_fields": []}
