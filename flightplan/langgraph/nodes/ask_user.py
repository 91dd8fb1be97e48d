"""
ASK_USER Node for the Flight Planner

Terminal node for every turn that does not end in flight results: a missing
field question, a rephrase request, or the search/pipeline apology.
"""

from typing import Any, Dict

from flightplan.formatters.response import (
    REPHRASE_TEXT,
    SEARCH_TROUBLE_TEXT,
    build_ask_response,
)
from flightplan.langgraph.state import EXTRACTION_FAILED, PlannerState
from flightplan.obs.logger import log_event


class AskUserNode:
    """ASK_USER node implementation"""

    async def __call__(self, state: PlannerState) -> Dict[str, Any]:
        error = state.get("error")
        previous = state.get("previous_query")

        if error == EXTRACTION_FAILED:
            response = build_ask_response(REPHRASE_TEXT, [], partial_query=previous)
        elif error:
            # the query is not advanced; the caller retries with the previous one
            response = build_ask_response(SEARCH_TROUBLE_TEXT, [], partial_query=previous)
        else:
            response = build_ask_response(
                state.get("ask_text") or REPHRASE_TEXT,
                state.get("missing_fields") or [],
                partial_query=state.get("query"),
            )

        log_event("ask_user", reason=error or "missing_fields", missing=response.missing_fields)
        return {"response": response}
