"""
SEARCH_FLIGHTS Node for the Flight Planner

Runs the provider search for a gate-passed query. Zero results is a normal
outcome; an unavailable provider routes the turn to ask_user.
"""

from typing import Any, Dict

from flightplan.errors import SearchUnavailable
from flightplan.langgraph.state import PIPELINE_FAILED, SEARCH_UNAVAILABLE, PlannerState
from flightplan.langgraph.tools.flight_search import FlightSearchTool
from flightplan.obs.logger import log_event


class SearchFlightsNode:
    """SEARCH_FLIGHTS node implementation"""

    def __init__(self, search_tool: FlightSearchTool):
        self.search_tool = search_tool

    async def __call__(self, state: PlannerState) -> Dict[str, Any]:
        try:
            flights = await self.search_tool.search(state["query"])
        except SearchUnavailable as e:
            log_event("search_unavailable", level="ERROR", error=str(e))
            return {"error": SEARCH_UNAVAILABLE}
        except Exception as e:
            log_event("search_node_error", level="ERROR", error=f"{type(e).__name__}: {e}")
            return {"error": PIPELINE_FAILED}
        return {"flights": flights}
