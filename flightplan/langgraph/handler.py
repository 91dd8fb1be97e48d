"""
Planner Turn Handler

`plan_turn` is the entry point the chat surface calls once per user message.
It runs the planner graph and always returns an AskResponse or a
FlightsResponse; no exception crosses this boundary.
"""

import asyncio
import time
from datetime import date
from typing import Any, Optional, Union

from langchain_core.language_models.chat_models import BaseChatModel

from flightplan.config import MarketConfig, settings
from flightplan.formatters.response import SEARCH_TROUBLE_TEXT, build_ask_response
from flightplan.langgraph.graph import compile_planner_graph
from flightplan.langgraph.state import create_initial_state
from flightplan.langgraph.tools.flight_search import FlightSearchTool, create_flight_search_tool
from flightplan.llm.extract_fields import FieldExtractor, format_chat_context
from flightplan.llm.travel_tips import TravelTipsGenerator
from flightplan.obs.context import conversation_id_var
from flightplan.obs.logger import log_event
from flightplan.obs.metrics import inc_counter, record_timing
from flightplan.provider.client import FlightProviderClient
from flightplan.rank.selector import get_selector
from flightplan.review.orchestrator import ItineraryReviewer
from flightplan.types import AskResponse, FlightsResponse, PlanTurnRequest, TravelQuery


class PlannerHandler:
    """Runs one planning turn per incoming chat message"""

    def __init__(self, extractor: FieldExtractor, search_tool: FlightSearchTool, selector,
                 reviewer: ItineraryReviewer, market: MarketConfig, session_store=None,
                 tips: Optional[TravelTipsGenerator] = None):
        self.market = market
        self.session_store = session_store
        self.graph = compile_planner_graph(extractor, search_tool, selector, reviewer, market, tips)

    async def plan_turn(self, request: PlanTurnRequest,
                        today: Optional[date] = None) -> Union[AskResponse, FlightsResponse]:
        conversation_id_var.set(request.conversation_id)
        start = time.monotonic()
        previous = request.previous_query
        try:
            if previous is None and request.conversation_id and self.session_store:
                previous = await asyncio.to_thread(self._load_query, request.conversation_id)

            state = create_initial_state(
                user_message=request.user_message,
                chat_context=format_chat_context(request.chat_context),
                previous_query=previous,
                today=today,
            )
            final_state = await self.graph.ainvoke(state)
            response = final_state["response"]
            if response is None:
                raise RuntimeError("Planner graph finished without a response")

            if request.conversation_id and self.session_store:
                await asyncio.to_thread(self._save_response_query, request.conversation_id, response)

        except Exception as e:
            log_event("plan_turn_error", level="ERROR", error=f"{type(e).__name__}: {e}")
            response = build_ask_response(SEARCH_TROUBLE_TEXT, [], partial_query=previous)

        elapsed_ms = (time.monotonic() - start) * 1000.0
        record_timing("turn_latency_ms", elapsed_ms, {"outcome": response.kind})
        inc_counter("turns_total", {"outcome": response.kind})
        log_event("plan_turn_completed", outcome=response.kind, ms_total=round(elapsed_ms, 2))
        return response

    def _load_query(self, conversation_id: str) -> Optional[TravelQuery]:
        data = self.session_store.get(conversation_id)
        if not data or not data.get("query"):
            return None
        return TravelQuery.model_validate(data["query"])

    def _save_response_query(self, conversation_id: str, response: Any) -> None:
        query = response.valid_query if isinstance(response, FlightsResponse) else response.partial_query
        if query is None:
            return
        self.session_store.set(conversation_id, {"query": query.model_dump(mode="json", by_alias=True)})

    def reset_conversation(self, conversation_id: str) -> bool:
        if not self.session_store:
            return False
        self.session_store.clear(conversation_id)
        log_event("conversation_reset", conversation_id=conversation_id)
        return True


def create_planner_handler(llm: BaseChatModel, client: FlightProviderClient,
                           market: Optional[MarketConfig] = None,
                           session_store=None,
                           selection_policy: Optional[str] = None,
                           review_threshold: Optional[int] = None,
                           travel_tips: Optional[bool] = None) -> PlannerHandler:
    """Factory wiring the planner from a chat model and a provider client"""
    market = market or client.market
    threshold = settings.REVIEW_MAX_CANDIDATES if review_threshold is None else review_threshold
    with_tips = settings.ENABLE_TRAVEL_TIPS if travel_tips is None else travel_tips
    return PlannerHandler(
        extractor=FieldExtractor(llm),
        search_tool=create_flight_search_tool(client, market),
        selector=get_selector(selection_policy or settings.SELECTION_POLICY, threshold),
        reviewer=ItineraryReviewer(client, market, threshold=threshold),
        market=market,
        session_store=session_store,
        tips=TravelTipsGenerator(llm) if with_tips else None,
    )
