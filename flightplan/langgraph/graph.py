"""
LangGraph Planner State Machine

One graph run is one conversational turn:

    extract_fields -> merge_query -> validate_complete -> ask_user
                                                       -> search_flights -> select_candidates
                                                          -> review_itineraries -> travel_tips
                                                          -> format_response

Any node that records an error routes to ask_user, which always ends the turn.
"""

from typing import Any, Literal, Optional

from langgraph.graph import StateGraph, END

from flightplan.config import MarketConfig
from flightplan.langgraph.nodes.ask_user import AskUserNode
from flightplan.langgraph.nodes.collect_info import ExtractFieldsNode, MergeQueryNode
from flightplan.langgraph.nodes.present_options import (
    FormatResponseNode,
    ReviewItinerariesNode,
    SelectCandidatesNode,
    TravelTipsNode,
)
from flightplan.langgraph.nodes.search_flights import SearchFlightsNode
from flightplan.langgraph.nodes.validate_complete import ValidateCompleteNode
from flightplan.langgraph.state import PlannerState
from flightplan.langgraph.tools.flight_search import FlightSearchTool
from flightplan.llm.extract_fields import FieldExtractor
from flightplan.llm.travel_tips import TravelTipsGenerator
from flightplan.review.orchestrator import ItineraryReviewer


# Routing functions
def after_extract(state: PlannerState) -> Literal["merge_query", "ask_user"]:
    return "ask_user" if state.get("error") else "merge_query"


def after_gate(state: PlannerState) -> Literal["search_flights", "ask_user"]:
    # CRITICAL: never search with missing fields
    return "ask_user" if state.get("missing_fields") else "search_flights"


def _next_or_ask(next_node: str):
    def route(state: PlannerState) -> str:
        return "ask_user" if state.get("error") else next_node
    return route


def after_format(state: PlannerState) -> Literal["ask_user", "__end__"]:
    return "ask_user" if state.get("error") else END


def create_planner_graph(extractor: FieldExtractor, search_tool: FlightSearchTool, selector,
                         reviewer: ItineraryReviewer, market: MarketConfig,
                         tips: Optional[TravelTipsGenerator] = None) -> StateGraph:
    """Create the per-turn planner state graph"""

    workflow = StateGraph(PlannerState)

    extract_node = ExtractFieldsNode(extractor)
    merge_node = MergeQueryNode()
    gate_node = ValidateCompleteNode()
    search_node = SearchFlightsNode(search_tool)
    select_node = SelectCandidatesNode(selector)
    review_node = ReviewItinerariesNode(reviewer)
    tips_node = TravelTipsNode(tips)
    format_node = FormatResponseNode(market)
    ask_node = AskUserNode()

    async def extract_fields(state: PlannerState):
        return await extract_node(state)

    async def merge_query(state: PlannerState):
        return await merge_node(state)

    async def validate_complete(state: PlannerState):
        return await gate_node(state)

    async def search_flights(state: PlannerState):
        return await search_node(state)

    async def select_candidates(state: PlannerState):
        return await select_node(state)

    async def review_itineraries(state: PlannerState):
        return await review_node(state)

    async def travel_tips(state: PlannerState):
        return await tips_node(state)

    async def format_response(state: PlannerState):
        return await format_node(state)

    async def ask_user(state: PlannerState):
        return await ask_node(state)

    # Add nodes
    workflow.add_node("extract_fields", extract_fields)
    workflow.add_node("merge_query", merge_query)
    workflow.add_node("validate_complete", validate_complete)
    workflow.add_node("search_flights", search_flights)
    workflow.add_node("select_candidates", select_candidates)
    workflow.add_node("review_itineraries", review_itineraries)
    workflow.add_node("travel_tips", travel_tips)
    workflow.add_node("format_response", format_response)
    workflow.add_node("ask_user", ask_user)

    workflow.set_entry_point("extract_fields")

    workflow.add_conditional_edges(
        "extract_fields",
        after_extract,
        {"merge_query": "merge_query", "ask_user": "ask_user"},
    )
    workflow.add_edge("merge_query", "validate_complete")
    workflow.add_conditional_edges(
        "validate_complete",
        after_gate,
        {"search_flights": "search_flights", "ask_user": "ask_user"},
    )
    workflow.add_conditional_edges(
        "search_flights",
        _next_or_ask("select_candidates"),
        {"select_candidates": "select_candidates", "ask_user": "ask_user"},
    )
    workflow.add_conditional_edges(
        "select_candidates",
        _next_or_ask("review_itineraries"),
        {"review_itineraries": "review_itineraries", "ask_user": "ask_user"},
    )
    workflow.add_conditional_edges(
        "review_itineraries",
        _next_or_ask("travel_tips"),
        {"travel_tips": "travel_tips", "ask_user": "ask_user"},
    )
    workflow.add_edge("travel_tips", "format_response")
    workflow.add_conditional_edges(
        "format_response",
        after_format,
        {"ask_user": "ask_user", END: END},
    )
    workflow.add_edge("ask_user", END)

    return workflow


def compile_planner_graph(extractor: FieldExtractor, search_tool: FlightSearchTool, selector,
                          reviewer: ItineraryReviewer, market: MarketConfig,
                          tips: Optional[TravelTipsGenerator] = None) -> Any:
    """Compile the planner graph for execution"""
    return create_planner_graph(extractor, search_tool, selector, reviewer, market, tips).compile()
