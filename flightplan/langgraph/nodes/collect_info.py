"""
COLLECT_INFO Nodes for the Flight Planner

EXTRACT_FIELDS turns the user's message into PartialFields; MERGE_QUERY folds
them over the previous turn's TravelQuery.
"""

from typing import Any, Dict

from flightplan.errors import ExtractionFailure
from flightplan.langgraph.state import EXTRACTION_FAILED, PlannerState
from flightplan.llm.extract_fields import FieldExtractor
from flightplan.obs.logger import log_event
from flightplan.session.merge import merge_query


class ExtractFieldsNode:
    """EXTRACT_FIELDS node implementation"""

    def __init__(self, extractor: FieldExtractor):
        self.extractor = extractor

    async def __call__(self, state: PlannerState) -> Dict[str, Any]:
        log_event("turn_stage", level="DEBUG", stage="extracting", user_message=state["user_message"])
        try:
            extracted = await self.extractor.extract(
                state["user_message"],
                state.get("chat_context", ""),
                today=state.get("today"),
            )
        except ExtractionFailure as e:
            log_event("extraction_failed", level="WARNING", error=str(e))
            return {"error": EXTRACTION_FAILED}
        return {"extracted": extracted}


class MergeQueryNode:
    """MERGE_QUERY node implementation"""

    async def __call__(self, state: PlannerState) -> Dict[str, Any]:
        query = merge_query(state["extracted"], state.get("previous_query"))
        log_event("query_merged", level="DEBUG", query=query.model_dump(by_alias=True))
        return {"query": query}
