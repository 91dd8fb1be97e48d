"""Short destination tips shown next to flight results.

Tips are a garnish: any failure yields an empty list and never fails the turn.
"""

from typing import Any, List
import json

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.prompts import ChatPromptTemplate
from pydantic import ValidationError

from flightplan.llm.extract_fields import strip_fences
from flightplan.obs.logger import log_event
from flightplan.obs.metrics import inc_counter
from flightplan.types import TravelQuery, TravelTip

MAX_TIPS = 3

SYSTEM = """You write personalised travel tips for a flight search.
Generate exactly 3 tips for a trip from {origin} to {destination}, departing {depart_date}{return_part}.

Each tip must be:
- at most 20 words
- directly relevant to the user's request
- tailored to the destination, the season and the usual weather for the dates
- practical and actionable

Prefer local insight: hidden gems, popular food or customs, local etiquette,
transport hacks, and any festival or event around the travel dates.

Output JSON ONLY: {{"tips": [{{"title": "...", "content": "..."}}, ...]}}
"""

USER = "User request: {text}"


def _tip_items(data: Any) -> List[Any]:
    if isinstance(data, dict):
        data = data.get("tips")
    return data if isinstance(data, list) else []


class TravelTipsGenerator:
    def __init__(self, llm: BaseChatModel):
        self.llm = llm
        self.prompt = ChatPromptTemplate.from_messages([("system", SYSTEM), ("user", USER)])

    async def generate(self, utterance: str, query: TravelQuery) -> List[TravelTip]:
        messages = self.prompt.format_messages(
            text=utterance,
            origin=query.origin_airport,
            destination=query.destination_airport,
            depart_date=query.depart_date,
            return_part=f", returning {query.return_date}" if query.return_date else "",
        )
        try:
            res = await self.llm.ainvoke(messages)
            content = getattr(res, "content", None)
            if not content or not isinstance(content, str):
                return []
            items = _tip_items(json.loads(strip_fences(content)))
        except Exception as e:
            inc_counter("tips_total", {"outcome": "error"})
            log_event("tips_failed", level="WARNING", error=f"{type(e).__name__}: {e}")
            return []

        tips: List[TravelTip] = []
        for item in items:
            try:
                tips.append(TravelTip.model_validate(item))
            except ValidationError:
                continue
            if len(tips) == MAX_TIPS:
                break
        inc_counter("tips_total", {"outcome": "ok" if tips else "empty"})
        return tips

