"""One or two word follow-up actions for the chat input's suggestion bar."""

from typing import List
import json

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.prompts import ChatPromptTemplate

from flightplan.llm.extract_fields import strip_fences
from flightplan.obs.logger import log_event

MAX_SUGGESTIONS = 4

SYSTEM = """You generate follow-up action suggestions for a flight-search chat.
Suggestions are short (1-2 words) and name a useful next action the user can take.
For example, for "Flights from Delhi to Dubai" suggestions could be: ["Cheapest", "Non-stop", "Round trip"].

Output JSON ONLY: {{"suggestions": ["...", "..."]}}
"""

USER = "User input: {text}"


class SuggestionGenerator:
    def __init__(self, llm: BaseChatModel):
        self.llm = llm
        self.prompt = ChatPromptTemplate.from_messages([("system", SYSTEM), ("user", USER)])

    async def suggest(self, user_input: str) -> List[str]:
        if not user_input or not user_input.strip():
            return []
        try:
            res = await self.llm.ainvoke(self.prompt.format_messages(text=user_input))
            data = json.loads(strip_fences(getattr(res, "content", "") or ""))
        except Exception as e:
            log_event("suggestions_failed", level="WARNING", error=f"{type(e).__name__}: {e}")
            return []

        items = data.get("suggestions") if isinstance(data, dict) else data
        if not isinstance(items, list):
            return []
        out: List[str] = []
        for item in items:
            text = str(item).strip() if item is not None else ""
            if text and text not in out:
                out.append(text)
        return out[:MAX_SUGGESTIONS]
