from datetime import date
from typing import Any, Dict, Iterable, Optional
import json

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.prompts import ChatPromptTemplate
from pydantic import ValidationError

from flightplan.errors import ExtractionFailure
from flightplan.obs.logger import log_event
from flightplan.types import ChatMessage, PartialFields
from flightplan.utils.dates import DDMMYYYY, get_current_date, to_ddmmyyyy

SYSTEM = """You extract structured flight-search fields from a user's chat message.
Use the chat context to resolve references to earlier messages.
Today's date is {today} (DD/MM/YYYY).

Fields (use null for anything the user did not mention):
- originAirport: 3-letter IATA code
- destinationAirport: 3-letter IATA code
- departDate: DD/MM/YYYY
- returnDate: DD/MM/YYYY
- passengerCount: number of adults
- isRoundTrip: true/false
- filters: list of {{"type": ..., "value": ...}} objects, one per constraint:
  - CHEAPEST (value "true")
  - FASTEST (value "true")
  - STOPS (value: maximum number of stops, "0", "1" or "2")
  - AIRLINE (value: comma separated airline IATA codes, e.g. "6E,AI")
  - DEPARTURE_TIME (value: one of EARLY_MORNING, MORNING, AFTERNOON, EVENING, NIGHT)
    - EARLY_MORNING: midnight to 8 am
    - MORNING: 8 am to noon
    - AFTERNOON: noon to 4 pm
    - EVENING: 4 pm to 8 pm
    - NIGHT: 8 pm to midnight

Rules:
1. Airports must be IATA codes. If the user names a city or country, use the nearest major airport.
2. Dates must be DD/MM/YYYY. Resolve relative dates ("next Friday") against today's date.
   If the year is missing, use the soonest upcoming occurrence.
3. If the user says nothing about passengers, passengerCount is null (never 0).
4. If the user says nothing about a return trip, isRoundTrip and returnDate are null.
5. There can be several filters at once; return all of them. Return [] when there are none.

Examples:
- "I want to fly from DEL to BOM on 25/12/2024 with 2 people" ->
  {{"originAirport": "DEL", "destinationAirport": "BOM", "departDate": "25/12/2024", "returnDate": null, "passengerCount": 2, "isRoundTrip": null, "filters": []}}
- "Looking for flights to London" ->
  {{"originAirport": null, "destinationAirport": "LHR", "departDate": null, "returnDate": null, "passengerCount": null, "isRoundTrip": null, "filters": []}}
- "Delhi to New York, 22nd June, indigo night flights only" ->
  {{"originAirport": "DEL", "destinationAirport": "JFK", "departDate": "22/06/<year>", "returnDate": null, "passengerCount": null, "isRoundTrip": null, "filters": [{{"type": "DEPARTURE_TIME", "value": "NIGHT"}}, {{"type": "AIRLINE", "value": "6E"}}]}}

Output JSON ONLY, a single object with exactly these keys:
originAirport, destinationAirport, departDate, returnDate, passengerCount, isRoundTrip, filters.
"""

USER = """Message: {text}

Chat context:
{context}"""


def format_chat_context(messages: Optional[Iterable[ChatMessage]]) -> str:
    """Render prior chat turns as "sender: text" lines."""
    if not messages:
        return ""
    return "\n".join(f"{m.sender}: {m.text}" for m in messages)


def strip_fences(content: str) -> str:
    content = content.strip()
    if content.startswith("```json"):
        content = content[7:]
    elif content.startswith("```"):
        content = content[3:]
    if content.endswith("```"):
        content = content[:-3]
    return content.strip()


class FieldExtractor:
    """Turn an utterance plus chat context into PartialFields via a chat model."""

    def __init__(self, llm: BaseChatModel):
        self.llm = llm
        self.prompt = ChatPromptTemplate.from_messages([("system", SYSTEM), ("user", USER)])

    async def extract(self, utterance: str, conversation_context: str = "",
                      today: Optional[date] = None) -> PartialFields:
        today = today or get_current_date()
        messages = self.prompt.format_messages(
            text=utterance,
            context=conversation_context or "(none)",
            today=today.strftime(DDMMYYYY),
        )

        try:
            res = await self.llm.ainvoke(messages)
        except Exception as e:
            log_event("extraction_llm_error", level="ERROR", error=f"{type(e).__name__}: {e}")
            raise ExtractionFailure(str(e)) from e

        data = self._parse(getattr(res, "content", None))
        self._normalise_dates(data, today)

        try:
            fields = PartialFields.model_validate(data)
        except ValidationError as e:
            log_event("extraction_invalid", level="WARNING", error=str(e))
            raise ExtractionFailure("Extracted fields failed validation") from e

        log_event("fields_extracted", level="DEBUG", fields=fields.model_dump(by_alias=True))
        return fields

    def _parse(self, content: Any) -> Dict[str, Any]:
        if not content or not isinstance(content, str):
            raise ExtractionFailure("Model returned no content")
        try:
            data = json.loads(strip_fences(content))
        except json.JSONDecodeError as e:
            log_event("extraction_parse_error", level="WARNING", error=str(e))
            raise ExtractionFailure("Model returned non-JSON output") from e
        if not isinstance(data, dict):
            raise ExtractionFailure("Model returned a non-object JSON value")
        return data

    def _normalise_dates(self, data: Dict[str, Any], today: date) -> None:
        for key in ("departDate", "returnDate"):
            raw = data.get(key)
            if isinstance(raw, str) and raw.strip():
                data[key] = to_ddmmyyyy(raw, today)
