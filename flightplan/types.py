from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Union
import re

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

_IATA_RE = re.compile(r"^[A-Z]{3}$")
_NULL_STRINGS = {"", "null", "none", "undefined"}


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FilterType(str, Enum):
    CHEAPEST = "CHEAPEST"
    FASTEST = "FASTEST"
    STOPS = "STOPS"
    AIRLINE = "AIRLINE"
    DEPARTURE_TIME = "DEPARTURE_TIME"


class Filter(CamelModel):
    type: str
    value: str = ""

    @field_validator("type", mode="before")
    @classmethod
    def _upper_type(cls, v: Any) -> str:
        return str(v or "").strip().upper()

    @field_validator("value", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> str:
        if v is None:
            return ""
        if isinstance(v, bool):
            return "true" if v else "false"
        if isinstance(v, (list, tuple)):
            # ["6E", "AI"] -> "6E,AI"
            return ",".join(str(x).strip() for x in v if x is not None)
        return str(v).strip()


def _null_to_none(v: Any) -> Any:
    if isinstance(v, str) and v.strip().lower() in _NULL_STRINGS:
        return None
    return v


class PartialFields(CamelModel):
    """One turn's best-effort extraction; every field may be absent."""
    origin_airport: Optional[str] = None
    destination_airport: Optional[str] = None
    depart_date: Optional[str] = Field(None, description="DD/MM/YYYY")
    return_date: Optional[str] = Field(None, description="DD/MM/YYYY")
    passenger_count: Optional[int] = None
    is_round_trip: Optional[bool] = None
    filters: Optional[List[Filter]] = None

    @field_validator("origin_airport", "destination_airport", mode="before")
    @classmethod
    def _iata(cls, v: Any) -> Optional[str]:
        v = _null_to_none(v)
        if v is None:
            return None
        code = str(v).strip().upper()
        return code if _IATA_RE.match(code) else None

    @field_validator("depart_date", "return_date", "is_round_trip", mode="before")
    @classmethod
    def _nullish(cls, v: Any) -> Any:
        return _null_to_none(v)

    @field_validator("passenger_count", mode="before")
    @classmethod
    def _positive_count(cls, v: Any) -> Optional[int]:
        v = _null_to_none(v)
        if v is None or isinstance(v, bool):
            return None
        try:
            count = int(v)
        except (TypeError, ValueError):
            return None
        return count if count >= 1 else None

    @field_validator("filters", mode="before")
    @classmethod
    def _empty_filters(cls, v: Any) -> Any:
        # an empty list means "no filter mentioned this turn"
        return v or None


class TravelQuery(CamelModel):
    """Immutable snapshot of the resolved (or resolving) search intent."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    origin_airport: Optional[str] = None
    destination_airport: Optional[str] = None
    depart_date: Optional[str] = None
    return_date: Optional[str] = None
    passenger_count: int = Field(1, ge=1)
    is_round_trip: bool = False
    filters: List[Filter] = Field(default_factory=list)

    @field_validator("passenger_count", mode="before")
    @classmethod
    def _default_count(cls, v: Any) -> int:
        if v is None or (isinstance(v, int) and v < 1):
            return 1
        return v

    @field_validator("is_round_trip", mode="before")
    @classmethod
    def _default_round_trip(cls, v: Any) -> bool:
        return False if v is None else v

    @field_validator("filters", mode="before")
    @classmethod
    def _default_filters(cls, v: Any) -> Any:
        return [] if v is None else v

    @property
    def is_complete(self) -> bool:
        if not (self.origin_airport and self.destination_airport and self.depart_date):
            return False
        if self.is_round_trip and not self.return_date:
            return False
        return self.passenger_count >= 1


class FlightOption(CamelModel):
    id: str
    price: float
    currency: str
    flight_numbers: List[str]
    depart_time: datetime
    arrive_time: datetime
    duration_minutes: int = Field(ge=0)
    stops: int = Field(0, ge=0)
    fare_key: str = ""
    fare_basis_code: str = ""
    origin_airport: str
    destination_airport: str
    booking_url: str = "#"
    categories: List[str] = Field(default_factory=list)
    coupon_data: Optional[Any] = None
    itinerary_id: Optional[str] = None
    itinerary_status: Optional[str] = None

    @field_validator("depart_time", "arrive_time")
    @classmethod
    def _assume_utc(cls, v: datetime) -> datetime:
        return v if v.tzinfo else v.replace(tzinfo=timezone.utc)

    @property
    def carrier_codes(self) -> List[str]:
        # "EY-5427" -> "EY"
        return [fn.split("-")[0].strip().upper() for fn in self.flight_numbers if fn]


class FormattedFlight(CamelModel):
    id: str
    airline: str
    flight_numbers: List[str]
    depart_time: str
    arrive_time: str
    duration_minutes: int
    stops: int
    price: float
    currency: str
    booking_url: str
    fare_key: str
    fare_basis_code: str
    origin_airport: str
    destination_airport: str
    coupon_data: Optional[Any] = None
    itinerary_id: Optional[str] = None
    itinerary_status: str
    review_url: Optional[str] = None
    categories: List[str] = Field(default_factory=list)


class AskResponse(CamelModel):
    kind: Literal["ask"] = "ask"
    ask: str
    missing_fields: List[str] = Field(default_factory=list)
    partial_query: Optional[TravelQuery] = None  # what the caller should persist for the next turn


class TravelTip(CamelModel):
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)


class FlightsResponse(CamelModel):
    kind: Literal["flights"] = "flights"
    flights: List[FormattedFlight]
    valid_query: TravelQuery
    truncated: bool = False  # too many to enumerate in chat; redirect to full results
    tips: List[TravelTip] = Field(default_factory=list)


PlanResponse = Annotated[Union[AskResponse, FlightsResponse], Field(discriminator="kind")]


class ChatMessage(CamelModel):
    sender: str
    text: str
    timestamp: Optional[str] = None


class PlanTurnRequest(CamelModel):
    user_message: str
    previous_query: Optional[TravelQuery] = None
    chat_context: List[ChatMessage] = Field(default_factory=list)
    conversation_id: Optional[str] = None


class SuggestionRequest(CamelModel):
    user_input: str


class SuggestionResponse(CamelModel):
    suggestions: List[str] = Field(default_factory=list)
