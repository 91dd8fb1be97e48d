"""Search-time filters applied to normalised flight options.

Filters run in the order the user declared them, each narrowing the working
set. Unknown filter types, ranking hints (CHEAPEST, FASTEST) and values that
do not parse leave the set untouched.
"""

from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Tuple
import pytz

from flightplan.obs.logger import log_event
from flightplan.types import Filter, FilterType, FlightOption

# bucket -> [start_hour, end_hour)
DEPARTURE_BUCKETS: Dict[str, Tuple[int, int]] = {
    "EARLY_MORNING": (0, 8),
    "MORNING": (8, 12),
    "AFTERNOON": (12, 16),
    "EVENING": (16, 20),
    "NIGHT": (20, 24),
}


def departure_bucket(dt: datetime, tz: str) -> str:
    hour = dt.astimezone(pytz.timezone(tz)).hour
    for name, (start, end) in DEPARTURE_BUCKETS.items():
        if start <= hour < end:
            return name
    raise ValueError(f"hour out of range: {hour}")


def filter_by_stops(flights: List[FlightOption], value: str, tz: str) -> List[FlightOption]:
    try:
        max_stops = int(value)
    except (TypeError, ValueError):
        return flights
    return [f for f in flights if f.stops <= max_stops]


def filter_by_airline(flights: List[FlightOption], value: str, tz: str) -> List[FlightOption]:
    allowed = {code.strip().upper() for code in (value or "").split(",") if code.strip()}
    if not allowed:
        return flights
    return [f for f in flights if any(code in allowed for code in f.carrier_codes)]


def filter_by_departure_time(flights: List[FlightOption], value: str, tz: str) -> List[FlightOption]:
    bucket = (value or "").strip().upper()
    if bucket not in DEPARTURE_BUCKETS:
        return flights
    return [f for f in flights if departure_bucket(f.depart_time, tz) == bucket]


FILTER_FUNCS: Dict[str, Callable[[List[FlightOption], str, str], List[FlightOption]]] = {
    FilterType.STOPS.value: filter_by_stops,
    FilterType.AIRLINE.value: filter_by_airline,
    FilterType.DEPARTURE_TIME.value: filter_by_departure_time,
}


def apply_filters(flights: List[FlightOption], filters: Optional[Iterable[Filter]],
                  tz: str = "Asia/Kolkata") -> List[FlightOption]:
    working = list(flights)
    for flt in filters or []:
        func = FILTER_FUNCS.get(flt.type)
        if func is None:
            continue
        before = len(working)
        working = func(working, flt.value, tz)
        log_event("filter_applied", level="DEBUG", filter_type=flt.type,
                  value=flt.value, before=before, after=len(working))
    return working
