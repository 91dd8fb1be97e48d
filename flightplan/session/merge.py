"""Merge one turn's extraction over the previous turn's query."""

from typing import Any, Optional

from flightplan.types import PartialFields, TravelQuery

# Defaults are applied here and nowhere else.
FIELD_DEFAULTS = {
    "origin_airport": None,
    "destination_airport": None,
    "depart_date": None,
    "return_date": None,
    "passenger_count": 1,
    "is_round_trip": False,
    "filters": [],
}


def _pick(field: str, extracted: PartialFields, previous: Optional[TravelQuery]) -> Any:
    value = getattr(extracted, field)
    if value is not None:
        return value
    if previous is not None:
        prev_value = getattr(previous, field)
        if prev_value is not None:
            return prev_value
    default = FIELD_DEFAULTS[field]
    return list(default) if isinstance(default, list) else default


def merge_query(extracted: PartialFields, previous: Optional[TravelQuery] = None) -> TravelQuery:
    """Return a new TravelQuery: extracted value > previous value > default.

    Pure: neither input is modified.
    """
    merged = {field: _pick(field, extracted, previous) for field in FIELD_DEFAULTS}
    merged["filters"] = [f.model_copy() for f in merged["filters"]]
    return TravelQuery(**merged)
