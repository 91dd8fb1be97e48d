from typing import Callable, Dict, List, Optional

from pydantic import BaseModel

from flightplan.types import Filter, FilterType, FlightOption

CHEAPEST = "cheapest"
FASTEST = "fastest"
NON_STOP = "non-stop"
CATEGORY_ORDER = [CHEAPEST, FASTEST, NON_STOP]


class Selection(BaseModel):
    candidates: List[FlightOption]
    truncated: bool = False  # full set is too long for chat; show a redirect


def _dedupe(options: List[FlightOption]) -> List[FlightOption]:
    seen = set()
    out: List[FlightOption] = []
    for op in options:
        if op.id not in seen:
            seen.add(op.id)
            out.append(op)
    return out


def _ranking_hint(filters: Optional[List[Filter]]) -> Optional[str]:
    for f in filters or []:
        if f.type in (FilterType.CHEAPEST.value, FilterType.FASTEST.value):
            return f.type
    return None


class BoundedListSelector:
    """Pass every flight through; above the threshold mark the set for redirect.

    A CHEAPEST or FASTEST hint orders the list; no category tags are added.
    """

    def __init__(self, threshold: int = 2):
        self.threshold = threshold

    def select(self, options: List[FlightOption], filters: Optional[List[Filter]] = None) -> Selection:
        candidates = _dedupe(options)
        hint = _ranking_hint(filters)
        if hint == FilterType.CHEAPEST.value:
            candidates.sort(key=lambda x: x.price)
        elif hint == FilterType.FASTEST.value:
            candidates.sort(key=lambda x: x.duration_minutes)
        return Selection(candidates=candidates, truncated=len(candidates) > self.threshold)


class BestOfBreedSelector:
    """Cheapest, fastest and cheapest non-stop, merged by id with accumulated tags."""

    def __init__(self, threshold: int = 2):
        self.threshold = threshold

    def select(self, options: List[FlightOption], filters: Optional[List[Filter]] = None) -> Selection:
        if not options:
            return Selection(candidates=[])

        winners: Dict[str, Optional[FlightOption]] = {
            CHEAPEST: min(options, key=lambda x: x.price),
            FASTEST: min(options, key=lambda x: x.duration_minutes),
            NON_STOP: min((o for o in options if o.stops == 0), key=lambda x: x.price, default=None),
        }

        tagged: Dict[str, FlightOption] = {}
        for category in CATEGORY_ORDER:
            winner = winners[category]
            if winner is None:
                continue
            current = tagged.get(winner.id)
            if current is None:
                tagged[winner.id] = winner.model_copy(update={"categories": [category]})
            elif category not in current.categories:
                current.categories.append(category)

        # dict keeps first-seen order: cheapest, fastest, non-stop
        return Selection(candidates=list(tagged.values()))


SELECTORS: Dict[str, Callable[[int], object]] = {
    "bounded_list": BoundedListSelector,
    "best_of_breed": BestOfBreedSelector,
}


def get_selector(policy: str, threshold: int = 2):
    try:
        return SELECTORS[policy](threshold)
    except KeyError:
        raise ValueError(f"Unknown selection policy: {policy}") from None
