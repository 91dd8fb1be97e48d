from typing import Any, Dict, List, Tuple

from pydantic import ValidationError

from flightplan.errors import SearchUnavailable
from flightplan.obs.logger import log_event
from flightplan.obs.metrics import inc_counter
from flightplan.types import FlightOption, TravelQuery

SECTOR_DELIMITER = "|"
FIELD_DELIMITER = "_"


def build_search_params(query: TravelQuery) -> Dict[str, str]:
    return {
        "from": query.origin_airport,
        "to": query.destination_airport,
        "depart_date": query.depart_date,
        "return_date": (query.return_date or "") if query.is_round_trip else "",
        "adults": str(query.passenger_count),
    }


def parse_sector_keys(sector_keys: List[str]) -> Tuple[str, str, List[str]]:
    """Decode sector keys into (origin, destination, flight numbers).

    Each sector key is a "|"-joined path of legs and each leg reads
    ORIGIN_DEST_DATE_FLIGHT, e.g. "DXB_MCT_14/05/2025_WY-610|MCT_DEL_14/05/2025_WY-231".
    """
    if not sector_keys:
        raise ValueError("card has no sector keys")
    legs = [leg.split(FIELD_DELIMITER) for sector in sector_keys for leg in sector.split(SECTOR_DELIMITER)]
    for leg in legs:
        if len(leg) < 4:
            raise ValueError(f"malformed sector leg: {FIELD_DELIMITER.join(leg)}")
    origin = legs[0][0]
    destination = legs[-1][1]
    flight_numbers = [leg[3] for leg in legs]
    return origin, destination, flight_numbers


def card_to_option(card: Dict[str, Any], currency: str) -> FlightOption:
    origin, destination, flight_numbers = parse_sector_keys(card["sectorKeys"])
    price_breakup = card["priceBreakup"]
    fare = price_breakup.get("fare") or {}
    promos = card.get("promos") or []
    booking_url = (promos[0] or {}).get("plink") if promos else None

    return FlightOption(
        id=str(card["id"]),
        price=float(price_breakup["pr"]),
        currency=currency,
        flight_numbers=flight_numbers,
        depart_time=card["firstDeparture"]["timestamp"],
        arrive_time=card["lastArrival"]["timestamp"],
        duration_minutes=int(card.get("totalDurationInMinutes") or 0),
        stops=int(card.get("maxStopsInSectors") or 0),
        booking_url=booking_url or "#",
        fare_key=fare.get("fk") or "",
        fare_basis_code=fare.get("fb") or "",
        origin_airport=origin,
        destination_airport=destination,
        coupon_data=fare.get("coupon_detail"),
    )


def from_provider(payload: Any, currency: str) -> List[FlightOption]:
    """Normalise a raw search payload into FlightOptions.

    No cards is a valid, empty result. A payload of the wrong shape raises
    SearchUnavailable; single cards that cannot be parsed are skipped.
    """
    if not isinstance(payload, dict):
        raise SearchUnavailable("Search payload is not a JSON object")
    cards = payload.get("cards")
    if not cards:
        return []
    if not isinstance(cards, list) or not isinstance(cards[0], list):
        raise SearchUnavailable("Search payload 'cards' has an unexpected shape")

    items: List[FlightOption] = []
    for card in cards[0]:
        try:
            items.append(card_to_option(card, currency))
        except (KeyError, TypeError, ValueError, IndexError, ValidationError) as e:
            inc_counter("search_cards_skipped_total")
            log_event("search_card_skipped", level="WARNING",
                      card_id=(card or {}).get("id") if isinstance(card, dict) else None,
                      error=f"{type(e).__name__}: {e}")
    return items
