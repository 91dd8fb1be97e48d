import os
import sys
import asyncio
import inspect
from datetime import datetime, timezone

import pytest

# Ensure project root is on sys.path so `import flightplan` works in tests
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from flightplan.config import MarketConfig  # noqa: E402
from flightplan.types import FlightOption  # noqa: E402


def pytest_pyfunc_call(pyfuncitem):
    """Allow running async tests without pytest-asyncio.

    If the test function is a coroutine, run it in a fresh event loop.
    """
    testfunction = pyfuncitem.obj
    if inspect.iscoroutinefunction(testfunction):
        funcargs = pyfuncitem.funcargs
        sig = inspect.signature(testfunction)
        # Filter only the parameters that the test function expects
        allowed = {name: funcargs[name] for name in sig.parameters.keys() if name in funcargs}
        asyncio.run(testfunction(**allowed))
        return True
    return None


@pytest.fixture
def market():
    return MarketConfig(base_url="https://provider.test", currency="OMR", domain="OM",
                        departure_tz="Asia/Kolkata")


@pytest.fixture
def make_flight():
    """Factory for FlightOptions with sensible defaults."""
    def _make(id="F1", price=100.0, duration=120, stops=0, flight_numbers=None,
              depart=None, **extra):
        depart = depart or datetime(2030, 12, 25, 4, 30, tzinfo=timezone.utc)
        return FlightOption(
            id=id,
            price=price,
            currency="OMR",
            flight_numbers=flight_numbers or ["6E-201"],
            depart_time=depart,
            arrive_time=depart.replace(hour=min(depart.hour + 2, 23)),
            duration_minutes=duration,
            stops=stops,
            fare_key=f"FK-{id}",
            fare_basis_code=f"FB-{id}",
            origin_airport="DEL",
            destination_airport="BOM",
            booking_url=f"https://provider.test/book/{id}",
            **extra,
        )
    return _make


@pytest.fixture
def make_card():
    """Factory for raw provider search cards."""
    def _make(id="C1", price=55.5, sector_keys=None, depart="2030-12-25T04:30:00Z",
              arrive="2030-12-25T06:40:00Z", duration=130, stops=0, coupon=None, plink="https://provider.test/p/1"):
        return {
            "id": id,
            "sectorKeys": sector_keys or ["DEL_BOM_25/12/2030_6E-201"],
            "priceBreakup": {
                "pr": price,
                "fare": {"fk": f"fk-{id}", "fb": f"fb-{id}", "coupon_detail": coupon},
            },
            "firstDeparture": {"timestamp": depart},
            "lastArrival": {"timestamp": arrive},
            "totalDurationInMinutes": duration,
            "maxStopsInSectors": stops,
            "promos": [{"plink": plink}] if plink else [],
        }
    return _make
