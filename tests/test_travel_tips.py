"""
Test suite for travel tips and follow-up suggestions

Both are best effort: malformed model output or a model error gives an
empty list rather than an exception.
"""

import json
from unittest.mock import AsyncMock, Mock

import pytest
from langchain_core.messages import AIMessage

from flightplan.llm.suggestions import SuggestionGenerator
from flightplan.llm.travel_tips import TravelTipsGenerator
from flightplan.types import TravelQuery

QUERY = TravelQuery(origin_airport="DEL", destination_airport="DXB", depart_date="25/12/2030",
                    return_date="30/12/2030", is_round_trip=True)


def _llm(content=None, error=None):
    llm = Mock()
    if error is not None:
        llm.ainvoke = AsyncMock(side_effect=error)
    else:
        llm.ainvoke = AsyncMock(return_value=AIMessage(content=content))
    return llm


class TestTravelTipsGenerator:

    async def test_tips_parsed(self):
        content = json.dumps({"tips": [
            {"title": "Gold Souk", "content": "Bargain politely; prices drop in the evening."},
            {"title": "Metro", "content": "Buy a Nol card at the airport."},
            {"title": "Festival", "content": "Dubai Shopping Festival starts mid December."},
        ]})
        tips = await TravelTipsGenerator(_llm(content)).generate("DEL to Dubai over xmas", QUERY)

        assert [t.title for t in tips] == ["Gold Souk", "Metro", "Festival"]
        assert tips[1].model_dump(by_alias=True) == {"title": "Metro", "content": "Buy a Nol card at the airport."}

    async def test_prompt_names_route_and_dates(self):
        llm = _llm(json.dumps({"tips": []}))
        await TravelTipsGenerator(llm).generate("xmas in Dubai", QUERY)

        system, user = [m.content for m in llm.ainvoke.call_args.args[0]]
        assert "from DEL to DXB" in system
        assert "departing 25/12/2030, returning 30/12/2030" in system
        assert "xmas in Dubai" in user

    async def test_bare_array_and_bad_items(self):
        content = "```json\n" + json.dumps([
            {"title": "Ok", "content": "Fine tip."},
            {"title": "", "content": "no title"},
            "just text",
            {"title": "Two", "content": "Second."},
            {"title": "Three", "content": "Third."},
            {"title": "Four", "content": "Dropped."},
        ]) + "\n```"
        tips = await TravelTipsGenerator(_llm(content)).generate("trip", QUERY)
        assert [t.title for t in tips] == ["Ok", "Two", "Three"]

    @pytest.mark.parametrize("content", ["", "no json here", json.dumps({"originAirport": "DEL"})])
    async def test_unusable_output_is_empty(self, content):
        assert await TravelTipsGenerator(_llm(content)).generate("trip", QUERY) == []

    async def test_model_error_is_empty(self):
        tips = await TravelTipsGenerator(_llm(error=RuntimeError("quota"))).generate("trip", QUERY)
        assert tips == []


class TestSuggestionGenerator:

    async def test_suggestions_parsed(self):
        llm = _llm(json.dumps({"suggestions": ["Cheapest", "Non-stop", "Cheapest", " ", "Round trip"]}))
        assert await SuggestionGenerator(llm).suggest("Flights from Delhi to Dubai") == [
            "Cheapest", "Non-stop", "Round trip",
        ]

    async def test_capped(self):
        llm = _llm(json.dumps(["A", "B", "C", "D", "E"]))
        assert await SuggestionGenerator(llm).suggest("hi") == ["A", "B", "C", "D"]

    async def test_blank_input_skips_model(self):
        llm = _llm(json.dumps({"suggestions": ["x"]}))
        assert await SuggestionGenerator(llm).suggest("   ") == []
        llm.ainvoke.assert_not_called()

    async def test_failure_is_empty(self):
        assert await SuggestionGenerator(_llm(error=RuntimeError("down"))).suggest("hi") == []
        assert await SuggestionGenerator(_llm("not json")).suggest("hi") == []
        assert await SuggestionGenerator(_llm(json.dumps({"suggestions": "Search"}))).suggest("hi") == []
