"""
Test suite for the planner graph and PlannerHandler.plan_turn

End-to-end turns with a mocked chat model and a mocked provider client.
"""

import json
from datetime import date
from unittest.mock import AsyncMock, Mock

import httpx
import pytest
from langchain_core.messages import AIMessage

from flightplan.formatters.response import REPHRASE_TEXT, SEARCH_TROUBLE_TEXT
from flightplan.langgraph.handler import create_planner_handler
from flightplan.session.store import SessionStore
from flightplan.types import AskResponse, Filter, FlightsResponse, PlanTurnRequest, TravelQuery

TODAY = date(2030, 6, 1)


def _extraction(**fields):
    data = {"originAirport": None, "destinationAirport": None, "departDate": None, "returnDate": None,
            "passengerCount": None, "isRoundTrip": None, "filters": []}
    data.update(fields)
    return AIMessage(content=json.dumps(data))


@pytest.fixture
def llm():
    llm = Mock()
    llm.ainvoke = AsyncMock()
    return llm


@pytest.fixture
def provider():
    client = Mock()
    client.review_timeout = 2.0
    client.search = AsyncMock(return_value={"cards": []})

    async def create(body):
        fare_key = body["flightParams"][0]["onwardFares"][0]["fareKey"]
        return {"itineraryId": f"IT-{fare_key}", "itineraryStatus": "SUCCESS"}

    client.create_itinerary = AsyncMock(side_effect=create)
    return client


@pytest.fixture
def build(llm, provider, market):
    def _build(**kwargs):
        return create_planner_handler(llm, provider, market, **kwargs)
    return _build


class TestPlanTurn:

    async def test_complete_request_returns_flights(self, llm, provider, build, make_card):
        """I want to fly from DEL to BOM on 25/12/2030 with 2 people"""
        llm.ainvoke.return_value = _extraction(originAirport="DEL", destinationAirport="BOM",
                                               departDate="25/12/2030", passengerCount=2)
        provider.search.return_value = {"cards": [[make_card("A", price=80), make_card("B", price=60)]]}

        response = await build().plan_turn(
            PlanTurnRequest(user_message="I want to fly from DEL to BOM on 25/12/2030 with 2 people"),
            today=TODAY,
        )

        assert isinstance(response, FlightsResponse)
        assert response.valid_query.is_round_trip is False
        assert response.valid_query.passenger_count == 2
        assert response.truncated is False
        assert [f.id for f in response.flights] == ["A", "B"]
        assert response.flights[0].itinerary_id == "IT-fk-A"
        assert response.flights[0].review_url.endswith("/flights/itinerary/IT-fk-A/info?ancillaryEnabled=true")
        assert provider.create_itinerary.await_count == 2
        params = provider.search.call_args.args[0]
        assert params == {"from": "DEL", "to": "BOM", "depart_date": "25/12/2030",
                          "return_date": "", "adults": "2"}

    async def test_missing_fields_ask(self, llm, provider, build):
        """Looking for flights to London"""
        llm.ainvoke.return_value = _extraction(destinationAirport="LHR")

        response = await build().plan_turn(PlanTurnRequest(user_message="Looking for flights to London"),
                                           today=TODAY)

        assert isinstance(response, AskResponse)
        assert response.missing_fields == ["originAirport", "departDate"]
        assert "departure airport" in response.ask
        assert "departure date" in response.ask
        assert response.partial_query.destination_airport == "LHR"
        provider.search.assert_not_called()

    async def test_merge_over_turns(self, llm, provider, build):
        """The origin from an earlier turn survives a turn that only names the destination"""
        llm.ainvoke.return_value = _extraction(destinationAirport="BLR")
        previous = TravelQuery(origin_airport="DEL")

        response = await build().plan_turn(PlanTurnRequest(user_message="to BLR", previous_query=previous),
                                           today=TODAY)

        assert isinstance(response, AskResponse)
        assert response.partial_query.origin_airport == "DEL"
        assert response.partial_query.destination_airport == "BLR"
        assert response.missing_fields == ["departDate"]
        assert previous.destination_airport is None

    async def test_round_trip_asks_for_return_date(self, llm, provider, build):
        llm.ainvoke.return_value = _extraction(originAirport="DEL", destinationAirport="DXB",
                                               departDate="25/12/2030", isRoundTrip=True)

        response = await build().plan_turn(PlanTurnRequest(user_message="DEL to DXB 25/12 and back"),
                                           today=TODAY)

        assert isinstance(response, AskResponse)
        assert response.missing_fields == ["returnDate"]
        assert "return date" in response.ask
        provider.search.assert_not_called()

    async def test_no_flights_found(self, llm, provider, build):
        llm.ainvoke.return_value = _extraction(originAirport="DEL", destinationAirport="BOM",
                                               departDate="25/12/2030")
        provider.search.return_value = {"cards": []}

        response = await build().plan_turn(PlanTurnRequest(user_message="DEL BOM 25/12/2030"), today=TODAY)

        assert isinstance(response, FlightsResponse)
        assert response.flights == []
        assert response.valid_query == TravelQuery(origin_airport="DEL", destination_airport="BOM",
                                                   depart_date="25/12/2030")
        provider.create_itinerary.assert_not_called()

    async def test_large_result_set_skips_review(self, llm, provider, build, make_card):
        llm.ainvoke.return_value = _extraction(originAirport="DEL", destinationAirport="BOM",
                                               departDate="25/12/2030")
        provider.search.return_value = {"cards": [[make_card(str(i)) for i in range(5)]]}

        response = await build().plan_turn(PlanTurnRequest(user_message="DEL BOM 25/12/2030"), today=TODAY)

        assert isinstance(response, FlightsResponse)
        assert response.truncated is True
        assert len(response.flights) == 5
        assert all(f.itinerary_status == "SUCCESS" and f.itinerary_id is None for f in response.flights)
        provider.create_itinerary.assert_not_called()

    async def test_one_review_failure_keeps_flight(self, llm, provider, build, make_card):
        llm.ainvoke.return_value = _extraction(originAirport="DEL", destinationAirport="BOM",
                                               departDate="25/12/2030")
        provider.search.return_value = {"cards": [[make_card("A"), make_card("B")]]}

        async def create(body):
            if body["flightParams"][0]["onwardFares"][0]["fareKey"] == "fk-B":
                raise httpx.ReadTimeout("slow")
            return {"itineraryId": "IT-A", "itineraryStatus": "SUCCESS"}

        provider.create_itinerary.side_effect = create

        response = await build().plan_turn(PlanTurnRequest(user_message="DEL BOM 25/12/2030"), today=TODAY)

        statuses = {f.id: (f.itinerary_status, f.itinerary_id) for f in response.flights}
        assert statuses == {"A": ("SUCCESS", "IT-A"), "B": ("ERROR", None)}

    async def test_best_of_breed_policy(self, llm, provider, build, make_card):
        llm.ainvoke.return_value = _extraction(originAirport="DEL", destinationAirport="BOM",
                                               departDate="25/12/2030")
        provider.search.return_value = {"cards": [[
            make_card("A", price=50, duration=60, stops=1),
            make_card("B", price=90, duration=200, stops=0),
            make_card("C", price=95, duration=300, stops=1),
        ]]}

        response = await build(selection_policy="best_of_breed").plan_turn(
            PlanTurnRequest(user_message="DEL BOM 25/12/2030"), today=TODAY
        )

        assert [(f.id, f.categories) for f in response.flights] == [
            ("A", ["cheapest", "fastest"]),
            ("B", ["non-stop"]),
        ]

    async def test_best_of_breed_winners_are_all_reviewed(self, llm, provider, build, make_card):
        llm.ainvoke.return_value = _extraction(originAirport="DEL", destinationAirport="BOM",
                                               departDate="25/12/2030")
        provider.search.return_value = {"cards": [[
            make_card("A", price=50, duration=200, stops=1),
            make_card("B", price=90, duration=60, stops=1),
            make_card("C", price=95, duration=300, stops=0),
        ]]}

        response = await build(selection_policy="best_of_breed").plan_turn(
            PlanTurnRequest(user_message="DEL BOM 25/12/2030"), today=TODAY
        )

        assert response.truncated is False
        assert [f.id for f in response.flights] == ["A", "B", "C"]
        assert provider.create_itinerary.await_count == 3
        assert all(f.itinerary_id == f"IT-fk-{f.id}" for f in response.flights)

    async def test_tips_attached_to_results(self, llm, provider, build, make_card):
        tips = {"tips": [{"title": "Street food", "content": "Try vada pav near CST."}]}
        llm.ainvoke.side_effect = [
            _extraction(originAirport="DEL", destinationAirport="BOM", departDate="25/12/2030"),
            AIMessage(content=json.dumps(tips)),
        ]
        provider.search.return_value = {"cards": [[make_card("A")]]}

        response = await build(travel_tips=True).plan_turn(
            PlanTurnRequest(user_message="DEL BOM 25/12/2030"), today=TODAY
        )

        assert [t.title for t in response.tips] == ["Street food"]
        assert response.model_dump(by_alias=True)["tips"][0]["content"] == "Try vada pav near CST."
        assert llm.ainvoke.await_count == 2

    async def test_no_tips_without_flights_or_when_disabled(self, llm, provider, build, make_card):
        llm.ainvoke.return_value = _extraction(originAirport="DEL", destinationAirport="BOM",
                                               departDate="25/12/2030")

        empty = await build(travel_tips=True).plan_turn(PlanTurnRequest(user_message="DEL BOM"), today=TODAY)
        assert empty.flights == [] and empty.tips == []
        assert llm.ainvoke.await_count == 1

        provider.search.return_value = {"cards": [[make_card("A")]]}
        disabled = await build(travel_tips=False).plan_turn(PlanTurnRequest(user_message="DEL BOM"),
                                                           today=TODAY)
        assert disabled.tips == []
        assert llm.ainvoke.await_count == 2

    async def test_filters_reach_the_search(self, llm, provider, build, make_card):
        llm.ainvoke.return_value = _extraction(originAirport="DEL", destinationAirport="BOM",
                                               departDate="25/12/2030",
                                               filters=[{"type": "STOPS", "value": "0"}])
        provider.search.return_value = {"cards": [[make_card("A", stops=1), make_card("B", stops=0)]]}

        response = await build().plan_turn(PlanTurnRequest(user_message="non-stop please"), today=TODAY)

        assert [f.id for f in response.flights] == ["B"]
        assert response.valid_query.filters == [Filter(type="STOPS", value="0")]

    async def test_extraction_failure_asks_to_rephrase(self, llm, provider, build):
        llm.ainvoke.return_value = AIMessage(content="sorry, no idea")
        previous = TravelQuery(origin_airport="DEL")

        response = await build().plan_turn(PlanTurnRequest(user_message="blorp", previous_query=previous),
                                           today=TODAY)

        assert isinstance(response, AskResponse)
        assert response.ask == REPHRASE_TEXT
        assert response.partial_query == previous

    async def test_search_unavailable_apologises(self, llm, provider, build):
        llm.ainvoke.return_value = _extraction(originAirport="DEL", destinationAirport="BOM",
                                               departDate="25/12/2030")
        provider.search.side_effect = httpx.ConnectError("refused")
        previous = TravelQuery(origin_airport="DEL")

        response = await build().plan_turn(PlanTurnRequest(user_message="DEL BOM 25/12/2030",
                                                           previous_query=previous), today=TODAY)

        assert isinstance(response, AskResponse)
        assert response.ask == SEARCH_TROUBLE_TEXT
        assert response.partial_query == previous

    async def test_unexpected_error_never_escapes(self, llm, provider, build):
        llm.ainvoke.return_value = _extraction(originAirport="DEL", destinationAirport="BOM",
                                               departDate="25/12/2030")
        handler = build()
        handler.graph = Mock()
        handler.graph.ainvoke = AsyncMock(side_effect=RuntimeError("boom"))

        response = await handler.plan_turn(PlanTurnRequest(user_message="DEL BOM"), today=TODAY)

        assert isinstance(response, AskResponse)
        assert response.ask == SEARCH_TROUBLE_TEXT


class TestConversationStore:

    async def test_query_persists_between_turns(self, llm, provider, build):
        store = SessionStore()
        handler = build(session_store=store)

        llm.ainvoke.return_value = _extraction(originAirport="DEL")
        first = await handler.plan_turn(PlanTurnRequest(user_message="from Delhi", conversation_id="c1"),
                                        today=TODAY)
        assert first.missing_fields == ["destinationAirport", "departDate"]
        assert store.get("c1")["query"]["originAirport"] == "DEL"

        llm.ainvoke.return_value = _extraction(destinationAirport="BLR")
        second = await handler.plan_turn(PlanTurnRequest(user_message="to BLR", conversation_id="c1"),
                                         today=TODAY)
        assert second.partial_query.origin_airport == "DEL"
        assert second.partial_query.destination_airport == "BLR"

    async def test_explicit_previous_query_wins_over_store(self, llm, provider, build):
        store = SessionStore()
        store.set("c2", {"query": {"originAirport": "BOM"}})
        handler = build(session_store=store)
        llm.ainvoke.return_value = _extraction()

        response = await handler.plan_turn(PlanTurnRequest(user_message="hm", conversation_id="c2",
                                                           previous_query=TravelQuery(origin_airport="DEL")),
                                           today=TODAY)

        assert response.partial_query.origin_airport == "DEL"

    def test_reset_conversation(self, build):
        store = SessionStore()
        store.set("c3", {"query": {}})
        handler = build(session_store=store)

        assert handler.reset_conversation("c3") is True
        assert store.get("c3") is None
        assert build().reset_conversation("c3") is False
