"""Failure types raised inside the planning pipeline.

None of these cross ``PlannerHandler.plan_turn``: each is converted into an
ask response (or a per-flight ERROR status) at the stage that raised it.
"""


class PlannerError(Exception):
    """Base class for pipeline failures."""


class ExtractionFailure(PlannerError):
    """The language model returned nothing usable for the utterance."""


class SearchUnavailable(PlannerError):
    """Provider search was unreachable, timed out or returned a malformed payload."""


class ReviewFailure(PlannerError):
    """Live itinerary confirmation failed for a single candidate."""

    def __init__(self, flight_id: str, message: str = ""):
        self.flight_id = flight_id
        super().__init__(message or f"Review failed for flight {flight_id}")
