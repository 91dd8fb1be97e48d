from contextlib import asynccontextmanager
from typing import Union
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from dotenv import load_dotenv
from langchain_openai import ChatOpenAI

from flightplan.config import settings, MarketConfig
from flightplan.langgraph.handler import create_planner_handler
from flightplan.llm.suggestions import SuggestionGenerator
from flightplan.obs.logger import log_event
from flightplan.obs.metrics import get_metrics_snapshot
from flightplan.obs.middleware import ObservabilityMiddleware
from flightplan.provider.client import FlightProviderClient
from flightplan.session.redis_store import RedisSessionStore
from flightplan.types import (
    AskResponse,
    FlightsResponse,
    PlanTurnRequest,
    SuggestionRequest,
    SuggestionResponse,
)

load_dotenv()


@asynccontextmanager
async def lifespan(app: FastAPI):
    log_event("startup", env=settings.APP_ENV, policy=settings.SELECTION_POLICY)

    market = MarketConfig.from_settings(settings)
    app.state.session_store = RedisSessionStore()
    app.state.provider = FlightProviderClient(market)
    app.state.llm = ChatOpenAI(
        model=settings.OPENAI_MODEL,
        temperature=0,
        api_key=settings.OPENAI_API_KEY,
    )
    app.state.suggester = SuggestionGenerator(app.state.llm)
    app.state.planner = create_planner_handler(
        llm=app.state.llm,
        client=app.state.provider,
        market=market,
        session_store=app.state.session_store,
    )

    yield

    await app.state.provider.aclose()
    log_event("shutdown")


api = FastAPI(
    title="Conversational Flight Planner",
    version="1.0.0",
    lifespan=lifespan,
)


@api.get("/health")
async def health():
    return {"status": "healthy", "service": "flight-planner"}


@api.get("/health/detailed")
async def detailed_health(request: Request):
    store = getattr(request.app.state, "session_store", None)
    redis_ok = bool(store and store.ping())
    checks = {
        "redis": "up" if redis_ok else "fallback",
        "planner": "up" if getattr(request.app.state, "planner", None) else "down",
    }
    status = "healthy" if checks["planner"] == "up" else "unhealthy"
    return JSONResponse({"status": status, "checks": checks}, status_code=200 if status == "healthy" else 503)


@api.get("/metrics")
async def metrics():
    return get_metrics_snapshot()


@api.post("/plan", response_model=Union[AskResponse, FlightsResponse])
async def plan(request: Request, body: PlanTurnRequest):
    log_event("plan_request", conversation_id=body.conversation_id,
              user_message=body.user_message, has_previous=body.previous_query is not None)
    return await request.app.state.planner.plan_turn(body)


@api.post("/suggestions", response_model=SuggestionResponse)
async def suggestions(request: Request, body: SuggestionRequest):
    items = await request.app.state.suggester.suggest(body.user_input)
    return SuggestionResponse(suggestions=items)


@api.delete("/conversations/{conversation_id}")
async def reset_conversation(request: Request, conversation_id: str):
    ok = request.app.state.planner.reset_conversation(conversation_id)
    return {"status": "reset" if ok else "no_store", "conversation_id": conversation_id}


# Apply middleware
app = ObservabilityMiddleware(api)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8001,
        reload=settings.APP_ENV == "dev",
        log_level="info"
    )
