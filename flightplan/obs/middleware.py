"""ASGI middleware for lightweight observability."""

from typing import Callable, Any
import time
import uuid

from flightplan.obs.context import request_id_var, conversation_id_var
from flightplan.obs.logger import log_event
from flightplan.obs.metrics import record_timing, inc_counter

_TEMPLATED_PREFIXES = ("/conversations/",)


def route_label(path: str) -> str:
    """Collapse per-conversation paths so metric labels stay bounded."""
    for prefix in _TEMPLATED_PREFIXES:
        if path.startswith(prefix) and len(path) > len(prefix):
            return prefix + "{id}"
    return path


class ObservabilityMiddleware:
    def __init__(self, app: Any):
        self.app = app

    async def __call__(self, scope: dict, receive: Callable, send: Callable[[dict], Any]):
        if scope.get("type") != "http":
            return await self.app(scope, receive, send)

        headers = dict(scope.get("headers") or [])
        req_id = headers.get(b"x-request-id", b"").decode() or str(uuid.uuid4())
        request_id_var.set(req_id)
        conversation_id_var.set(None)
        method = scope.get("method", "")
        path = scope.get("path", "")
        route = route_label(path)
        start = time.monotonic()
        status_code = 500

        async def send_wrapper(message: dict):
            nonlocal status_code
            if message.get("type") == "http.response.start":
                status_code = int(message.get("status", 200))
                message.setdefault("headers", [])
                message["headers"] = list(message["headers"]) + [(b"x-request-id", req_id.encode())]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            elapsed_ms = (time.monotonic() - start) * 1000.0
            record_timing("request_latency_ms", elapsed_ms, {"route": route})
            inc_counter("requests_total", {"route": route, "status": str(status_code)})
            log_event(
                "request",
                method=method,
                route=route,
                path=path,
                status=status_code,
                ms_total=round(elapsed_ms, 2),
            )
