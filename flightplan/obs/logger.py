"""Structured JSON logging to stdout.

One event per line, safe for stdout collectors. User utterances are clipped
so chat text never lands in logs verbatim at full length.
"""

from typing import Any, Dict
from datetime import datetime, timezone
import json

from flightplan.obs.context import request_id_var, conversation_id_var

_MAX_TEXT = 80
_TEXT_FIELDS = ("user_message", "utterance", "text")


def _clip(value: Any) -> Any:
    s = str(value) if value is not None else ""
    if len(s) <= _MAX_TEXT:
        return s
    return s[:_MAX_TEXT] + f"...(+{len(s) - _MAX_TEXT})"


def log_event(event: str, **fields: Any) -> None:
    payload: Dict[str, Any] = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "level": fields.pop("level", "INFO"),
        "event": event,
        "request_id": request_id_var.get(),
        "conversation_id": fields.pop("conversation_id", None) or conversation_id_var.get(),
    }
    for k, v in fields.items():
        payload[k] = _clip(v) if k in _TEXT_FIELDS else v

    try:
        print(json.dumps(payload, separators=(",", ":"), default=str))
    except (TypeError, ValueError):
        # never let logging break a turn
        print(json.dumps({"ts": payload["ts"], "level": "ERROR", "event": "log_encode_failed",
                          "original_event": event}))
