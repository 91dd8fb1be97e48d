"""Request-scoped identifiers carried through a planning turn."""

from contextvars import ContextVar
from typing import Optional


request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
conversation_id_var: ContextVar[Optional[str]] = ContextVar("conversation_id", default=None)


def clear_context() -> None:
    """Reset context variables to defaults."""
    request_id_var.set(None)
    conversation_id_var.set(None)
