"""In-memory TTL store for per-conversation planner state."""

from typing import Optional, Dict, Any
import time
import threading


class SessionStore:
    """Conversation dictionary with TTL semantics."""

    def __init__(self, ttl_seconds: int = 3600):
        self.ttl_seconds = ttl_seconds
        self._lock = threading.Lock()
        self._data: Dict[str, Dict[str, Any]] = {}

    def _expired(self, rec: Dict[str, Any]) -> bool:
        return (time.time() - rec.get("updated_at", 0)) > self.ttl_seconds

    def get(self, conversation_id: str) -> Optional[Dict[str, Any]]:
        """Return stored state if not expired, else None."""
        with self._lock:
            rec = self._data.get(conversation_id)
            if not rec:
                return None
            if self._expired(rec):
                self._data.pop(conversation_id, None)
                return None
            return rec.get("state")

    def set(self, conversation_id: str, state: Dict[str, Any]) -> None:
        now = time.time()
        with self._lock:
            self._data[conversation_id] = {"state": state, "updated_at": now}

    def clear(self, conversation_id: str) -> None:
        with self._lock:
            self._data.pop(conversation_id, None)

    def exists(self, conversation_id: str) -> bool:
        return self.get(conversation_id) is not None
