import json
import redis
from typing import Dict, Optional, Any

from flightplan.config import settings
from flightplan.obs.logger import log_event
from flightplan.session.store import SessionStore


class RedisSessionStore:
    """Conversation state in Redis with TTL; in-memory fallback when Redis is down."""

    def __init__(self, redis_url: str = None, ttl_seconds: int = None, client: Any = None):
        self.redis_url = redis_url or settings.REDIS_URL
        self.ttl_seconds = ttl_seconds or settings.SESSION_TTL_SECONDS
        self.prefix = "planner:conversation:"
        self._fallback = SessionStore(self.ttl_seconds)
        self.client = client if client is not None else redis.from_url(self.redis_url, decode_responses=True)

        # Test connection
        try:
            self.client.ping()
        except redis.RedisError as e:
            self.client = None
            log_event("session_store_fallback", level="WARNING", error=str(e))

    def _key(self, conversation_id: str) -> str:
        return f"{self.prefix}{conversation_id}"

    def get(self, conversation_id: str) -> Optional[Dict[str, Any]]:
        if self.client is None:
            return self._fallback.get(conversation_id)
        try:
            data = self.client.get(self._key(conversation_id))
        except redis.RedisError as e:
            log_event("session_get_error", level="WARNING", error=str(e))
            return self._fallback.get(conversation_id)
        return json.loads(data) if data else None

    def set(self, conversation_id: str, state: Dict[str, Any]) -> None:
        if self.client is None:
            self._fallback.set(conversation_id, state)
            return
        try:
            self.client.setex(self._key(conversation_id), self.ttl_seconds, json.dumps(state))
        except redis.RedisError as e:
            log_event("session_set_error", level="WARNING", error=str(e))
            self._fallback.set(conversation_id, state)

    def clear(self, conversation_id: str) -> None:
        self._fallback.clear(conversation_id)
        if self.client is None:
            return
        try:
            self.client.delete(self._key(conversation_id))
        except redis.RedisError as e:
            log_event("session_clear_error", level="WARNING", error=str(e))

    def ping(self) -> bool:
        if self.client is None:
            return False
        try:
            return bool(self.client.ping())
        except redis.RedisError:
            return False
