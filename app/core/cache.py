from threading import Lock
from time import time

from app.core.config import settings


class QuestionPoolCache:
    """Per tech stack question pools, stored as serialized question payloads."""

    def __init__(self, ttl_seconds: int = 600):
        self.ttl_seconds = ttl_seconds
        self._lock = Lock()
        self._pools: dict[str, tuple[float, list[dict]]] = {}

    def get(self, tech_stack_id: str) -> list[dict] | None:
        with self._lock:
            item = self._pools.get(tech_stack_id)
            if not item:
                return None
            expires_at, value = item
            if expires_at < time():
                del self._pools[tech_stack_id]
                return None
            return value

    def set(self, tech_stack_id: str, questions: list[dict]):
        with self._lock:
            self._pools[tech_stack_id] = (time() + self.ttl_seconds, questions)

    def invalidate(self, tech_stack_id: str):
        with self._lock:
            self._pools.pop(tech_stack_id, None)

    def clear(self):
        with self._lock:
            self._pools.clear()


question_cache = QuestionPoolCache(ttl_seconds=settings.question_cache_ttl_seconds)
