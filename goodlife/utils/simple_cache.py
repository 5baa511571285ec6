import time
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple


class TTLCache:
    """Very small in-process TTL cache; expired entries are dropped on read."""
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._store: Dict[str, Tuple[Any, float]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            item = self._store.get(key)
            if not item:
                return None
            value, expires_at = item
            if expires_at <= self._clock():
                del self._store[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl_seconds: int = 60) -> None:
        expires_at = self._clock() + max(1, int(ttl_seconds))
        with self._lock:
            self._store[key] = (value, expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)


def domain_collection_key(plan_id: Any) -> str:
    """Cache key of a plan's domain collection (``GET /plans/{id}/domains``)."""
    return f"plans:{plan_id}:domains"


class DomainCollectionCache:
    """Server copies of each plan's domain plans.

    Values go in and come out as private copies, so callers may mutate what
    they get without touching the cached collection. Every ``invalidate`` bumps
    the plan's generation; a ``put`` tagged with an older generation is a read
    that started before the invalidation and is dropped.
    """

    def __init__(self, ttl_seconds: int = 60, cache: Optional[TTLCache] = None):
        self.ttl_seconds = ttl_seconds
        self._cache = cache or TTLCache()
        self._generations: Dict[Any, int] = {}
        self._lock = threading.Lock()

    def generation(self, plan_id: Any) -> int:
        with self._lock:
            return self._generations.get(plan_id, 0)

    def get(self, plan_id: Any) -> Optional[List[Any]]:
        cached = self._cache.get(domain_collection_key(plan_id))
        if cached is None:
            return None
        return [item.copy() for item in cached]

    def put(self, plan_id: Any, domain_plans: List[Any], generation: Optional[int] = None) -> bool:
        """Store ``domain_plans``; False when ``generation`` is stale."""
        with self._lock:
            if generation is not None and generation != self._generations.get(plan_id, 0):
                return False
            self._cache.set(domain_collection_key(plan_id), [item.copy() for item in domain_plans], self.ttl_seconds)
        return True

    def invalidate(self, plan_id: Any) -> None:
        with self._lock:
            self._generations[plan_id] = self._generations.get(plan_id, 0) + 1
            self._cache.delete(domain_collection_key(plan_id))
