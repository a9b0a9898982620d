"""In-memory, time-expiring cache for aggregated search responses."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from .models import CacheEntry, SearchFilters

logger = logging.getLogger("price_search.cache")


def build_cache_key(query: str, filters: Optional[SearchFilters] = None) -> str:
    """Key a search by its normalized query and canonical filters."""
    normalized_query = query.strip().lower()
    fragment = filters.cache_key_fragment() if filters is not None else ""
    return f"search:{normalized_query}:{fragment}"


class CacheService:
    """Keyed store whose entries expire ``ttl`` seconds after being set.

    Expiry happens lazily on ``get``/``has`` and eagerly through a timer
    scheduled by ``set``. A timer only removes the exact entry it was
    scheduled for, so re-setting a key is never undone by an older timer.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        eager_eviction: bool = True,
    ) -> None:
        self._clock = clock
        self._eager_eviction = eager_eviction
        self._entries: Dict[str, CacheEntry] = {}
        self._timers: Dict[str, threading.Timer] = {}
        self._lock = threading.RLock()

    def set(self, key: str, value: Any, ttl: float) -> None:
        entry = CacheEntry(data=value, created_at=self._clock(), ttl=ttl)
        with self._lock:
            self._entries[key] = entry
            self._cancel_timer(key)
            if self._eager_eviction:
                timer = threading.Timer(ttl, self._evict, args=(key, entry))
                timer.daemon = True
                self._timers[key] = timer
                timer.start()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._is_stale(entry):
                self._remove(key)
                return None
            return entry.data

    def has(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if self._is_stale(entry):
                self._remove(key)
                return False
            return True

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._remove(key)

    def clear(self) -> None:
        with self._lock:
            for timer in self._timers.values():
                timer.cancel()
            self._timers.clear()
            self._entries.clear()

    def stats(self) -> Dict[str, Any]:
        """Return the number of live entries and their keys."""
        with self._lock:
            self._cleanup()
            keys: List[str] = list(self._entries.keys())
            return {"size": len(keys), "keys": keys}

    def _is_stale(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.created_at > entry.ttl

    def _evict(self, key: str, entry: CacheEntry) -> None:
        with self._lock:
            if self._entries.get(key) is entry:
                del self._entries[key]
                self._timers.pop(key, None)
                logger.debug("Entrada de cache expirada: %s", key)

    def _remove(self, key: str) -> bool:
        self._cancel_timer(key)
        return self._entries.pop(key, None) is not None

    def _cancel_timer(self, key: str) -> None:
        timer = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()

    def _cleanup(self) -> None:
        for key in [k for k, e in self._entries.items() if self._is_stale(e)]:
            self._remove(key)
