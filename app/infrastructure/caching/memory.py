"""In-memory TTL cache implementation."""

import copy
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

from infrastructure.caching.cache import Cache
from infrastructure.logging import get_module_logger

logger = get_module_logger()


class InMemoryTTLCache(Cache):
    """Dict-backed cache with per-entry expiry and an optional size bound.

    Values are deep-copied on the way in and out. When ``max_entries`` is
    reached the entry closest to expiry is evicted.

    Args:
        name: Cache name used in log events
        default_ttl_seconds: TTL applied when ``set`` gets none
        max_entries: Optional upper bound on the number of entries
    """

    def __init__(
        self,
        name: str,
        default_ttl_seconds: float = 60.0,
        max_entries: Optional[int] = None,
    ):
        self.name = name
        self.default_ttl_seconds = default_ttl_seconds
        self.max_entries = max_entries
        self._entries: Dict[str, Tuple[datetime, Any]] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[Any]:
        now = datetime.now(timezone.utc)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            expires_at, value = entry
            if expires_at <= now:
                del self._entries[key]
                self._misses += 1
                return None
            self._hits += 1
            return copy.deepcopy(value)

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        if ttl <= 0:
            return
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl)
        with self._lock:
            if (
                self.max_entries
                and key not in self._entries
                and len(self._entries) >= self.max_entries
            ):
                oldest = min(self._entries, key=lambda k: self._entries[k][0])
                del self._entries[oldest]
            self._entries[key] = (expires_at, copy.deepcopy(value))

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def invalidate_prefix(self, prefix: str) -> int:
        with self._lock:
            keys = [k for k in self._entries if k.startswith(prefix)]
            for key in keys:
                del self._entries[key]
        if keys:
            logger.debug("cache_invalidated", cache=self.name, prefix=prefix, count=len(keys))
        return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "backend": "memory",
                "name": self.name,
                "entries": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "default_ttl_seconds": self.default_ttl_seconds,
            }
