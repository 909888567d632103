"""Cache abstract base class."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class Cache(ABC):
    """Abstract base class for process-scoped caches.

    Caches are best-effort: a miss only costs a recomputation, so callers
    must never depend on an entry being present.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Get a cached value, or None if missing or expired."""
        pass

    @abstractmethod
    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        """Cache ``value`` under ``key``.

        Args:
            key: Cache key.
            value: Value to cache.
            ttl_seconds: Time-to-live in seconds (implementation default if None).
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass

    @abstractmethod
    def invalidate_prefix(self, prefix: str) -> int:
        """Drop every entry whose key starts with ``prefix``; returns the count."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Clear all cached entries (for testing)."""
        pass

    @abstractmethod
    def get_stats(self) -> Dict[str, Any]:
        pass
