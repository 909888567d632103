"""Process-scoped caches (provider results, completeness figures)."""

from infrastructure.caching.cache import Cache
from infrastructure.caching.key_builder import CacheKeyBuilder
from infrastructure.caching.memory import InMemoryTTLCache

__all__ = ["Cache", "CacheKeyBuilder", "InMemoryTTLCache"]
