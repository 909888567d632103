"""Cache key builder for consistent key generation."""

import hashlib
from typing import Any


class CacheKeyBuilder:
    """Build deterministic cache keys.

    Example:
        >>> builder = CacheKeyBuilder(namespace="provider_translation")
        >>> builder.build("EN", "FR", text="Sea view room")
        'provider_translation:EN:FR:5f0c...'
    """

    def __init__(self, namespace: str):
        self.namespace = namespace

    def prefix(self, *parts: Any) -> str:
        """Key prefix for ``parts`` (usable with ``invalidate_prefix``)."""
        return ":".join([self.namespace, *(str(p) for p in parts)]) + ":"

    def build(self, *parts: Any, **hashed: Any) -> str:
        """Build a key from plain ``parts`` and a sha256 digest of ``hashed``.

        Plain parts stay readable in the key; the keyword components (which
        may be long free text) are hashed.
        """
        digest_source = "|".join(f"{k}={v}" for k, v in sorted(hashed.items()))
        digest = hashlib.sha256(digest_source.encode("utf-8")).hexdigest()
        return f"{self.prefix(*parts)}{digest}"
