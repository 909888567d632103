"""Factory for creating retry stores based on configuration."""

from typing import Optional

import structlog
from infrastructure.persistence import DocumentStore
from infrastructure.resilience.retry.config import RetryConfig
from infrastructure.resilience.retry.document_store import DocumentRetryStore
from infrastructure.resilience.retry.store import InMemoryRetryStore, RetryStore

logger = structlog.get_logger()


def create_retry_store(
    config: RetryConfig,
    backend: str = "memory",
    document_store: Optional[DocumentStore] = None,
) -> RetryStore:
    """Create the retry store for ``backend``.

    Args:
        config: Retry configuration (backoff, max attempts, etc.)
        backend: 'memory' or 'document' (usually ``settings.retry.backend``)
        document_store: Required for the 'document' backend

    Raises:
        ValueError: If the backend is unknown or misconfigured
    """
    if backend == "memory":
        logger.info("creating_in_memory_retry_store")
        return InMemoryRetryStore(config)

    if backend == "document":
        if document_store is None:
            raise ValueError("The 'document' retry backend requires a document store")
        logger.info("creating_document_retry_store")
        return DocumentRetryStore(document_store, config)

    raise ValueError(f"Unknown retry backend: {backend}. Supported: memory, document")
