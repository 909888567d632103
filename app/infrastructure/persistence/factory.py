"""Factory for creating document stores based on configuration."""

from typing import TYPE_CHECKING, Optional, Sequence

from infrastructure.logging import get_module_logger
from infrastructure.persistence.dynamodb import DynamoDBDocumentStore
from infrastructure.persistence.memory import InMemoryDocumentStore
from infrastructure.persistence.store import DocumentStore

if TYPE_CHECKING:
    from infrastructure.configuration import Settings

logger = get_module_logger()


def create_document_store(
    settings: "Settings",
    backend: Optional[str] = None,
    collections: Sequence[str] = (),
) -> DocumentStore:
    """Create the document store selected by ``settings.persistence.backend``.

    Args:
        settings: Application settings
        backend: Optional backend override ('memory' or 'dynamodb')
        collections: Collections whose tables are created when
            ``PERSISTENCE_CREATE_TABLES`` is enabled

    Raises:
        ValueError: If the backend is unknown
    """
    backend = backend or settings.persistence.backend

    if backend == "memory":
        logger.info("creating_in_memory_document_store")
        return InMemoryDocumentStore()

    if backend == "dynamodb":
        store = DynamoDBDocumentStore(
            table_prefix=settings.persistence.table_prefix,
            region_name=settings.aws.AWS_REGION,
            endpoint_url=settings.aws.ENDPOINT_URL,
        )
        if settings.persistence.create_tables and collections:
            store.create_tables(collections)
        return store

    raise ValueError(f"Unknown persistence backend: {backend}. Supported: memory, dynamodb")
