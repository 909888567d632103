"""Document persistence for localization data.

Provides the DocumentStore protocol, its in-memory and DynamoDB backends and
the shared query dialect (filters, updates, sorting, grouping).
"""

from infrastructure.persistence.factory import create_document_store
from infrastructure.persistence.memory import InMemoryDocumentStore
from infrastructure.persistence.store import (
    BulkItemOutcome,
    BulkUpdate,
    BulkWriteResult,
    DocumentStore,
    DocumentStoreError,
    DuplicateDocumentError,
)

__all__ = [
    "BulkItemOutcome",
    "BulkUpdate",
    "BulkWriteResult",
    "DocumentStore",
    "DocumentStoreError",
    "DuplicateDocumentError",
    "InMemoryDocumentStore",
    "create_document_store",
]
