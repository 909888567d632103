"""Document store interface.

The localization services persist Language, Translation and UI translation
documents through this protocol. Backends must provide atomic single-document
updates, compare-and-set through ``expected`` filters, bulk updates that
report matched/modified counts and grouping for statistics.
"""

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol, Sequence

from infrastructure.operations import OperationResult
from infrastructure.persistence.query import SortSpec


class DocumentStoreError(Exception):
    """Raised when a backend fails for reasons unrelated to the query.

    Attributes:
        result: classified OperationResult describing the failure
    """

    def __init__(self, message: str, result: Optional[OperationResult] = None):
        super().__init__(message)
        self.result = result


class DuplicateDocumentError(DocumentStoreError):
    """Raised when inserting a document whose id already exists."""

    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"Document '{doc_id}' already exists in '{collection}'")
        self.collection = collection
        self.doc_id = doc_id


@dataclass
class BulkUpdate:
    """One operation of a bulk update batch.

    Attributes:
        doc_id: Target document id
        update: Update document (plain keys or $-operators)
        expected: Optional filter the current document must satisfy
    """

    doc_id: str
    update: Mapping[str, Any]
    expected: Optional[Mapping[str, Any]] = None


@dataclass
class BulkItemOutcome:
    doc_id: str
    matched: bool
    modified: bool
    error: Optional[str] = None


@dataclass
class BulkWriteResult:
    """Aggregate outcome of a bulk update."""

    matched: int = 0
    modified: int = 0
    outcomes: list[BulkItemOutcome] = field(default_factory=list)


class DocumentStore(Protocol):
    """Asynchronous document store used by the localization services.

    Documents are dicts carrying a string ``id``. Filters, updates and sort
    specifications use the dialect described in
    ``infrastructure.persistence.query``.
    """

    async def insert(self, collection: str, document: Mapping[str, Any]) -> dict[str, Any]:
        """Insert a document, assigning an id when missing.

        Raises:
            DuplicateDocumentError: If a document with the same id exists.
        """
        ...

    async def get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        """Return a document by id, or None."""
        ...

    async def find(
        self,
        collection: str,
        query: Optional[Mapping[str, Any]] = None,
        sort: Optional[SortSpec] = None,
        limit: Optional[int] = None,
        skip: int = 0,
    ) -> list[dict[str, Any]]:
        """Return documents matching ``query`` in ``sort`` order."""
        ...

    async def find_one(
        self,
        collection: str,
        query: Optional[Mapping[str, Any]] = None,
        sort: Optional[SortSpec] = None,
    ) -> Optional[dict[str, Any]]:
        """Return the first matching document, or None."""
        ...

    async def update(
        self,
        collection: str,
        doc_id: str,
        update: Mapping[str, Any],
        expected: Optional[Mapping[str, Any]] = None,
    ) -> Optional[dict[str, Any]]:
        """Atomically update one document.

        Returns:
            The updated document, or None when the document does not exist
            or does not satisfy ``expected`` (compare-and-set lost).
        """
        ...

    async def update_many(
        self,
        collection: str,
        query: Mapping[str, Any],
        update: Mapping[str, Any],
    ) -> int:
        """Update every matching document; returns the modified count."""
        ...

    async def bulk_update(
        self, collection: str, operations: Sequence[BulkUpdate]
    ) -> BulkWriteResult:
        """Apply several single-document updates as one batch."""
        ...

    async def delete(self, collection: str, doc_id: str) -> bool:
        """Delete a document; True when something was removed."""
        ...

    async def count(self, collection: str, query: Optional[Mapping[str, Any]] = None) -> int:
        """Count matching documents."""
        ...

    async def group_count(
        self,
        collection: str,
        query: Optional[Mapping[str, Any]],
        by: Sequence[str],
        unwind: Optional[str] = None,
        sums: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> list[dict[str, Any]]:
        """Aggregate matching documents (match, optional unwind, group, sums)."""
        ...
