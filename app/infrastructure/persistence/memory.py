"""In-memory document store.

Process-local backend used for tests and local development. Every operation
runs under a single asyncio lock, so single-document updates, compare-and-set
and bulk batches are atomic with respect to other coroutines.
"""

import asyncio
import copy
import uuid
from typing import Any, Mapping, Optional, Sequence

from infrastructure.logging import get_module_logger
from infrastructure.persistence.query import (
    SortSpec,
    apply_update,
    group_documents,
    matches,
    sort_documents,
)
from infrastructure.persistence.store import (
    BulkItemOutcome,
    BulkUpdate,
    BulkWriteResult,
    DuplicateDocumentError,
)

logger = get_module_logger()


class InMemoryDocumentStore:
    """Dict-backed implementation of the DocumentStore protocol.

    Documents are deep-copied on the way in and out so callers can never
    mutate stored state without going through ``update``.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._lock = asyncio.Lock()

    def _collection(self, name: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(name, {})

    async def insert(self, collection: str, document: Mapping[str, Any]) -> dict[str, Any]:
        doc = copy.deepcopy(dict(document))
        doc.setdefault("id", uuid.uuid4().hex)
        async with self._lock:
            docs = self._collection(collection)
            if doc["id"] in docs:
                raise DuplicateDocumentError(collection, doc["id"])
            docs[doc["id"]] = doc
        logger.debug("document_inserted", collection=collection, doc_id=doc["id"])
        return copy.deepcopy(doc)

    async def get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        async with self._lock:
            doc = self._collection(collection).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    async def find(
        self,
        collection: str,
        query: Optional[Mapping[str, Any]] = None,
        sort: Optional[SortSpec] = None,
        limit: Optional[int] = None,
        skip: int = 0,
    ) -> list[dict[str, Any]]:
        async with self._lock:
            found = [
                copy.deepcopy(doc)
                for doc in self._collection(collection).values()
                if matches(doc, query)
            ]
        found = sort_documents(found, sort)
        if skip:
            found = found[skip:]
        if limit is not None:
            found = found[:limit]
        return found

    async def find_one(
        self,
        collection: str,
        query: Optional[Mapping[str, Any]] = None,
        sort: Optional[SortSpec] = None,
    ) -> Optional[dict[str, Any]]:
        found = await self.find(collection, query, sort=sort, limit=1)
        return found[0] if found else None

    def _update_locked(
        self,
        collection: str,
        doc_id: str,
        update: Mapping[str, Any],
        expected: Optional[Mapping[str, Any]],
    ) -> tuple[bool, bool, Optional[dict[str, Any]]]:
        docs = self._collection(collection)
        current = docs.get(doc_id)
        if current is None or not matches(current, expected):
            return False, False, None
        updated = apply_update(current, update)
        updated["id"] = doc_id
        modified = updated != current
        docs[doc_id] = updated
        return True, modified, updated

    async def update(
        self,
        collection: str,
        doc_id: str,
        update: Mapping[str, Any],
        expected: Optional[Mapping[str, Any]] = None,
    ) -> Optional[dict[str, Any]]:
        async with self._lock:
            matched, _, updated = self._update_locked(collection, doc_id, update, expected)
        if not matched:
            logger.debug(
                "document_update_not_matched",
                collection=collection,
                doc_id=doc_id,
                conditional=expected is not None,
            )
            return None
        return copy.deepcopy(updated)

    async def update_many(
        self,
        collection: str,
        query: Mapping[str, Any],
        update: Mapping[str, Any],
    ) -> int:
        modified = 0
        async with self._lock:
            docs = self._collection(collection)
            for doc_id in [d for d, doc in docs.items() if matches(doc, query)]:
                _, changed, _ = self._update_locked(collection, doc_id, update, None)
                modified += int(changed)
        return modified

    async def bulk_update(
        self, collection: str, operations: Sequence[BulkUpdate]
    ) -> BulkWriteResult:
        result = BulkWriteResult()
        async with self._lock:
            for op in operations:
                matched, modified, _ = self._update_locked(
                    collection, op.doc_id, op.update, op.expected
                )
                result.matched += int(matched)
                result.modified += int(modified)
                result.outcomes.append(
                    BulkItemOutcome(doc_id=op.doc_id, matched=matched, modified=modified)
                )
        logger.debug(
            "bulk_update_applied",
            collection=collection,
            matched=result.matched,
            modified=result.modified,
        )
        return result

    async def delete(self, collection: str, doc_id: str) -> bool:
        async with self._lock:
            return self._collection(collection).pop(doc_id, None) is not None

    async def count(self, collection: str, query: Optional[Mapping[str, Any]] = None) -> int:
        async with self._lock:
            return sum(1 for doc in self._collection(collection).values() if matches(doc, query))

    async def group_count(
        self,
        collection: str,
        query: Optional[Mapping[str, Any]],
        by: Sequence[str],
        unwind: Optional[str] = None,
        sums: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> list[dict[str, Any]]:
        async with self._lock:
            docs = [doc for doc in self._collection(collection).values() if matches(doc, query)]
            return group_documents(copy.deepcopy(docs), by, unwind=unwind, sums=sums)

    def clear(self) -> None:
        """Drop every collection (for tests)."""
        self._collections.clear()
