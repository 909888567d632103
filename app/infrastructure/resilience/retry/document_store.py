"""Document-store-backed retry store for multi-instance deployments.

Records live in a document store collection so that every instance sees the
same queue when the DynamoDB persistence backend is selected:

Collection ``work_items``:
    id: dedup key when present, else a random hex id
    status: ACTIVE
    next_retry_ts / claim_expires_ts: epoch seconds used by fetch and claim
    claim_worker: worker currently holding the lease

Collection ``work_items_dlq`` holds dead-lettered records.

Claims are compare-and-set updates on ``claim_expires_ts``, so two workers
can never hold the same record.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from infrastructure.logging import get_module_logger
from infrastructure.persistence import DocumentStore, DuplicateDocumentError
from infrastructure.resilience.retry.config import RetryConfig
from infrastructure.resilience.retry.models import RetryRecord

logger = get_module_logger()

WORK_ITEMS = "work_items"
WORK_ITEMS_DLQ = "work_items_dlq"


def _ts(value: datetime) -> float:
    return value.timestamp()


class DocumentRetryStore:
    """RetryStore implementation on top of a ``DocumentStore``.

    Args:
        document_store: Backend holding the queue collections
        config: Retry configuration (backoff, max attempts, etc.)
    """

    def __init__(self, document_store: DocumentStore, config: RetryConfig | None = None):
        self.documents = document_store
        self.config = config or RetryConfig()
        logger.info(
            "document_retry_store_initialized",
            max_attempts=self.config.max_attempts,
            batch_size=self.config.batch_size,
        )

    async def save(self, record: RetryRecord) -> str:
        now = datetime.now(timezone.utc)
        record.id = record.dedup_key or uuid.uuid4().hex
        record.attempts = 0
        record.created_at = now
        record.updated_at = now
        record.next_retry_at = now

        doc = record.to_document()
        doc.update(
            status="ACTIVE",
            next_retry_ts=_ts(now),
            claim_expires_ts=0,
            claim_worker=None,
        )
        try:
            await self.documents.insert(WORK_ITEMS, doc)
        except DuplicateDocumentError:
            logger.debug("retry_record_deduplicated", record_id=record.id)
            return record.id

        logger.info(
            "retry_record_saved",
            record_id=record.id,
            operation_type=record.operation_type,
        )
        return record.id

    async def find_active(self, dedup_key: str) -> Optional[RetryRecord]:
        doc = await self.documents.get(WORK_ITEMS, dedup_key)
        return RetryRecord.from_document(doc) if doc else None

    async def fetch_due(self, limit: int = 100) -> List[RetryRecord]:
        now = _ts(datetime.now(timezone.utc))
        docs = await self.documents.find(
            WORK_ITEMS,
            {
                "status": "ACTIVE",
                "next_retry_ts": {"$lte": now},
                "claim_expires_ts": {"$lte": now},
            },
            sort=[("priority", -1), ("next_retry_ts", 1), ("created_at", 1)],
            limit=limit,
        )
        logger.debug("fetched_due_retry_records", count=len(docs))
        return [RetryRecord.from_document(doc) for doc in docs]

    async def claim_record(self, record_id: str, worker_id: str, lease_seconds: int) -> bool:
        now = datetime.now(timezone.utc)
        claimed = await self.documents.update(
            WORK_ITEMS,
            record_id,
            {
                "claim_worker": worker_id,
                "claim_expires_ts": _ts(now + timedelta(seconds=lease_seconds)),
            },
            expected={"status": "ACTIVE", "claim_expires_ts": {"$lte": _ts(now)}},
        )
        if claimed is None:
            logger.debug("retry_claim_failed", record_id=record_id, worker=worker_id)
            return False
        logger.debug("retry_record_claimed", record_id=record_id, worker=worker_id)
        return True

    async def mark_success(self, record_id: str) -> None:
        if await self.documents.delete(WORK_ITEMS, record_id):
            logger.info("retry_success", record_id=record_id)

    async def mark_permanent_failure(self, record_id: str, reason: str) -> None:
        doc = await self.documents.get(WORK_ITEMS, record_id)
        if doc is None:
            return
        doc.update(
            id=uuid.uuid4().hex,
            record_id=record_id,
            status="DLQ",
            last_error=reason,
            updated_at=datetime.now(timezone.utc).isoformat(),
        )
        await self.documents.insert(WORK_ITEMS_DLQ, doc)
        await self.documents.delete(WORK_ITEMS, record_id)
        logger.warning(
            "retry_permanent_failure",
            record_id=record_id,
            operation_type=doc.get("operation_type"),
            attempts=doc.get("attempts"),
            reason=reason,
        )

    async def increment_attempt(
        self,
        record_id: str,
        last_error: str | None = None,
        retry_after: int | None = None,
    ) -> None:
        now = datetime.now(timezone.utc)
        doc = await self.documents.update(
            WORK_ITEMS,
            record_id,
            {
                "$inc": {"attempts": 1},
                "$set": {"last_error": last_error, "updated_at": now.isoformat()},
            },
        )
        if doc is None:
            logger.warning("retry_increment_failed_not_found", record_id=record_id)
            return

        attempts = doc["attempts"]
        if attempts >= self.config.max_attempts:
            await self.mark_permanent_failure(
                record_id,
                f"Max retries ({self.config.max_attempts}) exceeded: {last_error}",
            )
            return

        delay = self.config.delay_for(attempts, retry_after)
        next_retry_at = now + timedelta(seconds=delay)
        await self.documents.update(
            WORK_ITEMS,
            record_id,
            {
                "next_retry_at": next_retry_at.isoformat(),
                "next_retry_ts": _ts(next_retry_at),
                "claim_expires_ts": 0,
                "claim_worker": None,
            },
        )
        logger.info(
            "retry_scheduled",
            record_id=record_id,
            attempts=attempts,
            max_attempts=self.config.max_attempts,
            next_retry_in_seconds=delay,
        )

    async def get_dlq_entries(self) -> List[RetryRecord]:
        docs = await self.documents.find(WORK_ITEMS_DLQ, sort=[("updated_at", 1)])
        return [RetryRecord.from_document(doc) for doc in docs]

    async def get_stats(self) -> dict:
        now = _ts(datetime.now(timezone.utc))
        return {
            "active_records": await self.documents.count(WORK_ITEMS),
            "claimed_records": await self.documents.count(
                WORK_ITEMS, {"claim_expires_ts": {"$gt": now}}
            ),
            "dlq_records": await self.documents.count(WORK_ITEMS_DLQ),
        }
