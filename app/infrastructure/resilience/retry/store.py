"""Work-queue retry record storage.

Storage interfaces and implementations for retry records. Stores are
asynchronous so that durable backends can suspend on I/O; the in-memory
store guards its state with an asyncio lock.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Protocol

from infrastructure.logging import get_module_logger
from infrastructure.resilience.retry.config import RetryConfig
from infrastructure.resilience.retry.models import RetryRecord

logger = get_module_logger()


class RetryStore(Protocol):
    """Storage interface for retry records.

    Implementations must provide atomic claim semantics for workers to prevent
    duplicate processing.

    Methods:
        save: Persist a record (or return the queued duplicate's id)
        find_active: Look up a queued record by dedup key
        fetch_due: Return records that are due (not claimed, next_retry_at past)
        claim_record: Attempt to claim a record for processing
        mark_success: Remove a processed record from the queue
        mark_permanent_failure: Move a record to the dead letter queue
        increment_attempt: Increment attempts and reschedule (or dead-letter)
    """

    async def save(self, record: RetryRecord) -> str:
        """Persist a new retry record and return its ID.

        When ``record.dedup_key`` matches a record still in the queue, nothing
        is written and the existing ID is returned.
        """
        ...

    async def find_active(self, dedup_key: str) -> Optional[RetryRecord]:
        ...

    async def fetch_due(self, limit: int = 100) -> List[RetryRecord]:
        """Return up to ``limit`` due records, highest priority first."""
        ...

    async def claim_record(self, record_id: str, worker_id: str, lease_seconds: int) -> bool:
        """Attempt to claim a record; False if another worker holds it."""
        ...

    async def mark_success(self, record_id: str) -> None:
        ...

    async def mark_permanent_failure(self, record_id: str, reason: str) -> None:
        ...

    async def increment_attempt(
        self,
        record_id: str,
        last_error: str | None = None,
        retry_after: int | None = None,
    ) -> None:
        """Increment the attempt counter and reschedule with backoff.

        Releases the claim. Once max attempts are reached the record moves to
        the dead letter queue.
        """
        ...

    async def get_dlq_entries(self) -> List[RetryRecord]:
        ...

    async def get_stats(self) -> dict:
        ...


class InMemoryRetryStore:
    """In-memory implementation of RetryStore with exponential backoff.

    Suitable for single-instance deployments, development and tests. Use the
    document-backed store for multi-instance deployments.

    Attributes:
        config: RetryConfig controlling retry behavior
    """

    def __init__(self, config: RetryConfig | None = None) -> None:
        self._store: Dict[str, RetryRecord] = {}
        self._claims: Dict[str, Dict[str, Any]] = {}
        self._dlq: Dict[str, RetryRecord] = {}
        self._dedup: Dict[str, str] = {}
        self._lock = asyncio.Lock()
        self._next_id = 1
        self.config = config or RetryConfig()

    async def save(self, record: RetryRecord) -> str:
        async with self._lock:
            if record.dedup_key and record.dedup_key in self._dedup:
                existing_id = self._dedup[record.dedup_key]
                logger.debug(
                    "retry_record_deduplicated",
                    record_id=existing_id,
                    dedup_key=record.dedup_key,
                )
                return existing_id

            record_id = str(self._next_id)
            self._next_id += 1
            now = datetime.now(timezone.utc)
            record.id = record_id
            record.attempts = 0
            record.created_at = now
            record.updated_at = now
            record.next_retry_at = now
            self._store[record_id] = record
            if record.dedup_key:
                self._dedup[record.dedup_key] = record_id

            logger.info(
                "retry_record_saved",
                record_id=record_id,
                operation_type=record.operation_type,
            )
            return record_id

    async def find_active(self, dedup_key: str) -> Optional[RetryRecord]:
        async with self._lock:
            record_id = self._dedup.get(dedup_key)
            return self._store.get(record_id) if record_id else None

    async def fetch_due(self, limit: int = 100) -> List[RetryRecord]:
        async with self._lock:
            now = datetime.now(timezone.utc)
            due = []
            for record_id, record in self._store.items():
                claim = self._claims.get(record_id)
                if claim:
                    if claim["expires_at"] > now:
                        continue
                    del self._claims[record_id]
                    logger.debug(
                        "retry_claim_expired",
                        record_id=record_id,
                        worker=claim["worker"],
                    )
                if record.next_retry_at and record.next_retry_at <= now:
                    due.append(record)

            due.sort(key=lambda r: (-r.priority, r.next_retry_at, r.created_at))
            logger.debug(
                "fetched_due_retry_records",
                count=min(len(due), limit),
                total_store_size=len(self._store),
            )
            return due[:limit]

    async def claim_record(self, record_id: str, worker_id: str, lease_seconds: int) -> bool:
        async with self._lock:
            if record_id not in self._store:
                logger.warning("retry_claim_failed_not_found", record_id=record_id)
                return False

            now = datetime.now(timezone.utc)
            claim = self._claims.get(record_id)
            if claim and claim["expires_at"] > now:
                logger.debug(
                    "retry_claim_failed_already_claimed",
                    record_id=record_id,
                    current_worker=claim["worker"],
                )
                return False

            self._claims[record_id] = {
                "worker": worker_id,
                "expires_at": now + timedelta(seconds=lease_seconds),
            }
            logger.debug("retry_record_claimed", record_id=record_id, worker=worker_id)
            return True

    def _forget_locked(self, record_id: str) -> Optional[RetryRecord]:
        record = self._store.pop(record_id, None)
        self._claims.pop(record_id, None)
        if record and record.dedup_key and self._dedup.get(record.dedup_key) == record_id:
            del self._dedup[record.dedup_key]
        return record

    async def mark_success(self, record_id: str) -> None:
        async with self._lock:
            record = self._forget_locked(record_id)
            if record:
                logger.info(
                    "retry_success",
                    record_id=record_id,
                    operation_type=record.operation_type,
                    attempts=record.attempts,
                )

    async def mark_permanent_failure(self, record_id: str, reason: str) -> None:
        async with self._lock:
            self._mark_permanent_failure_locked(record_id, reason)

    def _mark_permanent_failure_locked(self, record_id: str, reason: str) -> None:
        record = self._forget_locked(record_id)
        if not record:
            return
        record.last_error = reason
        record.updated_at = datetime.now(timezone.utc)
        self._dlq[record_id] = record
        logger.warning(
            "retry_permanent_failure",
            record_id=record_id,
            operation_type=record.operation_type,
            attempts=record.attempts,
            reason=reason,
        )

    async def increment_attempt(
        self,
        record_id: str,
        last_error: str | None = None,
        retry_after: int | None = None,
    ) -> None:
        async with self._lock:
            record = self._store.get(record_id)
            if not record:
                logger.warning("retry_increment_failed_not_found", record_id=record_id)
                return

            record.attempts += 1
            record.last_error = last_error
            record.updated_at = datetime.now(timezone.utc)

            if record.attempts >= self.config.max_attempts:
                self._mark_permanent_failure_locked(
                    record_id,
                    f"Max retries ({self.config.max_attempts}) exceeded: {last_error}",
                )
                return

            delay = self.config.delay_for(record.attempts, retry_after)
            record.next_retry_at = record.updated_at + timedelta(seconds=delay)
            self._claims.pop(record_id, None)
            logger.info(
                "retry_scheduled",
                record_id=record_id,
                operation_type=record.operation_type,
                attempts=record.attempts,
                max_attempts=self.config.max_attempts,
                next_retry_in_seconds=delay,
            )

    async def get_dlq_entries(self) -> List[RetryRecord]:
        async with self._lock:
            return list(self._dlq.values())

    async def get_stats(self) -> dict:
        async with self._lock:
            return {
                "active_records": len(self._store),
                "claimed_records": len(self._claims),
                "dlq_records": len(self._dlq),
            }
