"""Retry worker and processor protocol.

The worker owns the mechanics (fetch, claim, dispatch, reschedule); the
operation itself is implemented by a RetryProcessor.
"""

from typing import Optional, Protocol

import structlog
from infrastructure.resilience.retry.config import RetryConfig
from infrastructure.resilience.retry.models import RetryRecord, RetryResult
from infrastructure.resilience.retry.store import RetryStore

logger = structlog.get_logger()


class RetryProcessor(Protocol):
    """Protocol for module-specific retry processing logic.

    Example:
        class AutoTranslateProcessor:
            async def process_record(self, record: RetryRecord) -> RetryResult:
                result = await gateway.translate(...)
                if result.is_success:
                    return RetryResult.SUCCESS
                if result.is_retryable:
                    return RetryResult.RETRY
                return RetryResult.PERMANENT_FAILURE
    """

    async def process_record(self, record: RetryRecord) -> RetryResult:
        ...


class RetryWorker:
    """Worker processing batches of retry records.

    Attributes:
        store: RetryStore holding the records
        processor: RetryProcessor for module-specific processing logic
        config: RetryConfig controlling batch size and claim lease
        worker_id: Identifier for this worker instance
    """

    def __init__(
        self,
        store: RetryStore,
        processor: RetryProcessor,
        config: RetryConfig | None = None,
        worker_id: str = "retry-worker-1",
    ) -> None:
        self.store = store
        self.processor = processor
        self.config = config or RetryConfig()
        self.worker_id = worker_id
        self.log = logger.bind(component="retry_worker", worker_id=worker_id)

    async def process_batch(self) -> dict:
        """Process one batch of due records.

        Returns:
            Dictionary with processing statistics:
                - processed: Number of records processed
                - successful: Number of successful records
                - retried: Number of records re-scheduled for retry
                - permanent_failures: Number moved to DLQ
                - skipped: Number that couldn't be claimed
        """
        stats = {
            "processed": 0,
            "successful": 0,
            "retried": 0,
            "permanent_failures": 0,
            "skipped": 0,
        }
        records = await self.store.fetch_due(limit=self.config.batch_size)
        if not records:
            self.log.debug("retry_batch_no_records")
            return stats

        self.log.info("retry_batch_start", record_count=len(records))

        for record in records:
            if not await self.store.claim_record(
                record.id,  # type: ignore
                self.worker_id,
                self.config.claim_lease_seconds,
            ):
                self.log.debug("retry_record_skipped_claim_failed", record_id=record.id)
                stats["skipped"] += 1
                continue

            result = await self._process_record(record)
            stats["processed"] += 1
            if result == RetryResult.SUCCESS:
                stats["successful"] += 1
            elif result == RetryResult.RETRY:
                stats["retried"] += 1
            elif result == RetryResult.PERMANENT_FAILURE:
                stats["permanent_failures"] += 1

        self.log.info("retry_batch_complete", **stats)
        return stats

    async def _process_record(self, record: RetryRecord) -> RetryResult:
        self.log.info(
            "retry_record_processing",
            record_id=record.id,
            operation_type=record.operation_type,
            attempt=record.attempts + 1,
        )

        retry_after: Optional[int] = None
        try:
            result = await self.processor.process_record(record)
            retry_after = record.retry_after
        except Exception as e:
            self.log.error(
                "retry_processor_exception",
                record_id=record.id,
                operation_type=record.operation_type,
                error=str(e),
                exc_info=True,
            )
            await self.store.increment_attempt(
                record.id, last_error=f"Processor exception: {str(e)}"  # type: ignore
            )
            return RetryResult.RETRY

        if result == RetryResult.SUCCESS:
            await self.store.mark_success(record.id)  # type: ignore
            self.log.info(
                "retry_record_succeeded",
                record_id=record.id,
                operation_type=record.operation_type,
            )
        elif result == RetryResult.PERMANENT_FAILURE:
            await self.store.mark_permanent_failure(
                record.id,  # type: ignore
                reason=record.last_error or "Processor returned permanent failure",
            )
            self.log.warning(
                "retry_record_permanent_failure",
                record_id=record.id,
                operation_type=record.operation_type,
            )
        else:
            await self.store.increment_attempt(
                record.id,  # type: ignore
                last_error=record.last_error or "Operation failed, will retry",
                retry_after=retry_after,
            )
            self.log.info(
                "retry_record_rescheduled",
                record_id=record.id,
                operation_type=record.operation_type,
                attempts=record.attempts + 1,
            )
        return result
