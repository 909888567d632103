"""Work queue with retries for failed operations.

Architecture:
- RetryRecord: queued operation with optional de-duplication key
- RetryStore: async storage interface (in-memory and document-store backed)
- RetryWorker: batch processor (fetch, claim, dispatch, reschedule)
- RetryProcessor: protocol for module-specific processing
- RetryConfig: backoff, max attempts, batch size, claim lease

Usage:
    store = create_retry_store(RetryConfig(), backend="memory")
    await store.save(RetryRecord(operation_type="x", payload={...}, dedup_key="k"))
    worker = RetryWorker(store, MyProcessor(), config)
    await worker.process_batch()
"""

from infrastructure.resilience.retry.config import RetryConfig
from infrastructure.resilience.retry.document_store import DocumentRetryStore
from infrastructure.resilience.retry.factory import create_retry_store
from infrastructure.resilience.retry.models import RetryRecord, RetryResult
from infrastructure.resilience.retry.store import InMemoryRetryStore, RetryStore
from infrastructure.resilience.retry.worker import RetryProcessor, RetryWorker

__all__ = [
    # Models
    "RetryRecord",
    "RetryResult",
    # Configuration
    "RetryConfig",
    # Store
    "RetryStore",
    "InMemoryRetryStore",
    "DocumentRetryStore",
    # Worker
    "RetryWorker",
    "RetryProcessor",
    # Factory
    "create_retry_store",
]
