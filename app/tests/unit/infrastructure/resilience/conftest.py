"""Fixtures for infrastructure.resilience tests."""

import pytest

from infrastructure.persistence import InMemoryDocumentStore
from infrastructure.resilience import (
    DocumentRetryStore,
    InMemoryRetryStore,
    RetryConfig,
    RetryRecord,
    RetryResult,
)


@pytest.fixture
def retry_config_factory():
    """Factory for RetryConfig with small delays."""

    def _factory(**overrides):
        values = {
            "max_attempts": 3,
            "base_delay_seconds": 1,
            "max_delay_seconds": 60,
            "batch_size": 10,
            "claim_lease_seconds": 30,
        }
        values.update(overrides)
        return RetryConfig(**values)

    return _factory


@pytest.fixture
def retry_record_factory():
    """Factory for auto-translation RetryRecords."""

    def _factory(target="FR", dedup=True, priority=0, operation_type="localization.auto_translate"):
        key = f"room_type|rt-1|name|{target}"
        return RetryRecord(
            operation_type=operation_type,
            payload={"translation_id": f"t-{target}", "target_language": target},
            dedup_key=key if dedup else None,
            priority=priority,
        )

    return _factory


@pytest.fixture(params=["memory", "document"])
def retry_store_factory(request):
    """Factory building each RetryStore implementation."""

    def _factory(config):
        if request.param == "memory":
            return InMemoryRetryStore(config)
        return DocumentRetryStore(InMemoryDocumentStore(), config)

    return _factory


class ScriptedProcessor:
    """RetryProcessor returning queued results in order."""

    def __init__(self, *results):
        self.results = list(results)
        self.seen = []

    async def process_record(self, record):
        self.seen.append(record.id)
        result = self.results.pop(0) if self.results else RetryResult.SUCCESS
        if isinstance(result, Exception):
            raise result
        if result != RetryResult.SUCCESS:
            record.last_error = "provider_unavailable: all providers failed"
        return result


@pytest.fixture
def scripted_processor():
    return ScriptedProcessor
