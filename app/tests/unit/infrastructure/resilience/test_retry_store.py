"""Unit tests for the retry stores.

Every test runs against both the in-memory store and the document-backed
store through the parametrized ``retry_store_factory`` fixture.
"""

import pytest

from infrastructure.configuration import RetrySettings
from infrastructure.persistence import InMemoryDocumentStore
from infrastructure.resilience import (
    DocumentRetryStore,
    InMemoryRetryStore,
    RetryConfig,
    RetryRecord,
    create_retry_store,
)


@pytest.mark.unit
class TestRetryConfig:
    """Tests for RetryConfig."""

    def test_defaults(self):
        config = RetryConfig()
        assert config.max_attempts == 5
        assert config.base_delay_seconds == 30
        assert config.max_delay_seconds == 1800
        assert config.batch_size == 10
        assert config.claim_lease_seconds == 120

    @pytest.mark.parametrize(
        "overrides",
        [
            {"max_attempts": 0},
            {"base_delay_seconds": 0},
            {"base_delay_seconds": 10, "max_delay_seconds": 5},
            {"batch_size": 0},
            {"claim_lease_seconds": 0},
        ],
    )
    def test_invalid_values_raise(self, overrides):
        with pytest.raises(ValueError):
            RetryConfig(**overrides)

    def test_delay_is_exponential_and_capped(self):
        config = RetryConfig()

        assert config.delay_for(1) == 60
        assert config.delay_for(2) == 120
        assert config.delay_for(10) == 1800

    def test_retry_after_extends_delay(self):
        assert RetryConfig().delay_for(0, retry_after=120) == 120
        assert RetryConfig().delay_for(2, retry_after=5) == 120

    def test_from_settings(self):
        settings = RetrySettings(RETRY_MAX_ATTEMPTS=2, RETRY_BATCH_SIZE=4)

        config = RetryConfig.from_settings(settings)

        assert config.max_attempts == 2
        assert config.batch_size == 4


@pytest.mark.unit
class TestRetryRecord:
    """Tests for RetryRecord validation and serialization."""

    def test_requires_operation_type(self):
        with pytest.raises(ValueError):
            RetryRecord(operation_type="", payload={})

    def test_requires_dict_payload(self):
        with pytest.raises(ValueError):
            RetryRecord(operation_type="x", payload=["a"])

    def test_document_round_trip_keeps_fields(self, retry_record_factory):
        record = retry_record_factory(priority=3)
        record.id = "abc"
        record.attempts = 2

        restored = RetryRecord.from_document(record.to_document())

        assert restored.id == "abc"
        assert restored.attempts == 2
        assert restored.priority == 3
        assert restored.created_at == record.created_at
        assert restored.dedup_key == record.dedup_key


@pytest.mark.unit
class TestRetryStores:
    """Behaviour shared by every RetryStore implementation."""

    async def test_save_then_fetch_due(self, retry_store_factory, retry_config_factory, retry_record_factory):
        store = retry_store_factory(retry_config_factory())

        record_id = await store.save(retry_record_factory())
        due = await store.fetch_due()

        assert [r.id for r in due] == [record_id]
        assert due[0].attempts == 0

    async def test_duplicate_dedup_key_returns_existing_id(
        self, retry_store_factory, retry_config_factory, retry_record_factory
    ):
        store = retry_store_factory(retry_config_factory())

        first = await store.save(retry_record_factory())
        second = await store.save(retry_record_factory())

        assert first == second
        assert (await store.get_stats())["active_records"] == 1
        assert (await store.find_active(retry_record_factory().dedup_key)).id == first

    async def test_records_without_dedup_key_are_distinct(
        self, retry_store_factory, retry_config_factory, retry_record_factory
    ):
        store = retry_store_factory(retry_config_factory())

        first = await store.save(retry_record_factory(dedup=False))
        second = await store.save(retry_record_factory(dedup=False))

        assert first != second

    async def test_fetch_due_orders_by_priority(
        self, retry_store_factory, retry_config_factory, retry_record_factory
    ):
        store = retry_store_factory(retry_config_factory())
        low = await store.save(retry_record_factory("DE", priority=1))
        urgent = await store.save(retry_record_factory("FR", priority=4))

        due = await store.fetch_due()

        assert [r.id for r in due] == [urgent, low]

    async def test_claim_is_exclusive(self, retry_store_factory, retry_config_factory, retry_record_factory):
        store = retry_store_factory(retry_config_factory())
        record_id = await store.save(retry_record_factory())

        assert await store.claim_record(record_id, "worker-a", 30) is True
        assert await store.claim_record(record_id, "worker-b", 30) is False
        assert await store.fetch_due() == []
        assert (await store.get_stats())["claimed_records"] == 1

    async def test_increment_attempt_reschedules(
        self, retry_store_factory, retry_config_factory, retry_record_factory
    ):
        store = retry_store_factory(retry_config_factory())
        record_id = await store.save(retry_record_factory())
        await store.claim_record(record_id, "worker-a", 30)

        await store.increment_attempt(record_id, last_error="timeout")

        assert await store.fetch_due() == []
        assert (await store.get_stats())["active_records"] == 1

    async def test_max_attempts_moves_to_dlq(
        self, retry_store_factory, retry_config_factory, retry_record_factory
    ):
        store = retry_store_factory(retry_config_factory(max_attempts=2))
        record_id = await store.save(retry_record_factory())

        await store.increment_attempt(record_id, last_error="timeout")
        await store.increment_attempt(record_id, last_error="timeout")

        dlq = await store.get_dlq_entries()
        assert len(dlq) == 1
        assert dlq[0].last_error == "Max retries (2) exceeded: timeout"
        assert await store.get_stats() == {
            "active_records": 0,
            "claimed_records": 0,
            "dlq_records": 1,
        }

    async def test_mark_success_frees_dedup_key(
        self, retry_store_factory, retry_config_factory, retry_record_factory
    ):
        store = retry_store_factory(retry_config_factory())
        record_id = await store.save(retry_record_factory())

        await store.mark_success(record_id)

        assert await store.find_active(retry_record_factory().dedup_key) is None
        assert await store.save(retry_record_factory())
        assert (await store.get_stats())["active_records"] == 1

    async def test_mark_permanent_failure(
        self, retry_store_factory, retry_config_factory, retry_record_factory
    ):
        store = retry_store_factory(retry_config_factory())
        record_id = await store.save(retry_record_factory())

        await store.mark_permanent_failure(record_id, "validation: empty text")

        dlq = await store.get_dlq_entries()
        assert dlq[0].last_error == "validation: empty text"
        assert dlq[0].payload["target_language"] == "FR"


@pytest.mark.unit
class TestCreateRetryStore:
    """Tests for create_retry_store()."""

    def test_memory_backend(self):
        assert isinstance(create_retry_store(RetryConfig()), InMemoryRetryStore)

    def test_document_backend(self):
        store = create_retry_store(RetryConfig(), "document", document_store=InMemoryDocumentStore())

        assert isinstance(store, DocumentRetryStore)

    def test_document_backend_requires_store(self):
        with pytest.raises(ValueError):
            create_retry_store(RetryConfig(), "document")

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_retry_store(RetryConfig(), "redis")
