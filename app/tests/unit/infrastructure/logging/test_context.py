"""Unit tests for scoped logging context."""

import pytest
import structlog

from infrastructure.logging import (
    bind_request_context,
    bind_work_item_context,
    get_correlation_id,
)


@pytest.fixture(autouse=True)
def clean_contextvars():
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()


@pytest.mark.unit
class TestBindRequestContext:
    """Tests for bind_request_context."""

    def test_binds_and_unbinds(self):
        with bind_request_context(correlation_id="req-1", user_id="u1", request_method="GET"):
            bound = structlog.contextvars.get_contextvars()
            assert bound == {"correlation_id": "req-1", "user_id": "u1", "request_method": "GET"}

        assert structlog.contextvars.get_contextvars() == {}

    def test_generates_correlation_id(self):
        with bind_request_context():
            assert get_correlation_id()

        assert get_correlation_id() is None


@pytest.mark.unit
class TestBindWorkItemContext:
    """Tests for bind_work_item_context."""

    def test_record_id_is_correlation_id(self):
        with bind_work_item_context("rec-1", "localization.auto_translate", "room_type|rt-1|name|FR"):
            bound = structlog.contextvars.get_contextvars()

        assert bound == {
            "correlation_id": "rec-1",
            "operation_type": "localization.auto_translate",
            "work_key": "room_type|rt-1|name|FR",
        }

    def test_restores_enclosing_correlation_id(self):
        with bind_request_context(correlation_id="req-1"):
            with bind_work_item_context("rec-1", "localization.auto_translate"):
                assert get_correlation_id() == "rec-1"
            assert get_correlation_id() == "req-1"
