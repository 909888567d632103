"""Test data factories for deterministic test data generation."""

from tests.factories.localization import (
    FailingProvider,
    FakeProvider,
    SlowProvider,
    make_language_payload,
    make_room_type,
    make_translation_row,
)

__all__ = [
    "FailingProvider",
    "FakeProvider",
    "SlowProvider",
    "make_language_payload",
    "make_room_type",
    "make_translation_row",
]
