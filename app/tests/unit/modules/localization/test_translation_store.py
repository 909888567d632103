"""Tests for the versioned translation store."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from infrastructure.persistence import BulkUpdate, InMemoryDocumentStore
from modules.localization.domain import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
)
from modules.localization.domain.errors import ProviderTimeoutError
from modules.localization.domain.models import TRANSLATIONS
from modules.localization.translations import TranslationStore
from tests.factories.localization import make_translation_row


@pytest.fixture
def documents():
    return InMemoryDocumentStore()


@pytest.fixture
def store(documents):
    async def _source(resource_type, resource_id, field_name):
        return f"source of {field_name}"

    return TranslationStore(documents, source_resolver=_source)


@pytest.fixture
def key(store):
    return store.make_key("room_type", "rt-1", "name", "fr")


async def _approve(store, row, text="Chambre Deluxe"):
    return await store.update_row(
        row,
        {
            "translated_text": text,
            "workflow.stage": "approved",
            "quality.review_status": "approved",
        },
    )


@pytest.mark.unit
class TestKeys:
    """Tests for make_key()."""

    def test_target_language_is_normalized(self, key):
        assert key.target_language == "FR"
        assert key.dedup_key == "room_type|rt-1|name|FR"

    def test_invalid_key(self, store):
        with pytest.raises(InvalidInputError) as exc_info:
            store.make_key("room_type", "", "name", "FR")

        assert exc_info.value.field == "resource_id"


@pytest.mark.unit
class TestUpsertDraft:
    """Tests for upsert_draft()."""

    async def test_creates_version_one(self, store, key):
        row = await store.upsert_draft(key, "Deluxe Room", "tester", "en")

        assert row.id
        assert row.version == 1
        assert row.workflow.stage == "draft"
        assert row.source_language == "EN"
        assert row.is_active is True

    async def test_same_source_is_a_noop(self, store, key):
        first = await store.upsert_draft(key, "Deluxe Room", "tester", "EN")

        second = await store.upsert_draft(key, "Deluxe Room", "other", "EN")

        assert second.id == first.id
        assert second.updated_by == "tester"

    async def test_changed_source_on_review_row_goes_back_to_translation(self, store, key):
        row = await store.upsert_draft(key, "Deluxe Room", "tester", "EN")
        row = await store.update_row(row, {"translated_text": "Chambre", "workflow.stage": "review"})

        updated = await store.upsert_draft(key, "Deluxe King Room", "tester", "EN")

        assert updated.id == row.id
        assert updated.original_text == "Deluxe King Room"
        assert updated.workflow.stage == "translation"
        assert updated.quality.review_status == "pending"

    async def test_changed_source_on_approved_row_creates_version(self, store, key):
        row = await _approve(store, await store.upsert_draft(key, "Deluxe Room", "tester", "EN"))

        successor = await store.upsert_draft(key, "Deluxe King Room", "editor", "EN")

        assert successor.version == 2
        assert successor.previous_version == row.id
        assert successor.original_text == "Deluxe King Room"
        assert successor.translated_text is None
        assert (await store.get(row.id)).is_active is False

    async def test_same_source_and_target(self, store, key):
        with pytest.raises(InvalidInputError) as exc_info:
            await store.upsert_draft(key, "Deluxe Room", "tester", "FR")

        assert exc_info.value.field == "target_language"

    async def test_attributes_are_applied(self, store, key):
        row = await store.upsert_draft(
            key, "Deluxe Room", "tester", "EN", workflow={"priority": "high"}
        )

        assert row.workflow.priority == "high"


@pytest.mark.unit
class TestCreateNewVersion:
    """Tests for create_new_version()."""

    async def test_exactly_one_active_version(self, store, documents, key):
        row = await store.upsert_draft(key, "Deluxe Room", "tester", "EN")

        v2 = await store.create_new_version(row, "Chambre", "editor")
        v3 = await store.create_new_version(v2, "Chambre Deluxe", "editor")

        active = await documents.find(TRANSLATIONS, {**key.query(), "is_active": True})
        assert [doc["id"] for doc in active] == [v3.id]
        assert v3.version == 3
        assert v3.workflow.stage == "translation"
        assert v3.quality.review_status == "pending"

    async def test_stale_row_retries_against_latest(self, store, key):
        row = await store.upsert_draft(key, "Deluxe Room", "tester", "EN")
        v2 = await store.create_new_version(row, "Chambre", "editor")

        v3 = await store.create_new_version(row, "Chambre Deluxe", "other")

        assert v3.version == 3
        assert v3.previous_version == v2.id

    async def test_concurrent_writers_serialize(self, store, documents, key):
        row = await store.upsert_draft(key, "Deluxe Room", "tester", "EN")

        results = await asyncio.gather(
            *(store.create_new_version(row, f"text {i}", f"user-{i}") for i in range(3))
        )

        assert sorted(r.version for r in results) == [2, 3, 4]
        assert await documents.count(TRANSLATIONS, {**key.query(), "is_active": True}) == 1

    async def test_overrides_are_merged(self, store, key):
        row = await store.upsert_draft(key, "Deluxe Room", "tester", "EN")

        successor = await store.create_new_version(
            row,
            "Chambre",
            "deepl",
            translation_method="automatic",
            provider="deepl",
            quality={"confidence": 0.9},
        )

        assert successor.translation_method == "automatic"
        assert successor.provider == "deepl"
        assert successor.quality.confidence == 0.9
        assert successor.quality.review_status == "pending"

    async def test_failed_insert_reactivates_previous(self, store, monkeypatch, key):
        row = await store.upsert_draft(key, "Deluxe Room", "tester", "EN")

        async def _fail(_row):
            raise RuntimeError("write failed")

        monkeypatch.setattr(store, "insert", _fail)

        with pytest.raises(RuntimeError):
            await store.create_new_version(row, "Chambre", "editor")

        assert (await store.get(row.id)).is_active is True

    async def test_no_active_version_conflicts(self, store, documents, key):
        row = await store.upsert_draft(key, "Deluxe Room", "tester", "EN")
        await documents.update(TRANSLATIONS, row.id, {"is_active": False})

        with pytest.raises(ConflictError):
            await store.create_new_version(row, "Chambre", "editor")


@pytest.mark.unit
class TestReads:
    """Tests for single-key reads."""

    async def test_get_unknown(self, store):
        with pytest.raises(NotFoundError):
            await store.get("missing")

    async def test_history_follows_previous_version(self, store, key):
        row = await store.upsert_draft(key, "Deluxe Room", "tester", "EN")
        v2 = await store.create_new_version(row, "Chambre", "editor")
        v3 = await store.create_new_version(v2, "Chambre Deluxe", "editor")

        history = await store.get_history(key)

        assert [r.id for r in history] == [v3.id, v2.id, row.id]

    async def test_history_of_unknown_key(self, store, key):
        assert await store.get_history(key) == []

    async def test_served_version_survives_new_review(self, store, key):
        approved = await _approve(store, await store.upsert_draft(key, "Deluxe Room", "tester", "EN"))
        await store.create_new_version(approved, "Chambre de luxe", "editor")

        field = await store.get_field("room_type", "rt-1", "name", "FR")

        assert field.text == "Chambre Deluxe"
        assert field.status == "approved"
        assert field.is_fallback is False
        assert (await store.get_served(key)).id == approved.id

    async def test_unapproved_row_falls_back_to_source(self, store, key):
        row = await store.upsert_draft(key, "Deluxe Room", "tester", "EN")
        await store.update_row(row, {"translated_text": "Chambre", "workflow.stage": "review"})

        field = await store.get_field("room_type", "rt-1", "name", "FR")

        assert field.text == "Deluxe Room"
        assert field.status == "pending"
        assert field.is_fallback is True

    async def test_unapproved_row_served_when_not_approved_only(self, store, key):
        row = await store.upsert_draft(key, "Deluxe Room", "tester", "EN")
        await store.update_row(row, {"translated_text": "Chambre", "workflow.stage": "review"})

        field = await store.get_field("room_type", "rt-1", "name", "FR", approved_only=False)

        assert field.text == "Chambre"
        assert field.status == "review"

    async def test_missing_row_uses_source_resolver(self, store):
        field = await store.get_field("room_type", "rt-1", "description", "FR")

        assert field.text == "source of description"
        assert field.translation is None

    async def test_fallback_disabled(self, store):
        field = await store.get_field(
            "room_type", "rt-1", "description", "FR", fallback_to_source=False
        )

        assert field.text is None
        assert field.status == "pending"


@pytest.mark.unit
class TestResourceReads:
    """Tests for reads spanning a resource."""

    async def test_get_for_resource_sorted_by_field(self, store):
        for field in ("short_description", "name", "description"):
            await store.upsert_draft(
                store.make_key("room_type", "rt-1", field, "FR"), field, "tester", "EN"
            )

        rows = await store.get_for_resource("room_type", "rt-1", "FR")

        assert [r.field_name for r in rows] == ["description", "name", "short_description"]

    async def test_approved_only_returns_newest_served(self, store, key):
        v1 = await _approve(store, await store.upsert_draft(key, "Deluxe Room", "tester", "EN"))
        v2 = await _approve(store, await store.create_new_version(v1, "Chambre 2", "editor"), "Chambre 2")
        await store.create_new_version(v2, "Chambre 3", "editor")

        rows = await store.get_for_resource("room_type", "rt-1", approved_only=True)

        assert [r.id for r in rows] == [v2.id]

    async def test_include_history(self, store, key):
        row = await store.upsert_draft(key, "Deluxe Room", "tester", "EN")
        await store.create_new_version(row, "Chambre", "editor")

        rows = await store.get_for_resource("room_type", "rt-1", include_history=True)

        assert [r.version for r in rows] == [2, 1]

    async def test_get_for_resources(self, store):
        for resource_id in ("wifi", "spa"):
            row = await store.upsert_draft(
                store.make_key("room_amenity", resource_id, "name", "FR"), resource_id, "tester", "EN"
            )
            await _approve(store, row, f"{resource_id} fr")

        rows = await store.get_for_resources("room_amenity", ["spa", "wifi", "pool"], "FR")

        assert [(r.resource_id, r.translated_text) for r in rows] == [
            ("spa", "spa fr"),
            ("wifi", "wifi fr"),
        ]
        assert await store.get_for_resources("room_amenity", [], "FR") == []

    async def test_available_languages(self, store):
        for target in ("FR", "DE", "ES"):
            row = await store.upsert_draft(
                store.make_key("room_type", "rt-1", "name", target), "Deluxe Room", "tester", "EN"
            )
            if target != "ES":
                await _approve(store, row)

        assert await store.available_languages("room_type", "rt-1") == ["DE", "FR"]

    async def test_group_counts(self, store, key):
        await store.upsert_draft(key, "Deluxe Room", "tester", "EN")
        await store.upsert_draft(
            store.make_key("room_type", "rt-1", "description", "FR"), "A room", "tester", "EN"
        )

        groups = await store.group_counts(by=["target_language"])

        assert groups == [{"key": {"target_language": "FR"}, "count": 2}]


@pytest.mark.unit
class TestPendingQueue:
    """Tests for get_pending()."""

    async def _queue_row(self, store, field, **workflow):
        row = await store.upsert_draft(
            store.make_key("room_type", "rt-1", field, "FR"), field, "tester", "EN"
        )
        changes = {"workflow.stage": "review", "translated_text": f"{field} fr"}
        changes.update({f"workflow.{name}": value for name, value in workflow.items()})
        return await store.update_row(row, changes)

    async def test_ordering(self, store):
        soon = datetime.now(timezone.utc) + timedelta(days=1)
        later = soon + timedelta(days=1)
        await self._queue_row(store, "no_due_low", priority="low")
        await self._queue_row(store, "no_due_urgent", priority="urgent")
        await self._queue_row(store, "later", due_date=later)
        await self._queue_row(store, "soon", due_date=soon)

        rows = await store.get_pending()

        assert [r.field_name for r in rows] == ["soon", "later", "no_due_urgent", "no_due_low"]

    async def test_drafts_and_approved_rows_are_excluded(self, store, key):
        await store.upsert_draft(key, "Deluxe Room", "tester", "EN")
        await _approve(
            store,
            await store.upsert_draft(
                store.make_key("room_type", "rt-1", "description", "FR"), "x", "tester", "EN"
            ),
        )

        assert await store.get_pending() == []

    async def test_filters_and_limit(self, store):
        await self._queue_row(store, "name", assignee="alice", priority="high")
        await self._queue_row(store, "description", assignee="bob")

        assert [r.field_name for r in await store.get_pending({"assignee": "alice"})] == ["name"]
        assert [r.field_name for r in await store.get_pending({"priority": "high"})] == ["name"]
        assert await store.get_pending({"target_language": "de"}) == []
        assert len(await store.get_pending(limit=1)) == 1

    async def test_timeout(self):
        class _SlowDocuments:
            async def find(self, *args, **kwargs):
                await asyncio.sleep(1)
                return []

        store = TranslationStore(_SlowDocuments(), review_queue_timeout=0.01)

        with pytest.raises(ProviderTimeoutError):
            await store.get_pending()


@pytest.mark.unit
class TestWrites:
    """Tests for update_row(), bulk_update() and track_usage()."""

    async def test_update_row_stage_mismatch_conflicts(self, store, key):
        row = await store.upsert_draft(key, "Deluxe Room", "tester", "EN")

        with pytest.raises(ConflictError):
            await store.update_row(row, {"workflow.stage": "approved"}, expect_stage=["review"])

    async def test_update_row_on_inactive_row_conflicts(self, store, key):
        row = await store.upsert_draft(key, "Deluxe Room", "tester", "EN")
        await store.create_new_version(row, "Chambre", "editor")

        with pytest.raises(ConflictError):
            await store.update_row(row, {"translated_text": "x"})

    async def test_bulk_update_counts(self, store, key):
        row = await store.upsert_draft(key, "Deluxe Room", "tester", "EN")

        result = await store.bulk_update(
            [
                BulkUpdate(row.id, {"$set": {"workflow.tags": ["seasonal"]}}),
                BulkUpdate("missing", {"$set": {"workflow.tags": ["x"]}}),
            ]
        )

        assert result.matched == 1
        assert result.modified == 1
        assert (await store.get(row.id)).workflow.tags == ["seasonal"]

    async def test_track_usage_on_inactive_row(self, store, key):
        row = await store.upsert_draft(key, "Deluxe Room", "tester", "EN")
        await store.create_new_version(row, "Chambre", "editor")

        await store.track_usage(row, context="website")
        await store.track_usage(row, context="website")

        usage = (await store.get(row.id)).usage
        assert usage.impressions == 2
        assert usage.contexts == ["website"]
