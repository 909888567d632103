"""Unit tests for the in-memory document store."""

import asyncio

import pytest

from infrastructure.persistence import (
    BulkUpdate,
    DuplicateDocumentError,
    InMemoryDocumentStore,
)


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.mark.unit
class TestInMemoryDocumentStore:
    """Tests for InMemoryDocumentStore."""

    async def test_insert_assigns_id(self, store):
        doc = await store.insert("languages", {"name": "French"})

        assert doc["id"]
        assert await store.get("languages", doc["id"]) == doc

    async def test_insert_duplicate_raises(self, store):
        await store.insert("languages", {"id": "FR"})

        with pytest.raises(DuplicateDocumentError) as exc_info:
            await store.insert("languages", {"id": "FR"})

        assert exc_info.value.collection == "languages"
        assert exc_info.value.doc_id == "FR"
        assert str(exc_info.value) == "Document 'FR' already exists in 'languages'"

    async def test_returned_documents_are_copies(self, store):
        await store.insert("languages", {"id": "FR", "tags": []})
        doc = await store.get("languages", "FR")
        doc["tags"].append("x")

        assert (await store.get("languages", "FR"))["tags"] == []

    async def test_find_sort_skip_limit(self, store):
        for i, name in enumerate(["c", "a", "d", "b"]):
            await store.insert("items", {"id": str(i), "name": name, "active": i != 2})

        found = await store.find("items", {"active": True}, sort=[("name", 1)], skip=1, limit=1)

        assert [d["name"] for d in found] == ["b"]

    async def test_find_one(self, store):
        await store.insert("items", {"id": "1", "version": 1})
        await store.insert("items", {"id": "2", "version": 2})

        doc = await store.find_one("items", sort=[("version", -1)])

        assert doc["id"] == "2"
        assert await store.find_one("items", {"version": 9}) is None

    async def test_update_with_expected(self, store):
        await store.insert("items", {"id": "1", "is_active": True})

        assert await store.update("items", "1", {"is_active": False}, expected={"is_active": True})
        assert await store.update("items", "1", {"x": 1}, expected={"is_active": True}) is None
        assert await store.update("items", "missing", {"x": 1}) is None

    async def test_compare_and_set_has_single_winner(self, store):
        await store.insert("items", {"id": "1", "is_active": True})

        results = await asyncio.gather(
            *[
                store.update("items", "1", {"is_active": False}, expected={"is_active": True})
                for _ in range(5)
            ]
        )

        assert sum(r is not None for r in results) == 1

    async def test_update_many_counts_modified(self, store):
        await store.insert("items", {"id": "1", "is_default": True})
        await store.insert("items", {"id": "2", "is_default": True})
        await store.insert("items", {"id": "3", "is_default": False})

        modified = await store.update_many(
            "items", {"is_default": True, "id": {"$ne": "1"}}, {"$set": {"is_default": False}}
        )

        assert modified == 1
        assert (await store.get("items", "1"))["is_default"] is True

    async def test_bulk_update_reports_outcomes(self, store):
        await store.insert("items", {"id": "1", "stage": "review"})
        await store.insert("items", {"id": "2", "stage": "approved"})

        result = await store.bulk_update(
            "items",
            [
                BulkUpdate("1", {"$set": {"stage": "approved"}}, expected={"stage": "review"}),
                BulkUpdate("2", {"$set": {"stage": "approved"}}, expected={"stage": "review"}),
                BulkUpdate("3", {"$set": {"stage": "approved"}}),
            ],
        )

        assert result.matched == 1
        assert result.modified == 1
        assert [(o.doc_id, o.matched) for o in result.outcomes] == [
            ("1", True),
            ("2", False),
            ("3", False),
        ]

    async def test_unchanged_update_is_not_modified(self, store):
        await store.insert("items", {"id": "1", "stage": "review"})

        result = await store.bulk_update("items", [BulkUpdate("1", {"stage": "review"})])

        assert result.matched == 1
        assert result.modified == 0

    async def test_delete_and_count(self, store):
        await store.insert("items", {"id": "1", "kind": "a"})
        await store.insert("items", {"id": "2", "kind": "b"})

        assert await store.count("items") == 2
        assert await store.delete("items", "1") is True
        assert await store.delete("items", "1") is False
        assert await store.count("items", {"kind": "b"}) == 1

    async def test_group_count(self, store):
        await store.insert("t", {"id": "1", "lang": "FR", "ok": True})
        await store.insert("t", {"id": "2", "lang": "FR", "ok": False})

        groups = await store.group_count("t", None, by=["lang"], sums={"ok": {"ok": True}})

        assert groups == [{"key": {"lang": "FR"}, "count": 2, "ok": 1}]

    async def test_clear(self, store):
        await store.insert("t", {"id": "1"})
        store.clear()

        assert await store.count("t") == 0
