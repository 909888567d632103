"""Unit tests for the document query dialect.

Tests cover:
- Filter operators, dotted paths, $or and $elemMatch
- Update operators
- Multi-key sorting with missing values
- Grouping with unwind and conditional sums
"""

import pytest

from infrastructure.persistence.query import (
    apply_update,
    get_path,
    group_documents,
    matches,
    sort_documents,
)


DOC = {
    "id": "t1",
    "resource_type": "room_type",
    "target_language": "FR",
    "version": 2,
    "workflow": {"stage": "review", "tags": ["seasonal", "web"]},
    "translations": [
        {"language": "FR", "status": "approved"},
        {"language": "DE", "status": "pending"},
    ],
}


@pytest.mark.unit
class TestMatches:
    """Tests for matches()."""

    def test_empty_query_matches_everything(self):
        assert matches(DOC, None)
        assert matches(DOC, {})

    def test_equality_and_dotted_paths(self):
        assert matches(DOC, {"resource_type": "room_type", "workflow.stage": "review"})
        assert not matches(DOC, {"workflow.stage": "approved"})

    def test_equality_against_array_is_membership(self):
        assert matches(DOC, {"workflow.tags": "web"})
        assert not matches(DOC, {"workflow.tags": "print"})

    def test_missing_field_matches_none_only(self):
        assert matches(DOC, {"workflow.assignee": None})
        assert not matches(DOC, {"workflow.assignee": "anna"})

    @pytest.mark.parametrize(
        "query,expected",
        [
            ({"version": {"$gt": 1}}, True),
            ({"version": {"$gte": 3}}, False),
            ({"version": {"$lt": 3, "$gte": 2}}, True),
            ({"target_language": {"$in": ["FR", "DE"]}}, True),
            ({"target_language": {"$nin": ["FR"]}}, False),
            ({"target_language": {"$ne": "DE"}}, True),
            ({"translated_text": {"$exists": False}}, True),
            ({"workflow.stage": {"$exists": True}}, True),
        ],
    )
    def test_comparison_operators(self, query, expected):
        assert matches(DOC, query) is expected

    def test_comparison_with_missing_value_is_false(self):
        assert not matches(DOC, {"due": {"$lt": 5}})

    def test_in_with_none_matches_missing(self):
        assert matches(DOC, {"assignee": {"$in": [None, "anna"]}})

    def test_or(self):
        assert matches(DOC, {"$or": [{"version": 1}, {"target_language": "FR"}]})
        assert not matches(DOC, {"$or": [{"version": 1}, {"target_language": "DE"}]})

    def test_elem_match(self):
        assert matches(
            DOC, {"translations": {"$elemMatch": {"language": "DE", "status": "pending"}}}
        )
        assert not matches(
            DOC, {"translations": {"$elemMatch": {"language": "DE", "status": "approved"}}}
        )

    def test_unknown_operator_raises(self):
        with pytest.raises(ValueError):
            matches(DOC, {"version": {"$regex": "x"}})


@pytest.mark.unit
class TestApplyUpdate:
    """Tests for apply_update()."""

    def test_plain_keys_are_set(self):
        updated = apply_update(DOC, {"workflow.stage": "approved"})

        assert updated["workflow"]["stage"] == "approved"
        assert DOC["workflow"]["stage"] == "review"

    def test_operators(self):
        updated = apply_update(
            {"usage": {"impressions": 1}, "tags": ["a"], "note": "x"},
            {
                "$inc": {"usage.impressions": 2, "usage.clicks": 1},
                "$addToSet": {"tags": "a"},
                "$push": {"history": "created"},
                "$unset": ["note"],
            },
        )

        assert updated == {
            "usage": {"impressions": 3, "clicks": 1},
            "tags": ["a"],
            "history": ["created"],
        }

    def test_add_to_set_appends_new_value(self):
        assert apply_update({"tags": ["a"]}, {"$addToSet": {"tags": "b"}})["tags"] == ["a", "b"]

    def test_unknown_operator_raises(self):
        with pytest.raises(ValueError):
            apply_update({}, {"$rename": {"a": "b"}})


@pytest.mark.unit
class TestSortAndGroup:
    """Tests for sort_documents() and group_documents()."""

    def test_sort_multiple_keys_missing_last(self):
        docs = [
            {"id": "a", "field_name": "name", "version": 1},
            {"id": "b", "field_name": "description", "version": 1},
            {"id": "c", "field_name": "name", "version": 2},
            {"id": "d", "version": 5},
        ]

        ordered = sort_documents(docs, [("field_name", 1), ("version", -1)])

        assert [d["id"] for d in ordered] == ["b", "c", "a", "d"]

    def test_sort_without_spec_keeps_order(self):
        docs = [{"id": "b"}, {"id": "a"}]
        assert sort_documents(docs, None) == docs

    def test_group_with_sums(self):
        docs = [
            {"target_language": "FR", "workflow": {"stage": "approved"}},
            {"target_language": "FR", "workflow": {"stage": "draft"}},
            {"target_language": "DE", "workflow": {"stage": "approved"}},
        ]

        groups = group_documents(
            docs,
            ["target_language"],
            sums={"approved": {"workflow.stage": "approved"}},
        )

        assert groups == [
            {"key": {"target_language": "FR"}, "count": 2, "approved": 1},
            {"key": {"target_language": "DE"}, "count": 1, "approved": 1},
        ]

    def test_group_with_unwind(self):
        groups = group_documents(
            [DOC], ["translations.language", "translations.status"], unwind="translations"
        )

        assert [g["key"] for g in groups] == [
            {"translations.language": "FR", "translations.status": "approved"},
            {"translations.language": "DE", "translations.status": "pending"},
        ]

    def test_get_path_list_index(self):
        assert get_path(DOC, "translations.1.language") == "DE"
        assert get_path(DOC, "translations.5.language", "none") == "none"
