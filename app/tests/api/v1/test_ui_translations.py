"""HTTP tests for the /api/v1/ui-translations routes."""

import pytest

from tests.factories.identity import ADMIN, REVIEWER, TRANSLATOR, VIEWER, caller_headers

BASE = "/api/v1/ui-translations"


@pytest.fixture
def namespace(client):
    """``booking`` namespace with one approved and one translated FR entry."""
    for body in (
        {
            "key": "form.submit",
            "namespace": "booking",
            "source_text": "Book now",
            "translations": {"FR": "Réserver"},
            "auto_approve": True,
        },
        {
            "key": "form.cancel",
            "namespace": "booking",
            "source_text": "Cancel",
            "translations": {"FR": "Annuler"},
        },
    ):
        response = client.post(BASE, json=body, headers=ADMIN)
        assert response.status_code == 200
    return client


@pytest.mark.unit
class TestSave:
    """Tests for POST /ui-translations."""

    def test_translator_saves(self, client):
        response = client.post(
            BASE,
            json={"key": "nav.home", "source_text": "Home", "translations": {"de": "Startseite"}},
            headers=TRANSLATOR,
        )

        body = response.json()
        assert body["namespace"] == "common"
        assert body["translations"][0]["language"] == "DE"
        assert body["translations"][0]["status"] == "translated"

    def test_auto_approve_needs_reviewer(self, client):
        body = {"key": "nav.home", "source_text": "Home", "translations": {"DE": "Start"}, "auto_approve": True}

        assert client.post(BASE, json=body, headers=TRANSLATOR).status_code == 403
        lead = caller_headers("l1", "translator,reviewer")
        assert client.post(BASE, json=body, headers=lead).json()["translations"][0]["reviewer"] == "l1"

    def test_invalid_key(self, client):
        response = client.post(
            BASE, json={"key": "not a key", "source_text": "Home"}, headers=TRANSLATOR
        )

        assert response.status_code == 422
        assert response.json()["details"]["field"] == "key"


@pytest.mark.unit
class TestReads:
    """Tests for namespace, batch and statistics reads."""

    def test_namespace(self, namespace):
        response = namespace.get(f"{BASE}/booking", params={"language": "fr"}, headers=VIEWER)

        assert response.json() == {
            "data": {"form.cancel": "Annuler", "form.submit": "Réserver"},
            "meta": {"namespace": "booking", "language": "FR", "key_count": 2, "completeness": 50},
        }

    def test_namespace_with_status(self, namespace):
        response = namespace.get(
            f"{BASE}/booking", params={"language": "DE", "include_status": True}, headers=VIEWER
        )

        assert response.json()["data"]["form.submit"]["status"] == "pending"
        assert response.json()["data"]["form.submit"]["text"] == "Book now"

    def test_namespace_needs_language(self, namespace):
        assert namespace.get(f"{BASE}/booking", headers=VIEWER).status_code == 422

    def test_namespaces(self, namespace):
        response = namespace.get(f"{BASE}/namespaces", headers=VIEWER)

        listed = response.json()
        assert [ns["name"] for ns in listed] == ["booking"]
        assert listed[0]["completeness"] == {"FR": 50}

    def test_batch(self, namespace):
        response = namespace.post(
            f"{BASE}/batch",
            json={"keys": ["form.submit", "form.unknown"], "language": "FR", "namespace": "booking"},
            headers=VIEWER,
        )

        assert response.json() == {
            "data": {"form.submit": "Réserver", "form.unknown": "form.unknown"},
            "meta": {"found": 1, "missing": ["form.unknown"]},
        }

    def test_stats(self, namespace):
        response = namespace.get(f"{BASE}/stats", params={"language": "FR"}, headers=VIEWER)

        body = response.json()
        assert body["overview"]["total_keys"] == 2
        assert body["by_language"]["FR"]["approved_count"] == 1
        assert body["by_namespace"]["booking"]["completeness"] == 50

    def test_stats_with_naive_date_bounds(self, namespace):
        response = namespace.get(
            f"{BASE}/stats",
            params={"start": "2020-01-01T00:00:00", "end": "2999-01-01T00:00:00"},
            headers=VIEWER,
        )

        assert response.status_code == 200
        assert response.json()["overview"]["total_keys"] == 2

    def test_stats_naive_start_after_updates_excludes_entries(self, namespace):
        response = namespace.get(
            f"{BASE}/stats", params={"start": "2999-01-01T00:00:00"}, headers=VIEWER
        )

        assert response.json()["overview"]["total_keys"] == 0


@pytest.mark.unit
class TestWrites:
    """Tests for approval, deletion and machine translation."""

    def test_approve(self, namespace):
        response = namespace.post(
            f"{BASE}/booking/form.cancel/approve", json={"language": "FR"}, headers=REVIEWER
        )

        assert response.status_code == 200
        entry = response.json()["translations"][0]
        assert entry["status"] == "approved"
        assert entry["reviewer"] == "r1"

    def test_approve_missing_language(self, namespace):
        response = namespace.post(
            f"{BASE}/booking/form.cancel/approve", json={"language": "DE"}, headers=REVIEWER
        )

        assert response.status_code == 404

    def test_delete(self, namespace):
        assert namespace.delete(f"{BASE}/booking/form.cancel", headers=TRANSLATOR).status_code == 403

        response = namespace.delete(f"{BASE}/booking/form.cancel", headers=ADMIN)

        assert response.status_code == 204
        assert namespace.delete(f"{BASE}/booking/form.cancel", headers=ADMIN).status_code == 404

    def test_translate_and_persist(self, namespace):
        response = namespace.post(
            f"{BASE}/translate",
            json={"text": "Book now", "target_language": "DE", "namespace": "booking", "key": "form.submit"},
            headers=TRANSLATOR,
        )

        assert response.json()["translated_text"] == "[DE] Book now"
        view = namespace.get(f"{BASE}/booking", params={"language": "DE"}, headers=VIEWER).json()
        assert view["data"]["form.submit"] == "[DE] Book now"
