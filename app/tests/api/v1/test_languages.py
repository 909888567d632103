"""HTTP tests for the /api/v1/languages routes."""

import pytest

from tests.factories.identity import ADMIN, TRANSLATOR, VIEWER
from tests.factories.localization import make_language_payload

BASE = "/api/v1/languages"


@pytest.fixture
def languages(client):
    """EN (default) and FR created over HTTP."""
    for code in ("EN", "FR"):
        response = client.post(BASE, json=make_language_payload(code), headers=ADMIN)
        assert response.status_code == 201
    return client


@pytest.mark.unit
class TestCreate:
    """Tests for POST /languages."""

    def test_create(self, client):
        response = client.post(BASE, json=make_language_payload("EN"), headers=ADMIN)

        assert response.status_code == 201
        body = response.json()
        assert body["code"] == "EN"
        assert body["is_default"] is True

    def test_api_keys_are_not_returned(self, client):
        payload = make_language_payload(
            "FR", translation={"providers": [{"name": "deepl", "priority": 1, "api_key": "k"}]}
        )

        response = client.post(BASE, json=payload, headers=ADMIN)

        assert "api_key" not in response.json()["translation"]["providers"][0]

    def test_requires_admin(self, client):
        response = client.post(BASE, json=make_language_payload("EN"), headers=TRANSLATOR)

        assert response.status_code == 403
        assert response.json()["error_code"] == "permission"
        assert response.json()["success"] is False

    def test_body_validation(self, client):
        response = client.post(BASE, json={"code": "FR"}, headers=ADMIN)

        assert response.status_code == 422
        body = response.json()
        assert body["error_code"] == "validation"
        assert body["details"]["field"] == "name"

    def test_duplicate(self, languages):
        response = languages.post(BASE, json=make_language_payload("FR"), headers=ADMIN)

        assert response.status_code == 409
        assert response.json()["details"]["field"] == "code"


@pytest.mark.unit
class TestReads:
    """Tests for the read routes."""

    def test_list_needs_caller(self, languages):
        assert languages.get(BASE).status_code == 403

    def test_list(self, languages):
        response = languages.get(BASE, headers=VIEWER)

        assert response.status_code == 200
        assert [lang["code"] for lang in response.json()] == ["EN", "FR"]

    def test_default(self, languages):
        assert languages.get(f"{BASE}/default", headers=VIEWER).json()["code"] == "EN"

    def test_get_by_code(self, languages):
        assert languages.get(f"{BASE}/fr", headers=VIEWER).json()["name"] == "French"

    def test_unknown_code(self, languages):
        response = languages.get(f"{BASE}/XX", headers=VIEWER)

        assert response.status_code == 404
        assert response.json()["error_code"] == "not_found"

    def test_unknown_context(self, languages):
        assert languages.get(f"{BASE}/context/fax", headers=VIEWER).status_code == 422


@pytest.mark.unit
class TestUpdate:
    """Tests for the write routes."""

    def test_update_with_revision(self, languages):
        response = languages.patch(
            f"{BASE}/FR",
            json={"changes": {"name": "French (France)"}, "expected_revision": 1},
            headers=ADMIN,
        )

        assert response.status_code == 200
        assert response.json()["revision"] == 2

        stale = languages.patch(
            f"{BASE}/FR", json={"changes": {"name": "Français"}, "expected_revision": 1}, headers=ADMIN
        )
        assert stale.status_code == 409
        assert stale.json()["details"] == {"current_revision": 2, "field": "revision"}

    def test_default_cannot_be_deactivated(self, languages):
        response = languages.post(f"{BASE}/EN/deactivate", headers=ADMIN)

        assert response.status_code == 409

    def test_set_default(self, languages):
        response = languages.post(f"{BASE}/FR/default", headers=ADMIN)

        assert response.json()["is_default"] is True
        assert languages.get(f"{BASE}/default", headers=VIEWER).json()["code"] == "FR"

    def test_channel_support(self, languages):
        response = languages.put(
            f"{BASE}/FR/channels/expedia",
            json={"channel_language_code": "fr-FR", "is_default": True},
            headers=ADMIN,
        )
        assert response.status_code == 200

        code = languages.get(f"{BASE}/FR/channels/expedia/code", headers=VIEWER).json()
        listed = languages.get(f"{BASE}/channel/expedia", headers=VIEWER).json()

        assert code == {"code": "FR", "channel": "expedia", "channel_language_code": "fr-FR"}
        assert [lang["code"] for lang in listed] == ["FR"]

    def test_unknown_channel(self, languages):
        response = languages.get(f"{BASE}/channel/teletext", headers=VIEWER)

        assert response.status_code == 422
        assert response.json()["details"]["field"] == "channel"

    def test_refresh_completeness(self, languages):
        response = languages.post(f"{BASE}/FR/completeness/refresh", headers=ADMIN)

        assert response.status_code == 200
        assert response.json() == {
            "code": "FR",
            "content_completeness": {"room_types": 0, "amenities": 0},
        }

    def test_refresh_completeness_malformed_code(self, languages):
        response = languages.post(f"{BASE}/english/completeness/refresh", headers=ADMIN)

        assert response.status_code == 422
        assert response.json()["details"]["field"] == "code"


@pytest.mark.unit
class TestFormat:
    """Tests for POST /languages/{code}/format."""

    @pytest.mark.parametrize(
        "body, expected",
        [
            ({"kind": "number", "value": 1234.5}, "1,234.50"),
            ({"kind": "currency", "value": 99, "decimals": 0}, "$99"),
            ({"kind": "date", "value": "2026-03-05"}, "03/05/2026"),
            ({"kind": "time", "value": "2026-03-05T14:07:09"}, "14:07"),
        ],
    )
    def test_format(self, languages, body, expected):
        response = languages.post(f"{BASE}/en/format", json=body, headers=VIEWER)

        assert response.status_code == 200
        assert response.json() == {"code": "EN", "kind": body["kind"], "formatted": expected}

    def test_unknown_kind(self, languages):
        response = languages.post(
            f"{BASE}/EN/format", json={"kind": "colour", "value": 1}, headers=VIEWER
        )

        assert response.status_code == 422

    def test_missing_value(self, languages):
        response = languages.post(f"{BASE}/EN/format", json={"kind": "number"}, headers=VIEWER)

        assert response.status_code == 422
        assert response.json()["details"]["field"] == "value"
