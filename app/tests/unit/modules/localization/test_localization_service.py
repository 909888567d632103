"""Tests for the LocalizationService verbs: roles, validation and error mapping."""

from datetime import date, datetime

import pytest

from infrastructure.persistence import DocumentStoreError, DuplicateDocumentError
from modules.localization.domain import InvalidInputError, NotFoundError
from modules.localization.domain.errors import (
    ConflictError,
    InternalError,
    PermissionDeniedError,
)
from tests.factories.localization import make_language_payload, make_room_type


async def _draft(service, target="FR", field="name", text="Deluxe Room"):
    key = service.context.store.make_key("room_type", "rt-1", field, target)
    return await service.context.store.upsert_draft(key, text, "tester", "EN")


async def _served(service, translator, reviewer, target="FR"):
    row = await _draft(service, target)
    await service.translations.submit(translator, row.id, "Chambre Deluxe")
    await service.translations.complete(translator, row.id)
    return await service.translations.approve(reviewer, row.id)


@pytest.mark.unit
class TestRoles:
    """Tests for authentication and role checks."""

    async def test_reads_need_a_caller(self, service):
        with pytest.raises(PermissionDeniedError):
            await service.languages.list(None)

    async def test_admin_only_writes(self, service, viewer, translator):
        for user in (viewer, translator):
            with pytest.raises(PermissionDeniedError) as exc_info:
                await service.languages.create(user, make_language_payload("FR"))
            assert exc_info.value.details == {"required": "admin"}

    async def test_translator_verbs(self, service, seed_languages, translator, reviewer):
        await seed_languages(service.context, "FR")
        row = await _draft(service)

        with pytest.raises(PermissionDeniedError):
            await service.translations.submit(reviewer, row.id, "Chambre")

        submitted = await service.translations.submit(translator, row.id, "Chambre")
        assert submitted.workflow.stage == "translation"
        assert submitted.updated_by == "translator-1"

    async def test_reviewer_verbs(self, service, seed_languages, translator, reviewer):
        await seed_languages(service.context, "FR")
        row = await _draft(service)
        await service.translations.submit(translator, row.id, "Chambre")
        await service.translations.complete(translator, row.id)

        with pytest.raises(PermissionDeniedError):
            await service.translations.approve(translator, row.id)

        approved = await service.translations.approve(reviewer, row.id)
        assert approved.workflow.stage == "approved"
        assert approved.quality.reviewer == "reviewer-1"

    async def test_admin_holds_every_role(self, service, seed_languages, admin):
        await seed_languages(service.context, "FR")
        row = await _draft(service)

        await service.translations.submit(admin, row.id, "Chambre")
        await service.translations.complete(admin, row.id)
        approved = await service.translations.approve(admin, row.id)

        assert approved.workflow.stage == "approved"

    async def test_ui_auto_approve_needs_reviewer(self, service, translator, make_user):
        with pytest.raises(PermissionDeniedError):
            await service.ui.save(translator, "a.x", "common", "A", {"FR": "Af"}, auto_approve=True)

        both = make_user("lead-1", roles=["translator", "reviewer"])
        item = await service.ui.save(both, "a.x", "common", "A", {"FR": "Af"}, auto_approve=True)

        assert item.entry("FR").status == "approved"
        assert item.entry("FR").reviewer == "lead-1"

    async def test_queue_stats_is_admin_only(self, service, viewer, admin):
        with pytest.raises(PermissionDeniedError):
            await service.translations.queue_stats(viewer)

        assert (await service.translations.queue_stats(admin))["active_records"] == 0


@pytest.mark.unit
class TestLanguageVerbs:
    """Tests for language verbs."""

    async def test_public_view_hides_api_keys(self, service, admin):
        payload = make_language_payload(
            "FR",
            translation={"providers": [{"name": "deepl", "priority": 1, "api_key": "secret"}]},
        )

        view = await service.languages.create(admin, payload)

        assert view["code"] == "FR"
        assert "api_key" not in view["translation"]["providers"][0]
        fetched = await service.languages.get_by_code(admin, "fr")
        assert "api_key" not in fetched["translation"]["providers"][0]

    async def test_unknown_channel(self, service, viewer):
        with pytest.raises(InvalidInputError) as exc_info:
            await service.languages.list_by_channel(viewer, "teletext")

        assert exc_info.value.field == "channel"

    async def test_unknown_context(self, service, viewer):
        with pytest.raises(InvalidInputError) as exc_info:
            await service.languages.list_by_context(viewer, "fax")

        assert exc_info.value.field == "context"

    async def test_duplicate_document_maps_to_conflict(self, service, admin, monkeypatch):
        async def _duplicate(data):
            raise DuplicateDocumentError("languages", "FR")

        monkeypatch.setattr(service.context.languages, "create", _duplicate)

        with pytest.raises(ConflictError) as exc_info:
            await service.languages.create(admin, make_language_payload("FR"))

        assert exc_info.value.field == "id"

    async def test_store_failure_maps_to_internal(self, service, viewer, monkeypatch):
        async def _broken(filters=None):
            raise DocumentStoreError("connection reset")

        monkeypatch.setattr(service.context.languages, "list_active", _broken)

        with pytest.raises(InternalError) as exc_info:
            await service.languages.list(viewer)

        assert exc_info.value.details == {"status": None}


@pytest.mark.unit
class TestFormat:
    """Tests for the format verb."""

    @pytest.fixture
    async def english(self, service):
        await service.context.languages.create(make_language_payload("EN"))

    @pytest.mark.parametrize(
        "kind, value, options, expected",
        [
            ("number", 1234.567, {}, "1,234.57"),
            ("number", 1234.5, {"decimals": 0}, "1,235"),
            ("currency", 1234.5, {}, "$1,234.50"),
            ("currency", 10, {"symbol": "£"}, "£10.00"),
            ("date", date(2026, 3, 5), {}, "03/05/2026"),
            ("date", date(2026, 3, 5), {"style": "long"}, "March 5, 2026"),
            ("time", datetime(2026, 3, 5, 14, 7, 9), {"style": "medium"}, "14:07:09"),
        ],
    )
    async def test_values(self, service, english, viewer, kind, value, options, expected):
        assert await service.languages.format(viewer, "EN", kind, value, **options) == expected

    async def test_address(self, service, english, viewer):
        text = await service.languages.format(
            viewer,
            "EN",
            "address",
            parts={"street": "1 Harbour Rd", "city": "Halifax", "postal_code": "B3H", "country": "CA"},
        )

        assert text == "1 Harbour Rd\nHalifax,  B3H\nCA"

    @pytest.mark.parametrize(
        "kind, value, field",
        [
            ("number", None, "value"),
            ("date", 42, "value"),
            ("colour", date(2026, 3, 5), "kind"),
        ],
    )
    async def test_invalid(self, service, english, viewer, kind, value, field):
        with pytest.raises(InvalidInputError) as exc_info:
            await service.languages.format(viewer, "EN", kind, value)

        assert exc_info.value.field == field

    async def test_unknown_language(self, service, viewer):
        with pytest.raises(NotFoundError):
            await service.languages.format(viewer, "XX", "number", 1)


@pytest.mark.unit
class TestTranslationVerbs:
    """Tests for translation row verbs."""

    async def test_field_falls_back_to_source(self, service, seed_languages, viewer):
        await seed_languages(service.context, "FR")
        await service.context.resources.save("room_type", make_room_type())

        result = await service.translations.get_field(viewer, "room_type", "rt-1", "name", "FR")

        assert result.text == "Deluxe Room"
        assert result.is_fallback is True
        assert result.status == "pending"

    async def test_served_field_tracks_usage(
        self, service, seed_languages, translator, reviewer, viewer
    ):
        await seed_languages(service.context, "FR")
        row = await _served(service, translator, reviewer)

        result = await service.translations.get_field(
            viewer, "room_type", "rt-1", "name", "fr", usage_context="website"
        )

        assert result.text == "Chambre Deluxe"
        assert result.is_fallback is False
        stored = await service.context.store.get(row.id)
        assert stored.usage.impressions == 1
        assert stored.usage.contexts == ["website"]

    async def test_create_version(self, service, seed_languages, translator, reviewer):
        await seed_languages(service.context, "FR")
        await _served(service, translator, reviewer)

        successor = await service.translations.create_version(
            translator, "room_type", "rt-1", "name", "FR", "Chambre De Luxe", notes="typo"
        )

        assert successor.version == 2
        assert successor.translated_text == "Chambre De Luxe"
        assert successor.translation_method == "manual"
        history = await service.translations.history(translator, "room_type", "rt-1", "name", "FR")
        assert [r.version for r in history] == [2, 1]

    async def test_create_version_validation(self, service, translator):
        with pytest.raises(InvalidInputError):
            await service.translations.create_version(
                translator, "room_type", "rt-1", "name", "FR", "  "
            )
        with pytest.raises(NotFoundError):
            await service.translations.create_version(
                translator, "room_type", "rt-1", "name", "FR", "Chambre"
            )

    async def test_list_pending_validation(self, service, viewer):
        with pytest.raises(InvalidInputError) as exc_info:
            await service.translations.list_pending(viewer, limit=0)
        assert exc_info.value.field == "limit"

        with pytest.raises(InvalidInputError):
            await service.translations.list_pending(viewer, {"target_language": "french"})

    async def test_bulk_update_needs_ids(self, service, reviewer):
        with pytest.raises(InvalidInputError) as exc_info:
            await service.translations.bulk_update(reviewer, [], "approve")

        assert exc_info.value.field == "ids"

    async def test_translate_and_detect(self, service, translator, viewer):
        translated = await service.translations.translate(translator, "Hello", "EN", "FR")
        detected = await service.translations.detect_language(viewer, "Bonjour")

        assert translated["translated_text"] == "[FR] Hello"
        assert detected["language"] == "FR"

    async def test_supported_languages_and_health(self, service, viewer):
        supported = await service.translations.supported_languages(viewer)
        health = await service.translations.provider_health(viewer)

        assert supported["deepl"] == ["EN", "FR", "DE"]
        assert set(health) == {"deepl", "google"}


@pytest.mark.unit
class TestResourceVerbs:
    """Tests for owning resource verbs."""

    async def test_save_opens_rows_and_writes_status(self, service, seed_languages, admin):
        await seed_languages(service.context, "FR", "DE")

        result = await service.resources.save(admin, "room_type", make_room_type(amenities=()))

        assert result["opened"] == 8
        statuses = {s["language"]: s["status"] for s in result["resource"]["translation_status"]}
        assert statuses == {"FR": "pending", "DE": "pending"}

    async def test_save_needs_admin(self, service, translator):
        with pytest.raises(PermissionDeniedError):
            await service.resources.save(translator, "room_type", make_room_type())

    async def test_localized_reads(self, service, seed_languages, admin, translator, reviewer, viewer):
        await seed_languages(service.context, "FR")
        await service.resources.save(admin, "room_type", make_room_type(amenities=()))
        rows = await service.translations.get_for_resource(viewer, "room_type", "rt-1", "fr")
        name = next(r for r in rows if r.field_name == "name")
        await service.translations.submit(translator, name.id, "Chambre Deluxe")
        await service.translations.complete(translator, name.id)
        await service.translations.approve(reviewer, name.id)

        raw = await service.resources.localize(viewer, "room_type", "rt-1")
        localized = await service.resources.list(viewer, "room_type", language="fr")

        assert raw["name"] == "Deluxe Room"
        assert localized[0]["name"] == "Chambre Deluxe"
        assert await service.resources.available_languages(viewer, "room_type", "rt-1") == ["EN", "FR"]
        assert await service.resources.completeness(viewer, "room_type", "rt-1", "FR") == 25

    async def test_invalid_language(self, service, viewer):
        with pytest.raises(InvalidInputError):
            await service.resources.localize(viewer, "room_type", "rt-1", "french")
