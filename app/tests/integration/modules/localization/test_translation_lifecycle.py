"""End-to-end lifecycle of resource translations through the service layer.

Everything below the verbs is real: the in-memory document store, the
workflow engine, the work queue and its worker, the provider gateway with
its circuit breakers. Only the translation providers are fakes.
"""

import pytest

from infrastructure.configuration import RetrySettings
from modules.localization.service import LocalizationService
from tests.factories.localization import (
    FailingProvider,
    FakeProvider,
    make_language_payload,
    make_room_type,
)

ROOM = make_room_type(content={"base_language": "EN", "auto_translate": True})
BARE_ROOM = make_room_type(amenities=(), n_images=0, content={"auto_translate": True})


async def _setup_languages(service, admin):
    for code in ("EN", "FR", "DE"):
        await service.languages.create(admin, make_language_payload(code))


@pytest.mark.integration
class TestRoomTypeLifecycle:
    """A room type from first save to a localized, partly re-translated view."""

    async def test_lifecycle(self, service, admin, reviewer):
        await _setup_languages(service, admin)

        saved = await service.resources.save(admin, "room_type", ROOM)
        # four room fields and two amenity fields, in FR and DE
        assert saved["opened"] == 12
        assert (await service.translations.queue_stats(admin))["active_records"] == 12

        stats = await service.context.worker.process_batch()
        stats_again = await service.context.worker.process_batch()
        assert stats["processed"] + stats_again["processed"] == 12
        assert (await service.translations.queue_stats(admin))["active_records"] == 0

        pending = await service.translations.list_pending(reviewer, {"target_language": "FR"})
        assert len(pending) == 6
        assert {row.translation_method for row in pending} == {"automatic"}
        assert {row.provider for row in pending} == {"deepl"}

        review = await service.translations.bulk_update(
            reviewer, [row.id for row in pending], "approve"
        )
        assert review["modified"] == 6

        localized = await service.resources.localize(reviewer, "room_type", "rt-1", "FR")
        assert localized["name"] == "[FR] Deluxe Room"
        assert localized["images"][0]["caption"] == "[FR] View 0"
        assert localized["amenities"][0]["name"] == "[FR] Amenity wifi"

        room = await service.resources.localize(reviewer, "room_type", "rt-1")
        statuses = {s["language"]: s for s in room["translation_status"]}
        assert statuses["FR"]["status"] == "approved"
        assert statuses["FR"]["completeness"] == 100
        assert statuses["DE"]["status"] == "translated"
        assert statuses["DE"]["completeness"] == 0

        edited = dict(ROOM, description="Renovated in 2026")
        resaved = await service.resources.save(admin, "room_type", edited)
        assert resaved["opened"] == 2

        localized = await service.resources.localize(reviewer, "room_type", "rt-1", "FR")
        assert localized["description"] == "[FR] A spacious room with a sea view"
        assert await service.resources.completeness(reviewer, "room_type", "rt-1", "FR") == 75

        history = await service.translations.history(
            reviewer, "room_type", "rt-1", "description", "FR"
        )
        assert [row.version for row in history] == [2, 1]
        assert history[0].original_text == "Renovated in 2026"

    async def test_available_languages_follow_approvals(self, service, admin, reviewer):
        await _setup_languages(service, admin)
        await service.resources.save(admin, "room_type", ROOM, target_languages=["DE"])
        await service.context.worker.process_batch()

        rows = await service.translations.get_for_resource(reviewer, "room_type", "rt-1", "DE")
        name = next(row for row in rows if row.field_name == "name")
        await service.translations.approve(reviewer, name.id)

        assert await service.resources.available_languages(reviewer, "room_type", "rt-1") == [
            "EN",
            "DE",
        ]


@pytest.mark.integration
class TestAutomaticApproval:
    """Confident machine output is approved when review is not required."""

    async def test_auto_approval_with_provider_fallback(
        self, context_factory, provider_registry_factory, admin, viewer
    ):
        context = context_factory(
            providers=provider_registry_factory(
                FailingProvider("deepl"), FakeProvider("google", confidence=0.9)
            ),
            LOCALIZATION_REVIEW_REQUIRED_BY_DEFAULT=False,
        )
        service = LocalizationService(context)
        await _setup_languages(service, admin)

        await service.resources.save(admin, "room_type", BARE_ROOM, target_languages=["FR"])
        await context.worker.process_batch()

        rows = await service.translations.get_for_resource(viewer, "room_type", "rt-1", "FR")
        assert {row.workflow.stage for row in rows} == {"approved"}
        assert {row.provider for row in rows} == {"google"}
        assert {row.quality.reviewer for row in rows} == {"system"}
        localized = await service.resources.localize(viewer, "room_type", "rt-1", "FR")
        assert localized["short_description"] == "[FR] Sea view room"

    async def test_low_confidence_needs_review(
        self, context_factory, provider_registry_factory, admin, reviewer
    ):
        context = context_factory(
            providers=provider_registry_factory(FakeProvider("deepl", confidence=0.5)),
            LOCALIZATION_REVIEW_REQUIRED_BY_DEFAULT=False,
        )
        service = LocalizationService(context)
        await _setup_languages(service, admin)

        await service.resources.save(admin, "room_type", BARE_ROOM, target_languages=["FR"])
        await context.worker.process_batch()

        pending = await service.translations.list_pending(reviewer)
        assert len(pending) == 3
        assert {row.quality.review_status for row in pending} == {"needs_review"}


@pytest.mark.integration
class TestProviderOutage:
    """Work items survive provider outages and end in the dead-letter queue."""

    async def test_exhausted_retries(
        self, settings_factory, context_factory, provider_registry_factory, admin
    ):
        settings = settings_factory()
        settings.retry = RetrySettings(RETRY_BACKEND="memory", RETRY_MAX_ATTEMPTS=1)
        context = context_factory(
            settings=settings,
            providers=provider_registry_factory(FailingProvider("deepl"), FailingProvider("google")),
        )
        service = LocalizationService(context)
        await _setup_languages(service, admin)
        await service.resources.save(admin, "room_type", BARE_ROOM, target_languages=["FR"])

        stats = await context.worker.process_batch()

        assert stats["retried"] == 3
        queue = await service.translations.queue_stats(admin)
        assert queue["active_records"] == 0
        assert queue["dlq_records"] == 3
        dead = await context.work_queue.dead_letters()
        assert all(record.last_error.startswith("Max retries (1) exceeded") for record in dead)
        rows = await service.translations.get_for_resource(admin, "room_type", "rt-1", "FR")
        assert {row.translated_text for row in rows} == {None}
        assert {row.workflow.stage for row in rows} == {"draft"}
