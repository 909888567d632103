"""Tests for the application factory, system routes and the lifespan."""

import asyncio

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from infrastructure.configuration.infrastructure import ServerSettings
from modules.localization.context import LocalizationContext
from modules.localization.domain.models import LANGUAGES
from modules.localization.service import LocalizationService
from server.lifespan import lifespan
from server.server import create_app
from tests.factories.localization import make_language_payload, make_room_type


@pytest.fixture
def worker_settings(settings_factory):
    settings = settings_factory()
    settings.server = ServerSettings(
        TRANSLATION_WORKER_ENABLED=True, TRANSLATION_WORKER_INTERVAL_SECONDS=0.01
    )
    return settings


def _app(context):
    app = FastAPI()
    app.state.settings = context.settings
    app.state.localization = context
    return app


@pytest.mark.unit
class TestCreateApp:
    """Tests for create_app()."""

    def test_cors_middleware(self, settings):
        app = create_app(settings)

        assert "CORSMiddleware" in [m.cls.__name__ for m in app.user_middleware]

    def test_system_routes(self, settings, context_factory):
        with TestClient(create_app(settings, context_factory())) as client:
            assert client.get("/health").json() == {"status": "ok"}
            assert client.get("/version").json() == {"version": "Unknown"}

    def test_unmapped_route(self, settings, context_factory):
        with TestClient(create_app(settings, context_factory())) as client:
            assert client.get("/some/unmapped/path").status_code == 404

    def test_context_is_built_at_startup(self, settings):
        app = create_app(settings)

        with TestClient(app):
            assert isinstance(app.state.localization, LocalizationContext)
            assert isinstance(app.state.localization_service, LocalizationService)
            assert app.state.translation_worker is None


@pytest.mark.unit
class TestLifespan:
    """Tests for startup and shutdown work."""

    async def test_default_language_drift_is_repaired(self, context):
        await context.languages.create(make_language_payload("EN"))
        await context.languages.create(make_language_payload("FR"))
        await context.documents.update(LANGUAGES, "FR", {"$set": {"is_default": True}})

        async with lifespan(_app(context)):
            pass

        defaults = await context.documents.find(LANGUAGES, {"is_default": True})
        assert [doc["id"] for doc in defaults] == ["EN"]

    async def test_catalog_is_seeded(self, context_factory, tmp_path):
        (tmp_path / "common.EN.yml").write_text("nav:\n  home: Home\n", encoding="utf-8")
        context = context_factory(LOCALIZATION_UI_CATALOG_PATH=str(tmp_path))

        async with lifespan(_app(context)):
            namespaces = await context.ui.list_namespaces()

        assert [ns["name"] for ns in namespaces] == ["common"]

    async def test_broken_catalog_does_not_block_startup(self, context_factory, tmp_path):
        context = context_factory(LOCALIZATION_UI_CATALOG_PATH=str(tmp_path / "missing"))
        app = _app(context)

        async with lifespan(app):
            assert app.state.localization_service is not None

    async def test_worker_drains_queue(self, context_factory, worker_settings, seed_languages):
        context = context_factory(settings=worker_settings)
        await seed_languages(context, "FR")
        room = make_room_type(amenities=(), n_images=0, content={"auto_translate": True})
        opened = await context.adapter.on_resource_changed("room_type", room)
        app = _app(context)

        async with lifespan(app):
            task = app.state.translation_worker
            for _ in range(100):
                if (await context.work_queue.stats())["active_records"] == 0:
                    break
                await asyncio.sleep(0.01)

        assert task.done()
        rows = [await context.store.get(row.id) for row in opened]
        assert {row.translated_text for row in rows} == {
            "[FR] Deluxe Room",
            "[FR] A spacious room with a sea view",
            "[FR] Sea view room",
        }
