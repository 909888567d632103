"""Shared fixtures: settings, an in-memory localization context and callers."""

import pytest

from infrastructure.configuration import (
    LocalizationSettings,
    PersistenceSettings,
    RetrySettings,
    Settings,
)
from infrastructure.configuration.infrastructure import ServerSettings
from infrastructure.identity import IdentitySource, User
from infrastructure.persistence import InMemoryDocumentStore
from modules.localization.context import build_context
from modules.localization.providers.registry import ProviderRegistry
from modules.localization.service import LocalizationService
from tests.factories.localization import FakeProvider, make_language_payload


@pytest.fixture
def settings_factory():
    """Factory for Settings backed by memory stores with caches disabled.

    Keyword arguments are LOCALIZATION_* overrides.
    """

    def _factory(**localization):
        values = {
            "LOCALIZATION_PROVIDERS": [
                {"name": "deepl", "priority": 1},
                {"name": "google", "priority": 2},
            ],
            "LOCALIZATION_COMPLETENESS_CACHE_TTL_MS": 0,
            "LOCALIZATION_PROVIDER_CACHE_TTL_SECONDS": 0,
        }
        values.update(localization)
        return Settings(
            localization=LocalizationSettings(**values),
            persistence=PersistenceSettings(PERSISTENCE_BACKEND="memory"),
            retry=RetrySettings(RETRY_BACKEND="memory", RETRY_BASE_DELAY_SECONDS=1),
            server=ServerSettings(TRANSLATION_WORKER_ENABLED=False),
        )

    return _factory


@pytest.fixture
def settings(settings_factory):
    return settings_factory()


@pytest.fixture
def provider_registry_factory():
    """Factory for a ProviderRegistry holding the given providers."""

    def _factory(*providers):
        registry = ProviderRegistry()
        for provider in providers or (
            FakeProvider("deepl", confidence=0.95),
            FakeProvider("google", confidence=0.9),
        ):
            registry.register(provider)
        return registry

    return _factory


@pytest.fixture
def context_factory(settings_factory, provider_registry_factory):
    """Factory for a LocalizationContext on an in-memory document store."""

    def _factory(settings=None, providers=None, **localization):
        return build_context(
            settings or settings_factory(**localization),
            documents=InMemoryDocumentStore(),
            providers=providers if providers is not None else provider_registry_factory(),
        )

    return _factory


@pytest.fixture
def context(context_factory):
    return context_factory()


@pytest.fixture
def service(context):
    return LocalizationService(context)


@pytest.fixture
def make_user():
    """Factory for User instances forwarded by the authentication layer."""

    def _make(user_id="user-1", roles=(), email=""):
        return User(
            user_id=user_id,
            email=email,
            display_name=user_id,
            source=IdentitySource.API_HEADERS,
            roles=list(roles),
        )

    return _make


@pytest.fixture
def admin(make_user):
    return make_user("admin-1", roles=["admin"])


@pytest.fixture
def translator(make_user):
    return make_user("translator-1", roles=["translator"])


@pytest.fixture
def reviewer(make_user):
    return make_user("reviewer-1", roles=["reviewer"])


@pytest.fixture
def viewer(make_user):
    return make_user("viewer-1")


@pytest.fixture
def seed_languages():
    """Coroutine factory creating EN (default) plus the given target languages."""

    async def _seed(context, *codes, **overrides):
        created = [await context.languages.create(make_language_payload("EN"))]
        for code in codes or ("FR", "DE"):
            created.append(
                await context.languages.create(make_language_payload(code, **overrides))
            )
        return created

    return _seed
