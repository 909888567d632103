"""Fixtures for HTTP tests: an application over an in-memory context."""

import pytest
from fastapi.testclient import TestClient

from server.server import create_app


@pytest.fixture
def client_factory(context_factory):
    """Factory for a started TestClient; keyword arguments go to context_factory."""
    clients = []

    def _factory(**kwargs):
        context = context_factory(**kwargs)
        client = TestClient(create_app(context.settings, context))
        client.__enter__()
        clients.append(client)
        return client

    yield _factory
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(client_factory):
    return client_factory()


@pytest.fixture
def app_context(client):
    """LocalizationContext served by ``client``."""
    return client.app.state.localization
