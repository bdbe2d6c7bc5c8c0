from __future__ import annotations

from collections.abc import Callable, Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from huddle.core.database import build_engine
from huddle.core.settings import Settings
from huddle.main import create_app


@pytest.fixture
def make_client() -> Iterator[Callable[..., TestClient]]:
    """Build an app on a private in-memory database and enter its lifespan."""
    clients: list[TestClient] = []

    def _make(**overrides) -> TestClient:
        settings = Settings(database_url="sqlite://", **overrides)
        app: FastAPI = create_app(settings, engine=build_engine(settings.database_url))
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()
