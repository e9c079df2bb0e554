"""Shared pytest fixtures."""

import pytest
from fastapi.testclient import TestClient

from helpers import make_router, make_stubs
from infohealth.main import app, get_database, get_routing_service


@pytest.fixture
def stubs():
    return make_stubs()


@pytest.fixture
def client():
    """
    TestClient with routing and request-log dependencies overridable per test
    via `app.dependency_overrides`. Defaults: all keys, stub adapters, no DB.
    """
    router = make_router()
    app.dependency_overrides[get_routing_service] = lambda: router
    app.dependency_overrides[get_database] = lambda: None
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
