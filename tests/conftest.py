"""Pytest fixtures for testing."""

import pytest
from fastapi.testclient import TestClient

from app import app, get_backend
from tests.helpers import FakeBackend


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend(result={"response": "Hello from Workers AI"})


@pytest.fixture
def client(fake_backend: FakeBackend):
    """Gateway test client wired to the fake backend."""
    app.dependency_overrides[get_backend] = lambda: fake_backend
    yield TestClient(app)
    app.dependency_overrides.clear()
