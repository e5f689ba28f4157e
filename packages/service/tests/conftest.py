"""Pytest configuration for the HTTP service tests."""

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from apihub_applications.infrastructure.state_store.memory_store import InMemoryStateStore
from apihub_applications_service import dependencies
from apihub_applications_service.main import app
from fixtures.test_data import FakeEmailConnector, FakeIdentityConnector, make_environments


@pytest.fixture
def state_store() -> InMemoryStateStore:
    return InMemoryStateStore()


@pytest.fixture
def identity() -> FakeIdentityConnector:
    return FakeIdentityConnector()


@pytest.fixture
def email() -> FakeEmailConnector:
    return FakeEmailConnector()


@pytest.fixture
def client(
    state_store: InMemoryStateStore,
    identity: FakeIdentityConnector,
    email: FakeEmailConnector,
) -> Iterator[TestClient]:
    """TestClient wired to in-memory infrastructure, acting as admin@example.com."""
    environments = make_environments()
    app.dependency_overrides[dependencies.get_state_store] = lambda: state_store
    app.dependency_overrides[dependencies.get_identity_connector] = lambda: identity
    app.dependency_overrides[dependencies.get_environments] = lambda: environments
    app.dependency_overrides[dependencies.get_email_connector] = lambda: email

    with TestClient(app, headers={"X-User-Email": "Admin@Example.com"}) as test_client:
        yield test_client

    app.dependency_overrides.clear()
