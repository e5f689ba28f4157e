"""Pytest configuration and shared fixtures."""
import os
from pathlib import Path

import pytest
from dotenv import load_dotenv

from apihub_applications.domain.components.access_requests_service import AccessRequestsService
from apihub_applications.domain.components.applications_api_service import ApplicationsApiService
from apihub_applications.domain.components.applications_credentials_service import (
    ApplicationsCredentialsService,
)
from apihub_applications.domain.components.applications_lifecycle_service import (
    ApplicationsLifecycleService,
)
from apihub_applications.domain.components.events_service import EventsService
from apihub_applications.domain.components.scope_fixer import ScopeFixer
from apihub_applications.domain.components.teams_service import TeamsService
from apihub_applications.domain.models.environment import Environments
from apihub_applications.infrastructure.state_store.memory_store import InMemoryStateStore
from fixtures.test_data import (
    FakeEmailConnector,
    FakeIdentityConnector,
    FixedClock,
    make_environments,
)

# Load .env file from project root before running tests
project_root = Path(__file__).parent.parent.parent.parent
env_path = project_root / ".env"
if env_path.exists():
    load_dotenv(env_path)
else:
    core_env_path = project_root / "packages" / "core" / ".env"
    if core_env_path.exists():
        load_dotenv(core_env_path)

# Ensure encryption key is set for all tests
if not os.getenv("APIHUB_ENCRYPTION_KEY"):
    from cryptography.fernet import Fernet

    os.environ["APIHUB_ENCRYPTION_KEY"] = Fernet.generate_key().decode()


@pytest.fixture
def environments() -> Environments:
    return make_environments()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


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
def events_service(state_store: InMemoryStateStore) -> EventsService:
    return EventsService(state_store)


@pytest.fixture
def scope_fixer(identity: FakeIdentityConnector, environments: Environments) -> ScopeFixer:
    return ScopeFixer(identity, environments)


@pytest.fixture
def access_requests_service(
    state_store: InMemoryStateStore,
    events_service: EventsService,
    scope_fixer: ScopeFixer,
    email: FakeEmailConnector,
    clock: FixedClock,
) -> AccessRequestsService:
    return AccessRequestsService(state_store, events_service, scope_fixer, email, clock)


@pytest.fixture
def api_service(
    state_store: InMemoryStateStore,
    access_requests_service: AccessRequestsService,
    scope_fixer: ScopeFixer,
    events_service: EventsService,
    email: FakeEmailConnector,
    clock: FixedClock,
) -> ApplicationsApiService:
    return ApplicationsApiService(
        state_store, access_requests_service, scope_fixer, events_service, email, clock
    )


@pytest.fixture
def lifecycle_service(
    state_store: InMemoryStateStore,
    identity: FakeIdentityConnector,
    environments: Environments,
    access_requests_service: AccessRequestsService,
    events_service: EventsService,
    clock: FixedClock,
) -> ApplicationsLifecycleService:
    return ApplicationsLifecycleService(
        state_store, identity, environments, access_requests_service, events_service, clock
    )


@pytest.fixture
def credentials_service(
    state_store: InMemoryStateStore,
    identity: FakeIdentityConnector,
    environments: Environments,
    scope_fixer: ScopeFixer,
    events_service: EventsService,
    clock: FixedClock,
) -> ApplicationsCredentialsService:
    return ApplicationsCredentialsService(
        state_store, identity, environments, scope_fixer, events_service, clock
    )


@pytest.fixture
def teams_service(
    state_store: InMemoryStateStore, events_service: EventsService, clock: FixedClock
) -> TeamsService:
    return TeamsService(state_store, events_service, clock)
