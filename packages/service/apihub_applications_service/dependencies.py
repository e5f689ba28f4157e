"""
Dependency injection setup for the applications service.

Infrastructure (settings, store, HTTP clients, circuit breakers) is built
once per process; domain services are cheap and are assembled per request
from the cached infrastructure so tests can override any layer.
"""

from functools import cache
from typing import Annotated

import httpx
from fastapi import Depends, Header

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
from apihub_applications.domain.interfaces.email_connector import EmailConnector
from apihub_applications.domain.interfaces.identity_connector import IdentityConnector
from apihub_applications.domain.interfaces.state_store import StateStore
from apihub_applications.domain.models.environment import Environments
from apihub_applications.infrastructure.config.settings import ApplicationsSettings
from apihub_applications.infrastructure.email.email_connector import HttpEmailConnector
from apihub_applications.infrastructure.identity.breaker_connector import (
    CircuitBreakerIdentityConnector,
)
from apihub_applications.infrastructure.identity.circuit_breaker import CircuitBreakerRegistry
from apihub_applications.infrastructure.identity.idms_connector import IdmsConnector
from apihub_applications.infrastructure.state_store.memory_store import InMemoryStateStore
from apihub_applications.infrastructure.state_store.mongo_store import MongoStateStore
from apihub_applications.infrastructure.utils.encryption import EncryptionService


@cache
def get_settings() -> ApplicationsSettings:
    """Get a singleton instance of the settings."""
    return ApplicationsSettings()


@cache
def get_environments() -> Environments:
    """Get the validated environments."""
    return get_settings().load_environments()


@cache
def get_state_store() -> StateStore:
    """Get a singleton instance of the StateStore."""
    settings = get_settings()
    if settings.use_memory_store:
        return InMemoryStateStore()
    return MongoStateStore(
        connection_url=settings.mongodb_url,
        database_name=settings.database_name,
        crypto=EncryptionService(),
    )


@cache
def get_http_client() -> httpx.AsyncClient:
    """Get the shared HTTP client for outbound calls."""
    return httpx.AsyncClient(timeout=get_settings().idms_timeout_seconds)


@cache
def get_breaker_registry() -> CircuitBreakerRegistry:
    """Get the per-environment circuit breakers."""
    settings = get_settings()
    return CircuitBreakerRegistry(
        prefix="idms",
        failure_threshold=settings.breaker_failure_threshold,
        rolling_window_seconds=settings.breaker_rolling_window_seconds,
        reset_timeout_seconds=settings.breaker_reset_timeout_seconds,
        call_timeout_seconds=settings.breaker_call_timeout_seconds,
        half_open_max_calls=settings.breaker_half_open_max_calls,
    )


@cache
def get_identity_connector() -> IdentityConnector:
    """Get the breaker-guarded IDMS connector."""
    return CircuitBreakerIdentityConnector(
        IdmsConnector(timeout=get_settings().idms_timeout_seconds, client=get_http_client()),
        get_breaker_registry(),
    )


@cache
def get_email_connector() -> EmailConnector | None:
    """Get the email connector, or None when no email service is configured."""
    settings = get_settings()
    if not settings.email_base_url:
        return None
    return HttpEmailConnector(
        base_url=settings.email_base_url,
        templates=settings.email_templates,
        client=get_http_client(),
    )


def get_current_user(x_user_email: Annotated[str, Header()]) -> str:
    """Acting user's email, supplied by the calling frontend."""
    return x_user_email.strip().lower()


def get_events_service(
    state_store: Annotated[StateStore, Depends(get_state_store)],
) -> EventsService:
    return EventsService(state_store, events_enabled=get_settings().events_enabled)


def get_scope_fixer(
    identity_connector: Annotated[IdentityConnector, Depends(get_identity_connector)],
    environments: Annotated[Environments, Depends(get_environments)],
) -> ScopeFixer:
    return ScopeFixer(identity_connector, environments)


def get_access_requests_service(
    state_store: Annotated[StateStore, Depends(get_state_store)],
    events_service: Annotated[EventsService, Depends(get_events_service)],
    scope_fixer: Annotated[ScopeFixer, Depends(get_scope_fixer)],
    email_connector: Annotated[EmailConnector | None, Depends(get_email_connector)],
) -> AccessRequestsService:
    return AccessRequestsService(state_store, events_service, scope_fixer, email_connector)


def get_applications_api_service(
    state_store: Annotated[StateStore, Depends(get_state_store)],
    access_requests_service: Annotated[
        AccessRequestsService, Depends(get_access_requests_service)
    ],
    scope_fixer: Annotated[ScopeFixer, Depends(get_scope_fixer)],
    events_service: Annotated[EventsService, Depends(get_events_service)],
    email_connector: Annotated[EmailConnector | None, Depends(get_email_connector)],
) -> ApplicationsApiService:
    return ApplicationsApiService(
        state_store, access_requests_service, scope_fixer, events_service, email_connector
    )


def get_lifecycle_service(
    state_store: Annotated[StateStore, Depends(get_state_store)],
    identity_connector: Annotated[IdentityConnector, Depends(get_identity_connector)],
    environments: Annotated[Environments, Depends(get_environments)],
    access_requests_service: Annotated[
        AccessRequestsService, Depends(get_access_requests_service)
    ],
    events_service: Annotated[EventsService, Depends(get_events_service)],
) -> ApplicationsLifecycleService:
    return ApplicationsLifecycleService(
        state_store, identity_connector, environments, access_requests_service, events_service
    )


def get_teams_service(
    state_store: Annotated[StateStore, Depends(get_state_store)],
    events_service: Annotated[EventsService, Depends(get_events_service)],
) -> TeamsService:
    return TeamsService(state_store, events_service)


def get_credentials_service(
    state_store: Annotated[StateStore, Depends(get_state_store)],
    identity_connector: Annotated[IdentityConnector, Depends(get_identity_connector)],
    environments: Annotated[Environments, Depends(get_environments)],
    scope_fixer: Annotated[ScopeFixer, Depends(get_scope_fixer)],
    events_service: Annotated[EventsService, Depends(get_events_service)],
) -> ApplicationsCredentialsService:
    return ApplicationsCredentialsService(
        state_store, identity_connector, environments, scope_fixer, events_service
    )
