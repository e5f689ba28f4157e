"""Domain components."""

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

__all__ = [
    "AccessRequestsService",
    "ApplicationsApiService",
    "ApplicationsCredentialsService",
    "ApplicationsLifecycleService",
    "EventsService",
    "ScopeFixer",
    "TeamsService",
]
