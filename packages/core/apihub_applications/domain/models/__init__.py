"""Domain models for the API Hub applications core."""

from apihub_applications.domain.models.access_request import (
    AccessRequest,
    AccessRequestApi,
    AccessRequestCancelled,
    AccessRequestDecision,
    AccessRequestEndpoint,
    AccessRequestRequest,
    AccessRequestStatus,
)
from apihub_applications.domain.models.application import (
    API_NAME_UNKNOWN,
    AddApiRequest,
    Api,
    Application,
    Credential,
    CredentialScopes,
    Deleted,
    Endpoint,
    NewApplication,
    TeamMember,
)
from apihub_applications.domain.models.environment import (
    PRODUCTION_ENVIRONMENT_ID,
    Environment,
    Environments,
)
from apihub_applications.domain.models.errors import (
    AccessRequestNotFoundError,
    AccessRequestStatusInvalidError,
    ApiNotFoundError,
    ApplicationDeletedError,
    ApplicationNotFoundError,
    ApplicationNotUpdatedError,
    ApplicationsError,
    ApplicationTeamMigratedError,
    CredentialLimitError,
    CredentialNotFoundError,
    EgressNotFoundError,
    EnvironmentNotFoundError,
    ErrorKind,
    IdentityError,
    IdentityIssue,
    InternalInconsistencyError,
    InvalidRequestError,
    ScopesNotReconciledError,
    TeamMemberNotFoundError,
    TeamNameNotUniqueError,
    TeamNotFoundError,
)
from apihub_applications.domain.models.event import (
    MIGRATION_USER,
    UNKNOWN,
    EntityType,
    Event,
    EventType,
)
from apihub_applications.domain.models.scope_fix import (
    EnvironmentScopeFix,
    ScopeFixResult,
    ScopeOperation,
)
from apihub_applications.domain.models.team import NewTeam, Team, TeamType

__all__ = [
    "AccessRequest",
    "AccessRequestApi",
    "AccessRequestCancelled",
    "AccessRequestDecision",
    "AccessRequestEndpoint",
    "AccessRequestRequest",
    "AccessRequestStatus",
    "API_NAME_UNKNOWN",
    "AddApiRequest",
    "Api",
    "Application",
    "Credential",
    "CredentialScopes",
    "Deleted",
    "Endpoint",
    "NewApplication",
    "TeamMember",
    "PRODUCTION_ENVIRONMENT_ID",
    "Environment",
    "Environments",
    "AccessRequestNotFoundError",
    "AccessRequestStatusInvalidError",
    "ApiNotFoundError",
    "ApplicationDeletedError",
    "ApplicationNotFoundError",
    "ApplicationNotUpdatedError",
    "ApplicationsError",
    "ApplicationTeamMigratedError",
    "CredentialLimitError",
    "CredentialNotFoundError",
    "EgressNotFoundError",
    "EnvironmentNotFoundError",
    "ErrorKind",
    "IdentityError",
    "IdentityIssue",
    "InternalInconsistencyError",
    "InvalidRequestError",
    "ScopesNotReconciledError",
    "TeamMemberNotFoundError",
    "TeamNameNotUniqueError",
    "TeamNotFoundError",
    "MIGRATION_USER",
    "UNKNOWN",
    "EntityType",
    "Event",
    "EventType",
    "EnvironmentScopeFix",
    "ScopeFixResult",
    "ScopeOperation",
    "NewTeam",
    "Team",
    "TeamType",
]
