"""Error taxonomy for applications, teams, access requests and identity calls."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from apihub_applications.domain.models.scope_fix import ScopeFixResult


class ErrorKind(str, Enum):
    """Kinds of failure a domain operation can report."""

    NotFound = "not_found"
    """Application, team, access request, API or credential does not exist."""

    Conflict = "conflict"
    """Request conflicts with current state (name taken, request not pending)."""

    Validation = "validation"
    """Request payload is malformed or incomplete."""

    UpstreamUnavailable = "upstream_unavailable"
    """Identity system unreachable, timed out or guarded by an open breaker."""

    UpstreamUnexpectedResponse = "upstream_unexpected_response"
    """Identity system answered with something we cannot use."""

    InternalInconsistency = "internal_inconsistency"
    """Stored data violates an invariant. Never recoverable by retrying."""


_HTTP_STATUS: dict[ErrorKind, int] = {
    ErrorKind.NotFound: 404,
    ErrorKind.Conflict: 409,
    ErrorKind.Validation: 400,
    ErrorKind.UpstreamUnavailable: 502,
    ErrorKind.UpstreamUnexpectedResponse: 502,
    ErrorKind.InternalInconsistency: 500,
}


class ApplicationsError(Exception):
    """Base class for every failure a domain operation raises.

    Carries a kind (used for HTTP mapping), a machine-readable code and a
    human-readable message.

    Example:
        ```python
        raise ApplicationNotFoundError.for_id("64b7f0c2a1d3e4f5a6b7c8d9")
        ```
    """

    kind: ErrorKind = ErrorKind.InternalInconsistency
    code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize ApplicationsError.

        Args:
            message: Human-readable error message.
            details: Additional structured details, safe to return to callers.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    @property
    def http_status(self) -> int:
        """HTTP status code this error maps to."""
        return _HTTP_STATUS[self.kind]

    def __repr__(self) -> str:
        """String representation of the error."""
        return f"{type(self).__name__}(code={self.code}, message={self.message!r})"

    def __str__(self) -> str:
        """Human-readable error message."""
        return self.message


class ApplicationNotFoundError(ApplicationsError):
    """Raised when an application cannot be found."""

    kind = ErrorKind.NotFound
    code = "APPLICATION_NOT_FOUND"

    @classmethod
    def for_id(cls, application_id: str) -> ApplicationNotFoundError:
        return cls(
            f"Cannot find application with id {application_id}",
            details={"applicationId": application_id},
        )


class ApplicationNotUpdatedError(ApplicationsError):
    """Raised when an update matched no stored application."""

    kind = ErrorKind.NotFound
    code = "APPLICATION_NOT_UPDATED"

    @classmethod
    def for_id(cls, application_id: str) -> ApplicationNotUpdatedError:
        return cls(
            f"Application with id {application_id} was not updated",
            details={"applicationId": application_id},
        )


class TeamNotFoundError(ApplicationsError):
    """Raised when a team cannot be found."""

    kind = ErrorKind.NotFound
    code = "TEAM_NOT_FOUND"

    @classmethod
    def for_id(cls, team_id: str) -> TeamNotFoundError:
        return cls(f"Cannot find team with id {team_id}", details={"teamId": team_id})


class AccessRequestNotFoundError(ApplicationsError):
    """Raised when an access request cannot be found."""

    kind = ErrorKind.NotFound
    code = "ACCESS_REQUEST_NOT_FOUND"

    @classmethod
    def for_id(cls, access_request_id: str) -> AccessRequestNotFoundError:
        return cls(
            f"Cannot find access request with id {access_request_id}",
            details={"accessRequestId": access_request_id},
        )


class ApiNotFoundError(ApplicationsError):
    """Raised when an API is not linked to an application."""

    kind = ErrorKind.NotFound
    code = "API_NOT_FOUND"

    @classmethod
    def for_application(cls, application_id: str, api_id: str) -> ApiNotFoundError:
        return cls(
            f"Cannot find API {api_id} linked to application {application_id}",
            details={"applicationId": application_id, "apiId": api_id},
        )


class CredentialNotFoundError(ApplicationsError):
    """Raised when an application has no credential in an environment."""

    kind = ErrorKind.NotFound
    code = "CREDENTIAL_NOT_FOUND"

    @classmethod
    def for_environment(
        cls, application_id: str, environment_id: str
    ) -> CredentialNotFoundError:
        return cls(
            f"Application {application_id} has no credential in environment {environment_id}",
            details={"applicationId": application_id, "environmentId": environment_id},
        )

    @classmethod
    def for_client(
        cls, application_id: str, environment_id: str, client_id: str
    ) -> CredentialNotFoundError:
        return cls(
            f"Application {application_id} has no credential {client_id} "
            f"in environment {environment_id}",
            details={
                "applicationId": application_id,
                "environmentId": environment_id,
                "clientId": client_id,
            },
        )


class CredentialLimitError(ApplicationsError):
    """Raised when an environment already holds the application's credential."""

    kind = ErrorKind.Conflict
    code = "APPLICATION_CREDENTIAL_LIMIT"

    @classmethod
    def for_environment(cls, application_id: str, environment_id: str) -> CredentialLimitError:
        return cls(
            f"Application {application_id} already has a credential in environment "
            f"{environment_id}; revoke it first",
            details={"applicationId": application_id, "environmentId": environment_id},
        )


class EnvironmentNotFoundError(ApplicationsError):
    """Raised when an environment id is not configured."""

    kind = ErrorKind.NotFound
    code = "ENVIRONMENT_NOT_FOUND"

    @classmethod
    def for_id(cls, environment_id: str) -> EnvironmentNotFoundError:
        return cls(
            f"Environment {environment_id} is not configured",
            details={"environmentId": environment_id},
        )


class EgressNotFoundError(ApplicationsError):
    """Raised when a team does not have an egress."""

    kind = ErrorKind.NotFound
    code = "EGRESS_NOT_FOUND"

    @classmethod
    def for_team(cls, team_id: str, egress: str) -> EgressNotFoundError:
        return cls(
            f"Team {team_id} does not have egress {egress}",
            details={"teamId": team_id, "egress": egress},
        )


class TeamMemberNotFoundError(ApplicationsError):
    """Raised when an email is not a member of a team."""

    kind = ErrorKind.NotFound
    code = "TEAM_MEMBER_NOT_FOUND"

    @classmethod
    def for_team(cls, team_id: str, email: str) -> TeamMemberNotFoundError:
        return cls(
            f"{email} is not a member of team {team_id}",
            details={"teamId": team_id},
        )


class AccessRequestStatusInvalidError(ApplicationsError):
    """Raised when a decision or cancellation targets a request that is not pending."""

    kind = ErrorKind.Conflict
    code = "ACCESS_REQUEST_STATUS_INVALID"

    @classmethod
    def not_pending(
        cls, access_request_id: str, status: str
    ) -> AccessRequestStatusInvalidError:
        return cls(
            f"Access request {access_request_id} is not pending (status is {status})",
            details={"accessRequestId": access_request_id, "status": status},
        )


class TeamNameNotUniqueError(ApplicationsError):
    """Raised when a team name is already in use."""

    kind = ErrorKind.Conflict
    code = "TEAM_NAME_NOT_UNIQUE"

    @classmethod
    def for_name(cls, name: str) -> TeamNameNotUniqueError:
        return cls(f"The team name {name} is already in use", details={"name": name})


class ApplicationDeletedError(ApplicationsError):
    """Raised when a mutation targets a soft-deleted application."""

    kind = ErrorKind.Conflict
    code = "APPLICATION_DELETED"

    @classmethod
    def for_id(cls, application_id: str) -> ApplicationDeletedError:
        return cls(
            f"Application {application_id} has been deleted",
            details={"applicationId": application_id},
        )


class ApplicationTeamMigratedError(ApplicationsError):
    """Raised when inline team members are edited on a team-owned application."""

    kind = ErrorKind.Conflict
    code = "APPLICATION_TEAM_MIGRATED"

    @classmethod
    def for_id(cls, application_id: str) -> ApplicationTeamMigratedError:
        return cls(
            f"Application {application_id} is owned by a team; edit the team instead",
            details={"applicationId": application_id},
        )


class InvalidRequestError(ApplicationsError):
    """Raised when a request payload is malformed."""

    kind = ErrorKind.Validation
    code = "BAD_REQUEST"


class InternalInconsistencyError(ApplicationsError):
    """Raised when stored data violates an invariant.

    Services never catch this error. It signals corrupted data that no retry
    can repair.
    """

    kind = ErrorKind.InternalInconsistency
    code = "INTERNAL_INCONSISTENCY"


class IdentityIssue(str, Enum):
    """Failure categories reported by the identity system connector."""

    Unauthorized = "unauthorized"
    """The identity system rejected this service's own credentials."""

    ClientNotFound = "client_not_found"
    """The client id does not exist in the identity system."""

    UnexpectedResponse = "unexpected_response"
    """Unexpected status code or malformed body."""

    CallError = "call_error"
    """Network failure, or the circuit breaker refused the call."""

    Timeout = "timeout"
    """The call did not complete in time."""


class IdentityError(ApplicationsError):
    """Failure of a call to the identity system.

    `call_made` is False when the circuit breaker rejected the call before
    any network traffic took place; the issue is then CallError.
    """

    code = "IDENTITY_ERROR"

    def __init__(
        self,
        issue: IdentityIssue | str,
        message: str,
        environment_id: str | None = None,
        client_id: str | None = None,
        call_made: bool = True,
        status_code: int | None = None,
    ) -> None:
        self.issue = IdentityIssue(issue) if isinstance(issue, str) else issue
        self.environment_id = environment_id
        self.client_id = client_id
        self.call_made = call_made
        self.status_code = status_code
        super().__init__(
            message,
            details={
                "issue": self.issue.value,
                "environmentId": environment_id,
                "clientId": client_id,
                "callMade": call_made,
            },
        )

    @property
    def kind(self) -> ErrorKind:  # type: ignore[override]
        if self.issue == IdentityIssue.ClientNotFound:
            return ErrorKind.NotFound
        if self.issue in (IdentityIssue.CallError, IdentityIssue.Timeout):
            return ErrorKind.UpstreamUnavailable
        return ErrorKind.UpstreamUnexpectedResponse

    @property
    def http_status(self) -> int:
        if self.issue == IdentityIssue.Timeout:
            return 504
        return _HTTP_STATUS[self.kind]

    def __repr__(self) -> str:
        return (
            f"IdentityError(issue={self.issue.value}, environment_id={self.environment_id!r}, "
            f"client_id={self.client_id!r}, call_made={self.call_made})"
        )


class ScopesNotReconciledError(ApplicationsError):
    """Raised after a successful mutation whose scope reconciliation failed.

    The database change and its audit event are already stored. Callers can
    retry with the idempotent fix-scopes operation.
    """

    code = "SCOPES_NOT_RECONCILED"

    def __init__(self, result: ScopeFixResult) -> None:
        self.result = result
        failed = [fix.environment_id for fix in result.failures]
        super().__init__(
            f"Scopes for application {result.application_id} could not be reconciled "
            f"in environment(s): {', '.join(failed)}",
            details={
                "applicationId": result.application_id,
                "environments": [
                    {
                        "environmentId": fix.environment_id,
                        "issue": fix.error.issue.value if fix.error else None,
                    }
                    for fix in result.failures
                ],
            },
        )

    def _first_error(self) -> IdentityError | None:
        for fix in self.result.failures:
            if fix.error is not None:
                return fix.error
        return None

    @property
    def kind(self) -> ErrorKind:  # type: ignore[override]
        error = self._first_error()
        if error is not None and error.issue == IdentityIssue.UnexpectedResponse:
            return ErrorKind.UpstreamUnexpectedResponse
        return ErrorKind.UpstreamUnavailable

    @property
    def http_status(self) -> int:
        error = self._first_error()
        if error is not None and error.issue == IdentityIssue.Timeout:
            return 504
        return 502
