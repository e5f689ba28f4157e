"""Tests for the error taxonomy and its HTTP status mapping."""

import pytest

from apihub_applications.domain.models.errors import (
    AccessRequestNotFoundError,
    AccessRequestStatusInvalidError,
    ApiNotFoundError,
    ApplicationDeletedError,
    ApplicationNotFoundError,
    ApplicationNotUpdatedError,
    ErrorKind,
    IdentityError,
    IdentityIssue,
    InternalInconsistencyError,
    InvalidRequestError,
    ScopesNotReconciledError,
    TeamNameNotUniqueError,
    TeamNotFoundError,
)
from apihub_applications.domain.models.scope_fix import EnvironmentScopeFix, ScopeFixResult


def failed_result(*issues: IdentityIssue) -> ScopeFixResult:
    return ScopeFixResult(
        application_id="app-1",
        environments=[
            EnvironmentScopeFix(
                environment_id=f"env-{index}",
                error=IdentityError(issue, "failed", environment_id=f"env-{index}"),
            )
            for index, issue in enumerate(issues)
        ],
    )


class TestErrorMapping:
    """Each error kind maps onto one HTTP status."""

    @pytest.mark.parametrize(
        ("error", "status"),
        [
            (ApplicationNotFoundError.for_id("a"), 404),
            (ApplicationNotUpdatedError.for_id("a"), 404),
            (TeamNotFoundError.for_id("t"), 404),
            (AccessRequestNotFoundError.for_id("r"), 404),
            (ApiNotFoundError.for_application("a", "api"), 404),
            (AccessRequestStatusInvalidError.not_pending("r", "APPROVED"), 409),
            (TeamNameNotUniqueError.for_name("Team"), 409),
            (ApplicationDeletedError.for_id("a"), 409),
            (InvalidRequestError("bad"), 400),
            (InternalInconsistencyError("broken"), 500),
        ],
    )
    def test_http_status(self, error, status) -> None:
        assert error.http_status == status

    @pytest.mark.parametrize(
        ("issue", "kind", "status"),
        [
            (IdentityIssue.ClientNotFound, ErrorKind.NotFound, 404),
            (IdentityIssue.CallError, ErrorKind.UpstreamUnavailable, 502),
            (IdentityIssue.Timeout, ErrorKind.UpstreamUnavailable, 504),
            (IdentityIssue.UnexpectedResponse, ErrorKind.UpstreamUnexpectedResponse, 502),
            (IdentityIssue.Unauthorized, ErrorKind.UpstreamUnexpectedResponse, 502),
        ],
    )
    def test_identity_error_mapping(self, issue, kind, status) -> None:
        error = IdentityError(issue, "failed", environment_id="production", client_id="c")

        assert error.kind == kind
        assert error.http_status == status
        assert error.details["issue"] == issue.value

    def test_identity_error_accepts_issue_value(self) -> None:
        error = IdentityError("timeout", "failed", call_made=False)

        assert error.issue == IdentityIssue.Timeout
        assert error.details["callMade"] is False

    def test_details_and_codes(self) -> None:
        error = ApplicationNotFoundError.for_id("64b7f0c2a1d3e4f5a6b7c8d9")

        assert error.code == "APPLICATION_NOT_FOUND"
        assert error.details == {"applicationId": "64b7f0c2a1d3e4f5a6b7c8d9"}
        assert "64b7f0c2a1d3e4f5a6b7c8d9" in str(error)


class TestScopesNotReconciledError:
    """Partial success after a stored mutation."""

    def test_lists_failed_environments(self) -> None:
        error = ScopesNotReconciledError(failed_result(IdentityIssue.CallError))

        assert error.code == "SCOPES_NOT_RECONCILED"
        assert error.details["environments"] == [
            {"environmentId": "env-0", "issue": "call_error"}
        ]
        assert "env-0" in error.message

    @pytest.mark.parametrize(
        ("issue", "status"),
        [
            (IdentityIssue.CallError, 502),
            (IdentityIssue.Timeout, 504),
            (IdentityIssue.UnexpectedResponse, 502),
        ],
    )
    def test_status_follows_first_failure(self, issue, status) -> None:
        assert ScopesNotReconciledError(failed_result(issue)).http_status == status
