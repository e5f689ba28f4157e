"""AccessRequestsService component for the access request lifecycle."""

from collections.abc import Callable
from datetime import datetime

import structlog

from apihub_applications.domain.components import event_derivation
from apihub_applications.domain.components.events_service import EventsService
from apihub_applications.domain.components.scope_fixer import ScopeFixer
from apihub_applications.domain.interfaces.email_connector import EmailConnector
from apihub_applications.domain.interfaces.state_store import StateStore
from apihub_applications.domain.models.access_request import (
    AccessRequest,
    AccessRequestRequest,
    AccessRequestStatus,
)
from apihub_applications.domain.models.application import Application
from apihub_applications.domain.models.errors import (
    AccessRequestNotFoundError,
    AccessRequestStatusInvalidError,
    ApplicationNotFoundError,
    InvalidRequestError,
    ScopesNotReconciledError,
)

logger = structlog.get_logger(__name__)


class AccessRequestsService:
    """Manages access requests through Pending -> Approved/Rejected/Cancelled.

    Approved, Rejected and Cancelled are terminal. Deciding or cancelling a
    request that is not Pending fails with AccessRequestStatusInvalidError
    and changes nothing. Approval re-runs scope reconciliation for the
    owning application so the newly approved scopes are granted.
    """

    def __init__(
        self,
        state_store: StateStore,
        events_service: EventsService,
        scope_fixer: ScopeFixer,
        email_connector: EmailConnector | None = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        """Initialize AccessRequestsService.

        Args:
            state_store: StateStore for access requests and applications.
            events_service: EventsService recording the audit trail.
            scope_fixer: ScopeFixer run after approvals.
            email_connector: Optional EmailConnector for notifications.
            clock: Source of the current time.
        """
        self._state_store = state_store
        self._events = events_service
        self._scope_fixer = scope_fixer
        self._email = email_connector
        self._clock = clock

    async def create_access_requests(self, request: AccessRequestRequest) -> list[AccessRequest]:
        """Submit one Pending access request per requested API.

        Raises:
            ApplicationNotFoundError: If the application does not exist or is
                deleted.
        """
        application = await self._state_store.get_application(request.application_id)
        if application is None:
            raise ApplicationNotFoundError.for_id(request.application_id)

        access_requests = await self._state_store.insert_access_requests(
            request.to_access_requests(self._clock())
        )
        for access_request in access_requests:
            await self._events.log(event_derivation.access_request_created(access_request))

        if self._email is not None:
            try:
                await self._email.send_access_request_submitted(application, request)
            except Exception as e:
                logger.warning(
                    "access_request_submitted_email_failed",
                    application_id=request.application_id,
                    error=str(e),
                )

        return access_requests

    async def get_access_request(self, access_request_id: str) -> AccessRequest | None:
        return await self._state_store.get_access_request(access_request_id)

    async def get_access_requests(
        self,
        application_id: str | None = None,
        status: AccessRequestStatus | None = None,
    ) -> list[AccessRequest]:
        return await self._state_store.find_access_requests(application_id, status)

    async def _get_pending(self, access_request_id: str) -> AccessRequest:
        access_request = await self._state_store.get_access_request(access_request_id)
        if access_request is None:
            raise AccessRequestNotFoundError.for_id(access_request_id)
        if not access_request.is_pending:
            raise AccessRequestStatusInvalidError.not_pending(
                access_request_id, access_request.status.value
            )
        return access_request

    async def approve(self, access_request_id: str, decided_by: str) -> AccessRequest:
        """Approve a Pending request and grant its scopes.

        The approval is persisted before reconciliation. If reconciliation
        fails the approval stands, the Approved event is still recorded, and
        ScopesNotReconciledError is raised so the caller can retry with
        fix-scopes.

        Args:
            access_request_id: Request to approve.
            decided_by: Approver email.

        Returns:
            The approved request.

        Raises:
            AccessRequestNotFoundError: If the request does not exist.
            AccessRequestStatusInvalidError: If the request is not Pending.
            ApplicationNotFoundError: If the owning application is missing.
            ScopesNotReconciledError: If scopes could not be granted.
        """
        access_request = await self._get_pending(access_request_id)
        application = await self._state_store.get_application(access_request.application_id)
        if application is None:
            raise ApplicationNotFoundError.for_id(access_request.application_id)

        approved = access_request.approve(self._clock(), decided_by)
        await self._state_store.update_access_request(approved)

        access_requests = await self._state_store.find_access_requests(
            application_id=application.safe_id
        )
        result = await self._scope_fixer.fix(application, access_requests)

        await self._events.log(event_derivation.access_request_approved(approved))

        if not result.succeeded:
            raise ScopesNotReconciledError(result)

        await self._notify(approved, application, approve=True)
        return approved

    async def reject(self, access_request_id: str, decided_by: str, reason: str) -> AccessRequest:
        """Reject a Pending request.

        Raises:
            InvalidRequestError: If no rejection reason is given.
            AccessRequestNotFoundError: If the request does not exist.
            AccessRequestStatusInvalidError: If the request is not Pending.
        """
        if not reason or not reason.strip():
            raise InvalidRequestError("A rejection reason is required")

        access_request = await self._get_pending(access_request_id)
        rejected = access_request.reject(self._clock(), decided_by, reason.strip())
        await self._state_store.update_access_request(rejected)
        await self._events.log(event_derivation.access_request_rejected(rejected))

        application = await self._state_store.get_application(rejected.application_id)
        if application is not None:
            await self._notify(rejected, application, approve=False)
        return rejected

    async def cancel(self, access_request_id: str, cancelled_by: str) -> AccessRequest:
        """Cancel a Pending request.

        Raises:
            AccessRequestNotFoundError: If the request does not exist.
            AccessRequestStatusInvalidError: If the request is not Pending.
        """
        access_request = await self._get_pending(access_request_id)
        return await self._cancel(access_request, cancelled_by)

    async def cancel_pending_for_api(
        self, application_id: str, api_id: str, cancelled_by: str
    ) -> list[AccessRequest]:
        """Cancel every Pending request of an application for one API."""
        pending = await self._state_store.find_access_requests(
            application_id=application_id, status=AccessRequestStatus.Pending
        )
        return [
            await self._cancel(access_request, cancelled_by)
            for access_request in pending
            if access_request.api_id == api_id
        ]

    async def cancel_pending_for_application(
        self, application_id: str, cancelled_by: str
    ) -> list[AccessRequest]:
        """Cancel every Pending request of an application."""
        pending = await self._state_store.find_access_requests(
            application_id=application_id, status=AccessRequestStatus.Pending
        )
        return [await self._cancel(access_request, cancelled_by) for access_request in pending]

    async def _cancel(self, access_request: AccessRequest, cancelled_by: str) -> AccessRequest:
        cancelled = access_request.cancel(self._clock(), cancelled_by)
        await self._state_store.update_access_request(cancelled)
        await self._events.log(event_derivation.access_request_cancelled(cancelled))
        return cancelled

    async def _recipients(self, application: Application) -> list[str]:
        if application.team_id is not None:
            team = await self._state_store.get_team(application.team_id)
            return team.member_emails if team is not None else []
        return [member.email for member in application.team_members]

    async def _notify(
        self, access_request: AccessRequest, application: Application, approve: bool
    ) -> None:
        if self._email is None:
            return
        try:
            recipients = await self._recipients(application)
            if approve:
                await self._email.send_access_approved(application, access_request, recipients)
            else:
                await self._email.send_access_rejected(application, access_request, recipients)
        except Exception as e:
            # Notifications never undo a decision
            logger.warning(
                "access_request_decision_email_failed",
                access_request_id=access_request.id,
                status=access_request.status.value,
                error=str(e),
            )
