"""ApplicationsApiService component orchestrating API links and team ownership."""

from collections.abc import Callable
from datetime import datetime

import structlog

from apihub_applications.domain.components import event_derivation
from apihub_applications.domain.components.access_requests_service import AccessRequestsService
from apihub_applications.domain.components.events_service import EventsService
from apihub_applications.domain.components.scope_fixer import ScopeFixer
from apihub_applications.domain.interfaces.email_connector import EmailConnector
from apihub_applications.domain.interfaces.state_store import StateStore
from apihub_applications.domain.models.application import AddApiRequest, Application
from apihub_applications.domain.models.errors import (
    ApiNotFoundError,
    ApplicationDeletedError,
    ApplicationNotFoundError,
    ScopesNotReconciledError,
    TeamNotFoundError,
)
from apihub_applications.domain.models.scope_fix import ScopeFixResult
from apihub_applications.domain.models.team import Team

logger = structlog.get_logger(__name__)


class ApplicationsApiService:
    """Links APIs to applications, changes ownership and repairs scopes.

    Each operation is a short sequence of steps rather than a transaction:
    the application is persisted first, the audit event is recorded, and
    only then are scopes reconciled. When reconciliation fails the earlier
    steps stand and ScopesNotReconciledError is raised; `fix_scopes` is the
    idempotent way to finish the job.
    """

    def __init__(
        self,
        state_store: StateStore,
        access_requests_service: AccessRequestsService,
        scope_fixer: ScopeFixer,
        events_service: EventsService,
        email_connector: EmailConnector | None = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        """Initialize ApplicationsApiService.

        Args:
            state_store: StateStore for applications, teams and access requests.
            access_requests_service: Used to cancel requests for removed APIs.
            scope_fixer: ScopeFixer reconciling credential scopes.
            events_service: EventsService recording the audit trail.
            email_connector: Optional EmailConnector for ownership notifications.
            clock: Source of the current time.
        """
        self._state_store = state_store
        self._access_requests = access_requests_service
        self._scope_fixer = scope_fixer
        self._events = events_service
        self._email = email_connector
        self._clock = clock

    async def _get_application(self, application_id: str, include_deleted: bool) -> Application:
        application = await self._state_store.get_application(
            application_id, include_deleted=True
        )
        if application is None:
            raise ApplicationNotFoundError.for_id(application_id)
        if application.is_deleted and not include_deleted:
            raise ApplicationDeletedError.for_id(application_id)
        return application

    async def _reconcile(self, application: Application) -> ScopeFixResult:
        access_requests = await self._state_store.find_access_requests(
            application_id=application.safe_id
        )
        result = await self._scope_fixer.fix(application, access_requests)
        if not result.succeeded:
            raise ScopesNotReconciledError(result)
        return result

    async def add_api(
        self, application_id: str, request: AddApiRequest, user: str
    ) -> Application:
        """Link an API to an application, or replace its endpoints if already linked.

        Args:
            application_id: Application to change.
            request: API id, title and the endpoints in use.
            user: Acting user's email.

        Returns:
            The updated application.

        Raises:
            ApplicationNotFoundError: If the application does not exist.
            ApplicationDeletedError: If the application is soft-deleted.
            ApplicationNotUpdatedError: If the update matched nothing.
            ScopesNotReconciledError: If the API was linked but scopes could
                not be reconciled.
        """
        application = await self._get_application(application_id, include_deleted=False)

        now = self._clock()
        api = request.to_api()
        updated = application.replace_api(api).updated(now)
        await self._state_store.update_application(updated)
        await self._events.log(event_derivation.api_added(updated, api, user, now))

        await self._reconcile(updated)
        return updated

    async def remove_api(self, application_id: str, api_id: str, user: str) -> Application:
        """Unlink an API, cancelling its pending access requests first.

        Pending requests are cancelled before the application is saved so a
        failure between the two steps leaves no orphaned pending request.

        Raises:
            ApplicationNotFoundError: If the application does not exist.
            ApplicationDeletedError: If the application is soft-deleted.
            ApiNotFoundError: If the API is not linked.
            ScopesNotReconciledError: If the API was unlinked but scopes could
                not be reconciled.
        """
        application = await self._get_application(application_id, include_deleted=False)
        api = application.get_api(api_id)
        if api is None:
            raise ApiNotFoundError.for_application(application_id, api_id)

        await self._access_requests.cancel_pending_for_api(application.safe_id, api_id, user)

        now = self._clock()
        updated = application.remove_api(api_id).updated(now)
        await self._state_store.update_application(updated)
        await self._events.log(event_derivation.api_removed(updated, api, user, now))

        await self._reconcile(updated)
        return updated

    async def change_owning_team(self, application_id: str, team_id: str, user: str) -> Application:
        """Give ownership of an application to a team.

        Soft-deleted applications can still change team. Ownership emails are
        best-effort and never undo the change.

        Raises:
            ApplicationNotFoundError: If the application does not exist.
            TeamNotFoundError: If the new team does not exist.
        """
        application = await self._get_application(application_id, include_deleted=True)

        new_team = await self._state_store.get_team(team_id)
        if new_team is None:
            raise TeamNotFoundError.for_id(team_id)
        old_team = await self._find_team(application.team_id)

        now = self._clock()
        updated = application.set_team_id(team_id).updated(now)
        await self._state_store.update_application(updated)
        await self._events.log(
            event_derivation.team_changed(updated, new_team, old_team, user, now)
        )

        if old_team is None or old_team.id != new_team.id:
            await self._notify_ownership_change(application, old_team, new_team)

        return updated

    async def remove_owning_team(self, application_id: str, user: str) -> Application:
        """Remove the owning team; a no-op when there is none.

        Raises:
            ApplicationNotFoundError: If the application does not exist.
        """
        application = await self._get_application(application_id, include_deleted=True)
        if application.team_id is None:
            return application

        old_team = await self._find_team(application.team_id)
        now = self._clock()
        updated = application.remove_team(now)
        await self._state_store.update_application(updated)
        await self._events.log(event_derivation.team_changed(updated, None, old_team, user, now))
        return updated

    async def fix_scopes(self, application_id: str, user: str) -> ScopeFixResult:
        """Reconcile scopes without changing the application.

        Raises:
            ApplicationNotFoundError: If the application does not exist.
            ApplicationDeletedError: If the application is soft-deleted.
            ScopesNotReconciledError: If any environment failed.
        """
        application = await self._get_application(application_id, include_deleted=False)
        result = await self._reconcile(application)
        await self._events.log(event_derivation.scopes_fixed(application, user, self._clock()))
        return result

    async def _find_team(self, team_id: str | None) -> Team | None:
        if team_id is None:
            return None
        return await self._state_store.get_team(team_id)

    async def _notify_ownership_change(
        self, application: Application, old_team: Team | None, new_team: Team
    ) -> None:
        if self._email is None:
            return
        try:
            if old_team is not None:
                await self._email.send_ownership_changed_to_old_team(
                    old_team, new_team, application
                )
            await self._email.send_ownership_changed_to_new_team(new_team, application)
        except Exception as e:
            logger.warning(
                "ownership_change_email_failed",
                application_id=application.id,
                new_team_id=new_team.id,
                old_team_id=old_team.id if old_team else None,
                error=str(e),
            )
