"""ApplicationsLifecycleService component for registering and deleting applications."""

from collections.abc import Callable
from datetime import datetime

import structlog

from apihub_applications.domain.components import event_derivation
from apihub_applications.domain.components.access_requests_service import AccessRequestsService
from apihub_applications.domain.components.events_service import EventsService
from apihub_applications.domain.interfaces.identity_connector import IdentityConnector
from apihub_applications.domain.interfaces.state_store import StateStore
from apihub_applications.domain.models.application import Application, NewApplication
from apihub_applications.domain.models.environment import Environments
from apihub_applications.domain.models.errors import (
    ApplicationDeletedError,
    ApplicationNotFoundError,
    ApplicationTeamMigratedError,
    IdentityError,
    IdentityIssue,
    TeamNotFoundError,
)

logger = structlog.get_logger(__name__)


class ApplicationsLifecycleService:
    """Registers, finds and soft-deletes applications.

    Registration creates one identity-system client per configured
    environment before anything is stored, so a failed registration leaves
    no application behind. Deletion is soft: the record stays with a
    `deleted` stamp while its clients are removed from the identity system.
    """

    def __init__(
        self,
        state_store: StateStore,
        identity_connector: IdentityConnector,
        environments: Environments,
        access_requests_service: AccessRequestsService,
        events_service: EventsService,
        clock: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        self._state_store = state_store
        self._identity = identity_connector
        self._environments = environments
        self._access_requests = access_requests_service
        self._events = events_service
        self._clock = clock

    async def register_application(self, request: NewApplication, user: str) -> Application:
        """Register an application and create its credentials.

        The returned application carries each credential's one-time secret;
        the stored copy never does.

        Args:
            request: Name, creator and either an owning team or inline members.
            user: Acting user's email.

        Returns:
            The stored application with client secrets attached.

        Raises:
            TeamNotFoundError: If the owning team does not exist.
            IdentityError: If a client could not be created.
        """
        team = None
        if request.team_id is not None:
            team = await self._state_store.get_team(request.team_id)
            if team is None:
                raise TeamNotFoundError.for_id(request.team_id)

        now = self._clock()
        application = Application(
            name=request.name,
            created=now,
            last_updated=now,
            created_by=request.created_by,
            team_id=request.team_id,
            team_members=request.team_members,
        )
        if team is None:
            application = application.add_team_member(request.created_by)

        credentials = []
        for environment in self._environments.ordered:
            credential = await self._identity.create_client(environment, application.name)
            credentials.append(credential)
            application = application.add_credential(credential.without_secret())

        saved = await self._state_store.insert_application(application)
        logger.info(
            "application_registered",
            application_id=saved.id,
            environments=[credential.environment_id for credential in credentials],
        )

        await self._events.log_all(
            [
                event_derivation.application_registered(saved, team, user, now),
                *(
                    event_derivation.credential_created(saved, credential, user, now)
                    for credential in credentials
                ),
            ]
        )

        return saved.model_copy(update={"credentials": credentials})

    async def find_by_id(self, application_id: str, include_deleted: bool = False) -> Application:
        """Get an application.

        Raises:
            ApplicationNotFoundError: If the application does not exist.
        """
        application = await self._state_store.get_application(
            application_id, include_deleted=include_deleted
        )
        if application is None:
            raise ApplicationNotFoundError.for_id(application_id)
        return application

    async def find_all(
        self, team_member: str | None = None, include_deleted: bool = False
    ) -> list[Application]:
        """List applications, optionally those a user belongs to.

        A user belongs to an application through its inline members or
        through membership of the owning team.
        """
        if team_member is None:
            return await self._state_store.list_applications(None, include_deleted)

        inline = await self._state_store.list_applications(team_member, include_deleted)
        team_ids = {team.id for team in await self._state_store.list_teams(team_member)}
        owned = []
        if team_ids:
            owned = [
                application
                for application in await self._state_store.list_applications(None, include_deleted)
                if application.team_id in team_ids
            ]
        by_id = {application.id: application for application in [*inline, *owned]}
        return list(by_id.values())

    async def delete(self, application_id: str, user: str) -> Application:
        """Soft-delete an application.

        Pending access requests are cancelled and identity-system clients are
        deleted before the application is stamped. A client that is already
        gone does not stop the deletion.

        Raises:
            ApplicationNotFoundError: If the application does not exist or is
                already deleted.
            IdentityError: If a client could not be deleted.
        """
        application = await self.find_by_id(application_id)

        await self._access_requests.cancel_pending_for_application(application.safe_id, user)

        for credential in application.credentials:
            environment = self._environments.for_id(credential.environment_id)
            if environment is None:
                logger.warning(
                    "credential_environment_unknown",
                    application_id=application.id,
                    environment_id=credential.environment_id,
                )
                continue
            try:
                await self._identity.delete_client(environment, credential.client_id)
            except IdentityError as e:
                if e.issue != IdentityIssue.ClientNotFound:
                    raise
                logger.info(
                    "client_already_deleted",
                    application_id=application.id,
                    environment_id=environment.id,
                    client_id=credential.client_id,
                )

        now = self._clock()
        deleted = application.delete(now, user)
        await self._state_store.update_application(deleted)
        await self._events.log(event_derivation.application_deleted(deleted, True, user, now))
        return deleted

    async def add_team_member(self, application_id: str, email: str) -> Application:
        """Add an inline team member; existing members are left as they are.

        Raises:
            ApplicationNotFoundError: If the application does not exist.
            ApplicationDeletedError: If the application is soft-deleted.
            ApplicationTeamMigratedError: If a team owns the application.
        """
        application = await self._state_store.get_application(application_id, include_deleted=True)
        if application is None:
            raise ApplicationNotFoundError.for_id(application_id)
        if application.is_deleted:
            raise ApplicationDeletedError.for_id(application_id)
        if application.team_id is not None:
            raise ApplicationTeamMigratedError.for_id(application_id)
        if application.has_team_member(email):
            return application

        updated = application.add_team_member(email).updated(self._clock())
        await self._state_store.update_application(updated)
        return updated
