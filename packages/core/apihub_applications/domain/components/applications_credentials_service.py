"""ApplicationsCredentialsService component for adding and revoking credentials."""

from collections.abc import Callable
from datetime import datetime

import structlog

from apihub_applications.domain.components import event_derivation
from apihub_applications.domain.components.events_service import EventsService
from apihub_applications.domain.components.scope_fixer import ScopeFixer
from apihub_applications.domain.interfaces.identity_connector import IdentityConnector
from apihub_applications.domain.interfaces.state_store import StateStore
from apihub_applications.domain.models.application import (
    Application,
    Credential,
    CredentialScopes,
)
from apihub_applications.domain.models.environment import Environment, Environments
from apihub_applications.domain.models.errors import (
    ApplicationDeletedError,
    ApplicationNotFoundError,
    CredentialLimitError,
    CredentialNotFoundError,
    EnvironmentNotFoundError,
    IdentityError,
    IdentityIssue,
)
from apihub_applications.domain.models.scope_fix import EnvironmentScopeFix

logger = structlog.get_logger(__name__)


class ApplicationsCredentialsService:
    """Adds, revokes and inspects an application's identity-system clients.

    An environment holds at most one credential per application, so rotating
    a credential is a revoke followed by an add. A new credential is given
    the scopes the application is entitled to in that environment before it
    is handed back.
    """

    def __init__(
        self,
        state_store: StateStore,
        identity_connector: IdentityConnector,
        environments: Environments,
        scope_fixer: ScopeFixer,
        events_service: EventsService,
        clock: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        self._state_store = state_store
        self._identity = identity_connector
        self._environments = environments
        self._scope_fixer = scope_fixer
        self._events = events_service
        self._clock = clock

    async def _get_application(self, application_id: str) -> Application:
        application = await self._state_store.get_application(
            application_id, include_deleted=True
        )
        if application is None:
            raise ApplicationNotFoundError.for_id(application_id)
        if application.is_deleted:
            raise ApplicationDeletedError.for_id(application_id)
        return application

    def _get_environment(self, environment_id: str) -> Environment:
        environment = self._environments.for_id(environment_id)
        if environment is None:
            raise EnvironmentNotFoundError.for_id(environment_id)
        return environment

    async def add_credential(
        self, application_id: str, environment_id: str, user: str
    ) -> tuple[Credential, EnvironmentScopeFix]:
        """Create a credential in an environment that has none.

        The credential is stored before its scopes are reconciled. A failed
        reconciliation is reported in the returned fix rather than raised,
        because the client secret cannot be shown again; fix-scopes repairs
        the scopes later.

        Args:
            application_id: Application to add the credential to.
            environment_id: Environment to create the client in.
            user: Acting user's email.

        Returns:
            The credential with its one-time secret, and the scope fix for it.

        Raises:
            ApplicationNotFoundError: If the application does not exist.
            ApplicationDeletedError: If the application is soft-deleted.
            EnvironmentNotFoundError: If the environment is not configured.
            CredentialLimitError: If the environment already has a credential.
            IdentityError: If the client could not be created.
        """
        application = await self._get_application(application_id)
        environment = self._get_environment(environment_id)
        if application.get_master_credential(environment.id) is not None:
            raise CredentialLimitError.for_environment(application.safe_id, environment.id)

        credential = await self._identity.create_client(environment, application.name)
        now = self._clock()
        updated = application.add_credential(credential.without_secret()).updated(now)
        await self._state_store.update_application(updated)
        logger.info(
            "credential_added",
            application_id=updated.id,
            environment_id=environment.id,
            client_id=credential.client_id,
        )
        await self._events.log(event_derivation.credential_created(updated, credential, user, now))

        access_requests = await self._state_store.find_access_requests(
            application_id=updated.safe_id
        )
        fix = await self._scope_fixer.fix_credential(
            updated, credential, environment, access_requests
        )
        if not fix.succeeded:
            logger.warning(
                "credential_scopes_not_reconciled",
                application_id=updated.id,
                environment_id=environment.id,
                client_id=credential.client_id,
                failed_operation=fix.failed_operation,
            )
        return credential, fix

    async def revoke_credential(
        self, application_id: str, environment_id: str, client_id: str, user: str
    ) -> Application:
        """Delete a credential's client and drop it from the application.

        A client that is already gone from the identity system does not stop
        the revocation.

        Raises:
            ApplicationNotFoundError: If the application does not exist.
            ApplicationDeletedError: If the application is soft-deleted.
            EnvironmentNotFoundError: If the environment is not configured.
            CredentialNotFoundError: If the application has no such credential
                in the environment.
            IdentityError: If the client could not be deleted.
        """
        application = await self._get_application(application_id)
        environment = self._get_environment(environment_id)
        credential = next(
            (c for c in application.get_credentials(environment.id) if c.client_id == client_id),
            None,
        )
        if credential is None:
            raise CredentialNotFoundError.for_client(
                application.safe_id, environment.id, client_id
            )

        try:
            await self._identity.delete_client(environment, client_id)
        except IdentityError as e:
            if e.issue != IdentityIssue.ClientNotFound:
                raise
            logger.info(
                "client_already_deleted",
                application_id=application.id,
                environment_id=environment.id,
                client_id=client_id,
            )

        now = self._clock()
        updated = application.remove_credential(client_id).updated(now)
        await self._state_store.update_application(updated)
        logger.info(
            "credential_revoked",
            application_id=updated.id,
            environment_id=environment.id,
            client_id=client_id,
        )
        await self._events.log(
            event_derivation.credential_revoked(updated, environment.id, client_id, user, now)
        )
        return updated

    async def fetch_all_scopes(self, application_id: str) -> list[CredentialScopes]:
        """Read the scopes every credential holds, in environment rank order.

        Raises:
            ApplicationNotFoundError: If the application does not exist.
            ApplicationDeletedError: If the application is soft-deleted.
            IdentityError: If any credential's scopes could not be fetched.
        """
        application = await self._get_application(application_id)
        scopes = []
        for environment in self._environments.ordered:
            for credential in application.get_credentials(environment.id):
                held = await self._identity.fetch_client_scopes(environment, credential.client_id)
                scopes.append(
                    CredentialScopes(
                        environment_id=environment.id,
                        client_id=credential.client_id,
                        created=credential.created,
                        scopes=sorted(held),
                    )
                )
        return scopes
