"""ScopeFixer component reconciling credential scopes with linked APIs."""

import structlog

from apihub_applications.domain.interfaces.identity_connector import IdentityConnector
from apihub_applications.domain.models.access_request import AccessRequest, AccessRequestStatus
from apihub_applications.domain.models.application import Application, Credential
from apihub_applications.domain.models.environment import Environment, Environments
from apihub_applications.domain.models.errors import IdentityError
from apihub_applications.domain.models.scope_fix import (
    EnvironmentScopeFix,
    ScopeFixResult,
    ScopeOperation,
)

logger = structlog.get_logger(__name__)


class ScopeFixer:
    """Makes each environment's granted scopes match what the application should hold.

    The target for an environment is derived from the endpoints of the APIs
    linked to the application. Non-gated environments receive every scope
    those endpoints require. Gated (production-like) environments only
    receive scopes covered by an approved access request for a linked
    endpoint.

    Reconciliation fetches the credential's current scopes, adds the missing
    ones and then removes the surplus ones, so an already-approved scope is
    never transiently revoked. A failure stops work in that environment only;
    the other environments are still reconciled and every outcome is
    reported in the returned ScopeFixResult.

    ScopeFixer never writes to the database and never retries. Running it
    twice without an intervening change issues no add or remove calls the
    second time.
    """

    def __init__(
        self,
        identity_connector: IdentityConnector,
        environments: Environments,
    ) -> None:
        """Initialize ScopeFixer.

        Args:
            identity_connector: Connector to the identity system (normally
                wrapped by the per-environment circuit breakers).
            environments: Configured environments, reconciled in rank order.
        """
        self._identity = identity_connector
        self._environments = environments

    @staticmethod
    def required_scopes(application: Application) -> set[str]:
        """Union of the scopes required by every linked endpoint."""
        return application.required_scopes

    def target_scopes(
        self,
        environment: Environment,
        application: Application,
        access_requests: list[AccessRequest],
    ) -> set[str]:
        """Compute the scopes the application should hold in an environment.

        Args:
            environment: Environment being reconciled.
            application: Application with its (possibly just changed) APIs.
            access_requests: Access requests for the application, any status.

        Returns:
            Set of scope names.
        """
        required = self.required_scopes(application)
        if not environment.is_gated:
            return required

        approved: set[str] = set()
        for access_request in access_requests:
            if access_request.status != AccessRequestStatus.Approved:
                continue
            if application.id is not None and access_request.application_id != application.id:
                continue
            api = application.get_api(access_request.api_id)
            if api is None:
                continue
            for endpoint in access_request.endpoints:
                if api.has_endpoint(endpoint.http_method, endpoint.path):
                    approved.update(endpoint.scopes)

        return approved & required

    async def fix(
        self,
        application: Application,
        access_requests: list[AccessRequest],
    ) -> ScopeFixResult:
        """Reconcile scopes for the application in every configured environment.

        Args:
            application: Application after any pending mutation.
            access_requests: Access requests for the application.

        Returns:
            Per-environment outcome. Check `succeeded` before reporting the
            operation as complete.

        Raises:
            InternalInconsistencyError: If an environment holds more than one
                credential for the application. Raised before any remote call.
        """
        credentials = {
            environment.id: application.get_master_credential(environment.id)
            for environment in self._environments.ordered
        }

        fixes: list[EnvironmentScopeFix] = []
        for environment in self._environments.ordered:
            credential = credentials[environment.id]
            if credential is None:
                fixes.append(
                    EnvironmentScopeFix(environment_id=environment.id, skipped=True)
                )
                continue

            target = self.target_scopes(environment, application, access_requests)
            fixes.append(await self._fix_environment(environment, credential, target))

        result = ScopeFixResult(application_id=application.id or "", environments=fixes)
        self._log_result(result)
        return result

    async def fix_credential(
        self,
        application: Application,
        credential: Credential,
        environment: Environment,
        access_requests: list[AccessRequest],
    ) -> EnvironmentScopeFix:
        """Reconcile a single credential, e.g. one that was just created."""
        target = self.target_scopes(environment, application, access_requests)
        return await self._fix_environment(environment, credential, target)

    async def _fix_environment(
        self,
        environment: Environment,
        credential: Credential,
        target: set[str],
    ) -> EnvironmentScopeFix:
        added: list[str] = []
        removed: list[str] = []

        def outcome(
            current: set[str] | None = None,
            operation: str | None = None,
            error: IdentityError | None = None,
        ) -> EnvironmentScopeFix:
            return EnvironmentScopeFix(
                environment_id=environment.id,
                client_id=credential.client_id,
                target=frozenset(target),
                current=frozenset(current) if current is not None else None,
                added=added,
                removed=removed,
                failed_operation=operation,
                error=error,
            )

        try:
            current = await self._identity.fetch_client_scopes(environment, credential.client_id)
        except IdentityError as e:
            self._log_failure(environment, credential, ScopeOperation.FETCH, None, e)
            return outcome(operation=ScopeOperation.FETCH, error=e)

        # Additions first so no approved scope is ever transiently missing.
        for scope in sorted(target - current):
            try:
                await self._identity.add_client_scope(environment, credential.client_id, scope)
            except IdentityError as e:
                self._log_failure(environment, credential, ScopeOperation.ADD, scope, e)
                return outcome(current, ScopeOperation.ADD, e)
            added.append(scope)

        for scope in sorted(current - target):
            try:
                await self._identity.remove_client_scope(environment, credential.client_id, scope)
            except IdentityError as e:
                self._log_failure(environment, credential, ScopeOperation.REMOVE, scope, e)
                return outcome(current, ScopeOperation.REMOVE, e)
            removed.append(scope)

        return outcome(current)

    @staticmethod
    def _log_failure(
        environment: Environment,
        credential: Credential,
        operation: str,
        scope: str | None,
        error: IdentityError,
    ) -> None:
        logger.warning(
            "scope_fix_environment_failed",
            environment_id=environment.id,
            client_id=credential.client_id,
            operation=operation,
            scope=scope,
            issue=error.issue.value,
            call_made=error.call_made,
        )

    @staticmethod
    def _log_result(result: ScopeFixResult) -> None:
        logger.info(
            "scope_fix_completed",
            application_id=result.application_id,
            succeeded=result.succeeded,
            calls_made=result.calls_made,
            failed_environments=[fix.environment_id for fix in result.failures],
        )
