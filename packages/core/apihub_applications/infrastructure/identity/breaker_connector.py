"""IdentityConnector decorator routing every call through a per-environment breaker."""

from collections.abc import Awaitable, Callable
from typing import TypeVar

from apihub_applications.domain.interfaces.identity_connector import IdentityConnector
from apihub_applications.domain.models.application import Credential
from apihub_applications.domain.models.environment import Environment
from apihub_applications.domain.models.errors import IdentityError, IdentityIssue
from apihub_applications.infrastructure.identity.circuit_breaker import (
    CircuitBreakerRegistry,
    CircuitOpenError,
    CircuitTimeoutError,
)

T = TypeVar("T")

COUNTED_ISSUES = frozenset(
    {
        IdentityIssue.CallError,
        IdentityIssue.UnexpectedResponse,
        IdentityIssue.Timeout,
        IdentityIssue.Unauthorized,
    }
)
"""Identity issues that count towards opening a breaker. ClientNotFound never does."""


def is_counted_failure(error: BaseException) -> bool:
    if isinstance(error, IdentityError):
        return error.issue in COUNTED_ISSUES
    return True


class CircuitBreakerIdentityConnector(IdentityConnector):
    """Wraps an IdentityConnector so each environment is guarded by its own breaker.

    A refused call surfaces as `IdentityError(CallError, call_made=False)` and
    a call cut off by the breaker's timeout as `IdentityError(Timeout)`. An
    outage in one environment never blocks calls to another.
    """

    def __init__(self, delegate: IdentityConnector, registry: CircuitBreakerRegistry) -> None:
        self._delegate = delegate
        self._registry = registry

    async def _guarded(
        self,
        environment: Environment,
        client_id: str | None,
        func: Callable[[], Awaitable[T]],
    ) -> T:
        breaker = self._registry.get(environment.id)
        try:
            return await breaker.call(func, is_failure=is_counted_failure)
        except CircuitOpenError as e:
            raise IdentityError(
                IdentityIssue.CallError,
                f"Identity system for environment {environment.id} is unavailable ({e})",
                environment_id=environment.id,
                client_id=client_id,
                call_made=False,
            ) from e
        except CircuitTimeoutError as e:
            raise IdentityError(
                IdentityIssue.Timeout,
                str(e),
                environment_id=environment.id,
                client_id=client_id,
            ) from e

    async def fetch_client_scopes(self, environment: Environment, client_id: str) -> set[str]:
        return await self._guarded(
            environment,
            client_id,
            lambda: self._delegate.fetch_client_scopes(environment, client_id),
        )

    async def add_client_scope(self, environment: Environment, client_id: str, scope: str) -> None:
        await self._guarded(
            environment,
            client_id,
            lambda: self._delegate.add_client_scope(environment, client_id, scope),
        )

    async def remove_client_scope(
        self, environment: Environment, client_id: str, scope: str
    ) -> None:
        await self._guarded(
            environment,
            client_id,
            lambda: self._delegate.remove_client_scope(environment, client_id, scope),
        )

    async def create_client(self, environment: Environment, application_name: str) -> Credential:
        return await self._guarded(
            environment,
            None,
            lambda: self._delegate.create_client(environment, application_name),
        )

    async def delete_client(self, environment: Environment, client_id: str) -> None:
        await self._guarded(
            environment,
            client_id,
            lambda: self._delegate.delete_client(environment, client_id),
        )
