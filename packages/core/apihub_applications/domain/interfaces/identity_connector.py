"""IdentityConnector interface for per-environment client scope management.

The identity system (IDMS) holds one OAuth client per application per
environment. This interface exposes the client and client-scope operations
the reconciliation engine needs.

Example:
    ```python
    connector: IdentityConnector = IdmsConnector(timeout=10.0)

    scopes = await connector.fetch_client_scopes(environment, "client-123")
    if "read:foo" not in scopes:
        await connector.add_client_scope(environment, "client-123", "read:foo")
    ```
"""

from abc import ABC, abstractmethod

from apihub_applications.domain.models.application import Credential
from apihub_applications.domain.models.environment import Environment


class IdentityConnector(ABC):
    """Abstract interface over the remote identity-management system.

    Every failure is raised as `IdentityError`, whose `issue` tells callers
    what went wrong (Unauthorized, ClientNotFound, UnexpectedResponse,
    CallError, Timeout).
    """

    @abstractmethod
    async def fetch_client_scopes(self, environment: Environment, client_id: str) -> set[str]:
        """Fetch the scopes currently granted to a client.

        Args:
            environment: Environment whose identity system holds the client.
            client_id: Client to inspect.

        Returns:
            Set of scope names granted to the client.

        Raises:
            IdentityError: If the call fails or the client does not exist.
        """
        pass

    @abstractmethod
    async def add_client_scope(
        self, environment: Environment, client_id: str, scope: str
    ) -> None:
        """Grant a scope to a client.

        Adding a scope the client already holds succeeds without change.

        Args:
            environment: Environment whose identity system holds the client.
            client_id: Client to update.
            scope: Scope name to grant.

        Raises:
            IdentityError: If the call fails or the client does not exist.
        """
        pass

    @abstractmethod
    async def remove_client_scope(
        self, environment: Environment, client_id: str, scope: str
    ) -> None:
        """Revoke a scope from a client.

        Removing a scope the client does not hold succeeds without change.

        Args:
            environment: Environment whose identity system holds the client.
            client_id: Client to update.
            scope: Scope name to revoke.

        Raises:
            IdentityError: If the call fails or the client does not exist.
        """
        pass

    @abstractmethod
    async def create_client(self, environment: Environment, application_name: str) -> Credential:
        """Create a client for an application.

        Args:
            environment: Environment to create the client in.
            application_name: Used as the client's name and description.

        Returns:
            Credential carrying the new client id and its one-time secret.

        Raises:
            IdentityError: If the call fails.
        """
        pass

    @abstractmethod
    async def delete_client(self, environment: Environment, client_id: str) -> None:
        """Delete a client.

        Raises:
            IdentityError: If the call fails or the client does not exist.
        """
        pass
