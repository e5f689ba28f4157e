"""StateStore interface for persisting applications, access requests, teams and events.

This module defines the abstract StateStore interface that gives the domain
services one consistent API over the storage backends (in-memory for tests
and local runs, MongoDB in production).

Identifiers are the string form of a 24-hex-character ObjectId assigned on
insert. An identifier that is not a valid ObjectId behaves as "not found".

Example:
    ```python
    from apihub_applications.domain.interfaces.state_store import StateStore
    from apihub_applications.infrastructure.state_store.memory_store import InMemoryStateStore

    store: StateStore = InMemoryStateStore()

    application = await store.insert_application(
        Application(name="My app", created_by="jo.bloggs@example.com")
    )
    loaded = await store.get_application(application.safe_id)
    ```
"""

from abc import ABC, abstractmethod

from apihub_applications.domain.models.access_request import AccessRequest, AccessRequestStatus
from apihub_applications.domain.models.application import Application
from apihub_applications.domain.models.event import EntityType, Event
from apihub_applications.domain.models.team import Team


class StateStore(ABC):
    """Abstract interface for domain persistence.

    Each collection (applications, access requests, teams, events) is
    persisted independently; there is no transaction spanning collections.
    Updates replace the whole document (last writer wins).

    All methods are async. Implementations raise StateStoreError for storage
    failures. A missing document is reported by returning None from getters
    and by raising ApplicationNotUpdatedError from `update_application`.
    """

    # Applications

    @abstractmethod
    async def insert_application(self, application: Application) -> Application:
        """Insert a new application.

        Args:
            application: Application without an id.

        Returns:
            The stored application carrying its newly generated id.

        Raises:
            StateStoreError: If the insert fails.
        """
        pass

    @abstractmethod
    async def get_application(
        self, application_id: str, include_deleted: bool = False
    ) -> Application | None:
        """Retrieve an application by id.

        Soft-deleted applications are only returned when `include_deleted`
        is True.

        Args:
            application_id: Application id.
            include_deleted: Whether soft-deleted applications are visible.

        Returns:
            The Application if found, None otherwise.

        Raises:
            StateStoreError: If retrieval fails.
        """
        pass

    @abstractmethod
    async def update_application(self, application: Application) -> None:
        """Replace a stored application.

        Args:
            application: Application carrying the id of the document to replace.

        Raises:
            ApplicationNotUpdatedError: If no stored document matched the id.
            StateStoreError: If the update fails.
        """
        pass

    @abstractmethod
    async def list_applications(
        self, team_member: str | None = None, include_deleted: bool = False
    ) -> list[Application]:
        """List applications, optionally those with an inline team member.

        Raises:
            StateStoreError: If retrieval fails.
        """
        pass

    # Access requests

    @abstractmethod
    async def insert_access_requests(
        self, access_requests: list[AccessRequest]
    ) -> list[AccessRequest]:
        """Insert access requests and return them with their ids.

        Raises:
            StateStoreError: If the insert fails.
        """
        pass

    @abstractmethod
    async def get_access_request(self, access_request_id: str) -> AccessRequest | None:
        """Retrieve an access request by id, or None."""
        pass

    @abstractmethod
    async def find_access_requests(
        self,
        application_id: str | None = None,
        status: AccessRequestStatus | None = None,
    ) -> list[AccessRequest]:
        """Find access requests by application and/or status.

        Args:
            application_id: Only requests for this application, if given.
            status: Only requests in this status, if given.

        Returns:
            Matching requests, oldest first.

        Raises:
            StateStoreError: If retrieval fails.
        """
        pass

    @abstractmethod
    async def update_access_request(self, access_request: AccessRequest) -> None:
        """Replace a stored access request.

        Raises:
            AccessRequestNotFoundError: If no stored request matched the id.
            StateStoreError: If the update fails.
        """
        pass

    # Teams

    @abstractmethod
    async def insert_team(self, team: Team) -> Team:
        """Insert a team and return it with its id."""
        pass

    @abstractmethod
    async def get_team(self, team_id: str) -> Team | None:
        """Retrieve a team by id, or None."""
        pass

    @abstractmethod
    async def find_team_by_name(self, name: str) -> Team | None:
        """Retrieve a team by name, ignoring case, or None."""
        pass

    @abstractmethod
    async def list_teams(self, team_member: str | None = None) -> list[Team]:
        """List teams, optionally only those containing a member."""
        pass

    @abstractmethod
    async def update_team(self, team: Team) -> None:
        """Replace a stored team.

        Raises:
            TeamNotFoundError: If no stored team matched the id.
            StateStoreError: If the update fails.
        """
        pass

    # Events

    @abstractmethod
    async def insert_event(self, event: Event) -> Event:
        """Append an event and return it with its id.

        Events are never updated or deleted once inserted.

        Raises:
            StateStoreError: If the insert fails.
        """
        pass

    @abstractmethod
    async def get_event(self, event_id: str) -> Event | None:
        """Retrieve an event by id, or None."""
        pass

    @abstractmethod
    async def find_events_by_entity(self, entity_type: EntityType, entity_id: str) -> list[Event]:
        """Events about one entity, oldest first."""
        pass

    @abstractmethod
    async def find_events_by_user(self, user: str) -> list[Event]:
        """Events performed by one user, oldest first."""
        pass


class StateStoreError(Exception):
    """Raised when state store operations fail."""

    pass
