"""In-memory state store implementation.

This module provides an in-memory implementation of the StateStore interface
using Python dictionaries. It backs the unit tests and local runs without a
MongoDB server, and follows the same id rules as the MongoDB store.

Example:
    ```python
    from apihub_applications.infrastructure.state_store.memory_store import InMemoryStateStore

    store = InMemoryStateStore()

    application = await store.insert_application(
        Application(name="My app", created_by="jo.bloggs@example.com")
    )
    loaded = await store.get_application(application.safe_id)
    ```
"""

import asyncio

from bson import ObjectId

from apihub_applications.domain.interfaces.state_store import StateStore
from apihub_applications.domain.models.access_request import AccessRequest, AccessRequestStatus
from apihub_applications.domain.models.application import Application
from apihub_applications.domain.models.errors import (
    AccessRequestNotFoundError,
    ApplicationNotUpdatedError,
    TeamNotFoundError,
)
from apihub_applications.domain.models.event import EntityType, Event
from apihub_applications.domain.models.team import Team


def _new_id() -> str:
    return str(ObjectId())


class InMemoryStateStore(StateStore):
    """In-memory implementation of StateStore interface.

    Write Safety:
        - Write operations (insert_*, update_*) hold an asyncio.Lock
        - Read operations return immutable models and take no lock

    Ordering:
        - Dictionaries keep insertion order, so finds return oldest first

    Attributes:
        _applications: Applications keyed by id
        _access_requests: Access requests keyed by id
        _teams: Teams keyed by id
        _events: Events keyed by id
        _write_lock: asyncio.Lock for write operations
    """

    def __init__(self) -> None:
        self._applications: dict[str, Application] = {}
        self._access_requests: dict[str, AccessRequest] = {}
        self._teams: dict[str, Team] = {}
        self._events: dict[str, Event] = {}

        self._write_lock = asyncio.Lock()

    # Applications

    async def insert_application(self, application: Application) -> Application:
        async with self._write_lock:
            saved = application.model_copy(update={"id": _new_id()})
            self._applications[saved.safe_id] = saved
            return saved

    async def get_application(
        self, application_id: str, include_deleted: bool = False
    ) -> Application | None:
        application = self._applications.get(application_id)
        if application is None or (application.is_deleted and not include_deleted):
            return None
        return application

    async def update_application(self, application: Application) -> None:
        async with self._write_lock:
            if application.id is None or application.id not in self._applications:
                raise ApplicationNotUpdatedError.for_id(str(application.id))
            self._applications[application.id] = application

    async def list_applications(
        self, team_member: str | None = None, include_deleted: bool = False
    ) -> list[Application]:
        return [
            application
            for application in self._applications.values()
            if (include_deleted or not application.is_deleted)
            and (team_member is None or application.has_team_member(team_member))
        ]

    # Access requests

    async def insert_access_requests(
        self, access_requests: list[AccessRequest]
    ) -> list[AccessRequest]:
        async with self._write_lock:
            saved = [
                access_request.model_copy(update={"id": _new_id()})
                for access_request in access_requests
            ]
            for access_request in saved:
                self._access_requests[access_request.safe_id] = access_request
            return saved

    async def get_access_request(self, access_request_id: str) -> AccessRequest | None:
        return self._access_requests.get(access_request_id)

    async def find_access_requests(
        self,
        application_id: str | None = None,
        status: AccessRequestStatus | None = None,
    ) -> list[AccessRequest]:
        return [
            access_request
            for access_request in self._access_requests.values()
            if (application_id is None or access_request.application_id == application_id)
            and (status is None or access_request.status == status)
        ]

    async def update_access_request(self, access_request: AccessRequest) -> None:
        async with self._write_lock:
            if access_request.id is None or access_request.id not in self._access_requests:
                raise AccessRequestNotFoundError.for_id(str(access_request.id))
            self._access_requests[access_request.id] = access_request

    # Teams

    async def insert_team(self, team: Team) -> Team:
        async with self._write_lock:
            saved = team.model_copy(update={"id": _new_id()})
            self._teams[saved.safe_id] = saved
            return saved

    async def get_team(self, team_id: str) -> Team | None:
        return self._teams.get(team_id)

    async def find_team_by_name(self, name: str) -> Team | None:
        wanted = name.strip().lower()
        return next((team for team in self._teams.values() if team.name.lower() == wanted), None)

    async def list_teams(self, team_member: str | None = None) -> list[Team]:
        return [
            team
            for team in self._teams.values()
            if team_member is None or team.has_team_member(team_member)
        ]

    async def update_team(self, team: Team) -> None:
        async with self._write_lock:
            if team.id is None or team.id not in self._teams:
                raise TeamNotFoundError.for_id(str(team.id))
            self._teams[team.id] = team

    # Events

    async def insert_event(self, event: Event) -> Event:
        async with self._write_lock:
            saved = event.with_id(_new_id())
            self._events[saved.id] = saved  # type: ignore[index]
            return saved

    async def get_event(self, event_id: str) -> Event | None:
        return self._events.get(event_id)

    async def find_events_by_entity(self, entity_type: EntityType, entity_id: str) -> list[Event]:
        return [
            event
            for event in self._events.values()
            if event.entity_type == entity_type and event.entity_id == entity_id
        ]

    async def find_events_by_user(self, user: str) -> list[Event]:
        return [event for event in self._events.values() if event.user == user]
