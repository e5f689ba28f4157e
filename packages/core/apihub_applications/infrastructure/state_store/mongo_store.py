"""MongoDB state store implementation.

This module provides a MongoDB-backed implementation of the StateStore interface
using motor (async MongoDB driver) and beanie (Pydantic-based ODM). Each
collection is written independently; updates replace whole documents.

Example:
    ```python
    from apihub_applications.infrastructure.state_store.mongo_store import MongoStateStore

    store = MongoStateStore("mongodb://localhost:27017", crypto=EncryptionService())
    await store.initialize()

    application = await store.insert_application(
        Application(name="My app", created_by="jo.bloggs@example.com")
    )
    ```
"""

import os

import structlog
from beanie import PydanticObjectId
from beanie.exceptions import DocumentNotFound
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import (
    ConfigurationError,
    ConnectionFailure,
    DuplicateKeyError,
    NetworkTimeout,
    OperationFailure,
    ServerSelectionTimeoutError,
)

from apihub_applications.domain.interfaces.state_store import StateStore, StateStoreError
from apihub_applications.domain.models.access_request import AccessRequest, AccessRequestStatus
from apihub_applications.domain.models.application import Application
from apihub_applications.domain.models.errors import (
    AccessRequestNotFoundError,
    ApplicationNotUpdatedError,
    TeamNameNotUniqueError,
    TeamNotFoundError,
)
from apihub_applications.domain.models.event import EntityType, Event
from apihub_applications.domain.models.team import Team
from apihub_applications.infrastructure.state_store.mongo_models import (
    AccessRequestDocument,
    ApplicationDocument,
    EventDocument,
    TeamDocument,
    initialize_beanie_models,
)
from apihub_applications.infrastructure.utils.encryption import EncryptionService

logger = structlog.get_logger(__name__)


def _parse_id(value: str | None) -> PydanticObjectId | None:
    """Parse a stored id; anything that is not an ObjectId matches nothing."""
    if value is None or not ObjectId.is_valid(value):
        return None
    return PydanticObjectId(value)


class MongoStateStore(StateStore):
    """MongoDB implementation of StateStore interface.

    Connection Configuration:
        - Connection string passed in or read from APIHUB_MONGODB_URL
        - Connection pooling configured via motor client options
        - Health check via ping operation

    Error Handling:
        - Connection errors raise StateStoreError with appropriate context
        - Missing documents on update raise the matching domain error
        - Other driver errors are logged and wrapped in StateStoreError

    Attributes:
        _client: AsyncIOMotorClient instance for MongoDB connection
        _database_name: Name of the MongoDB database to use
        _crypto: EncryptionService for personal data at rest
        _initialized: Whether the connection has been initialized
    """

    def __init__(
        self,
        connection_url: str | None = None,
        database_name: str = "api-hub-applications",
        crypto: EncryptionService | None = None,
        max_pool_size: int = 100,
        min_pool_size: int = 10,
        connect_timeout_ms: int = 20000,
        server_selection_timeout_ms: int = 5000,
    ) -> None:
        """Initialize MongoStateStore with connection configuration.

        Args:
            connection_url: MongoDB connection string. If None, reads from
                           APIHUB_MONGODB_URL environment variable.
            database_name: Name of the MongoDB database to use.
            crypto: EncryptionService for sensitive fields. Defaults to one
                    built from APIHUB_ENCRYPTION_KEY.
            max_pool_size: Maximum number of connections in the pool.
            min_pool_size: Minimum number of connections in the pool.
            connect_timeout_ms: Connection timeout in milliseconds.
            server_selection_timeout_ms: Server selection timeout in milliseconds.

        Raises:
            StateStoreError: If connection URL is missing or invalid.
        """
        if connection_url is None:
            connection_url = os.getenv("APIHUB_MONGODB_URL")
            if connection_url is None:
                raise StateStoreError(
                    "MongoDB connection URL not provided. Set APIHUB_MONGODB_URL environment variable or pass connection_url parameter."
                )

        self._database_name = database_name
        self._crypto = crypto or EncryptionService()
        self._initialized = False

        try:
            self._client: AsyncIOMotorClient | None = AsyncIOMotorClient(
                connection_url,
                maxPoolSize=max_pool_size,
                minPoolSize=min_pool_size,
                connectTimeoutMS=connect_timeout_ms,
                serverSelectionTimeoutMS=server_selection_timeout_ms,
            )
            logger.info(
                "mongodb_client_created",
                database=database_name,
                max_pool_size=max_pool_size,
                min_pool_size=min_pool_size,
            )
        except (ConfigurationError, ValueError) as e:
            error_msg = f"Invalid MongoDB connection URL: {e}"
            logger.error("mongodb_connection_error", error=error_msg)
            raise StateStoreError(error_msg) from e

    async def initialize(self) -> None:
        """Initialize MongoDB connection and verify connectivity.

        Pings the server and initializes Beanie with all document models,
        creating indexes. Called lazily by every operation.

        Raises:
            StateStoreError: If connection fails or health check fails.
        """
        if self._initialized:
            return

        if self._client is None:
            raise StateStoreError("MongoDB client not initialized")

        try:
            await self._client.admin.command("ping")
            await initialize_beanie_models(self._client[self._database_name])
            self._initialized = True
            logger.info("mongodb_initialized", database=self._database_name)
        except (ConnectionFailure, ServerSelectionTimeoutError, NetworkTimeout) as e:
            error_msg = f"Failed to connect to MongoDB: {e}"
            logger.error("mongodb_connection_failure", error=error_msg)
            raise StateStoreError(error_msg) from e
        except OperationFailure as e:
            # Error code 18 is an authentication failure
            if e.code == 18 or "authentication" in str(e).lower():
                error_msg = f"MongoDB authentication failed: {e}"
                logger.error("mongodb_authentication_failure", error=error_msg)
                raise StateStoreError(error_msg) from e
            raise
        except Exception as e:
            error_msg = f"Unexpected error during MongoDB initialization: {e}"
            logger.error("mongodb_initialization_error", error=error_msg)
            raise StateStoreError(error_msg) from e

    async def check_connection(self) -> bool:
        """Return True when a ping succeeds."""
        if self._client is None:
            return False

        try:
            await self._client.admin.command("ping")
            return True
        except Exception as e:
            logger.warning("mongodb_health_check_failed", error=str(e))
            return False

    async def close(self) -> None:
        """Close MongoDB connection and cleanup resources."""
        if self._client is not None:
            self._client.close()
            self._initialized = False
            logger.info("mongodb_connection_closed")

    def _error(self, operation: str, error: Exception, **context: object) -> StateStoreError:
        error_msg = f"Failed to {operation.replace('_', ' ')}: {error}"
        logger.error(f"mongodb_{operation}_error", error=error_msg, **context)
        return StateStoreError(error_msg)

    # Applications

    async def insert_application(self, application: Application) -> Application:
        await self.initialize()
        try:
            doc = ApplicationDocument.from_domain_model(application, self._crypto)
            await doc.insert()
        except Exception as e:
            raise self._error("insert_application", e) from e
        return application.model_copy(update={"id": str(doc.id)})

    async def get_application(
        self, application_id: str, include_deleted: bool = False
    ) -> Application | None:
        object_id = _parse_id(application_id)
        if object_id is None:
            return None
        await self.initialize()
        try:
            doc = await ApplicationDocument.get(object_id)
        except Exception as e:
            raise self._error("get_application", e, application_id=application_id) from e
        if doc is None or (doc.deleted is not None and not include_deleted):
            return None
        return doc.to_domain_model(self._crypto)

    async def update_application(self, application: Application) -> None:
        if _parse_id(application.id) is None:
            raise ApplicationNotUpdatedError.for_id(str(application.id))
        await self.initialize()
        try:
            await ApplicationDocument.from_domain_model(application, self._crypto).replace()
        except DocumentNotFound as e:
            raise ApplicationNotUpdatedError.for_id(str(application.id)) from e
        except Exception as e:
            raise self._error("update_application", e, application_id=application.id) from e

    async def list_applications(
        self, team_member: str | None = None, include_deleted: bool = False
    ) -> list[Application]:
        await self.initialize()
        criteria = []
        if team_member is not None:
            criteria.append(
                ApplicationDocument.team_member_hashes == self._crypto.fingerprint(team_member)
            )
        if not include_deleted:
            criteria.append(ApplicationDocument.deleted == None)  # noqa: E711
        try:
            docs = await ApplicationDocument.find(*criteria).sort("_id").to_list()
        except Exception as e:
            raise self._error("list_applications", e) from e
        return [doc.to_domain_model(self._crypto) for doc in docs]

    # Access requests

    async def insert_access_requests(
        self, access_requests: list[AccessRequest]
    ) -> list[AccessRequest]:
        await self.initialize()
        saved = []
        try:
            for access_request in access_requests:
                doc = AccessRequestDocument.from_domain_model(access_request, self._crypto)
                await doc.insert()
                saved.append(access_request.model_copy(update={"id": str(doc.id)}))
        except Exception as e:
            raise self._error("insert_access_requests", e) from e
        return saved

    async def get_access_request(self, access_request_id: str) -> AccessRequest | None:
        object_id = _parse_id(access_request_id)
        if object_id is None:
            return None
        await self.initialize()
        try:
            doc = await AccessRequestDocument.get(object_id)
        except Exception as e:
            raise self._error(
                "get_access_request", e, access_request_id=access_request_id
            ) from e
        return doc.to_domain_model(self._crypto) if doc is not None else None

    async def find_access_requests(
        self,
        application_id: str | None = None,
        status: AccessRequestStatus | None = None,
    ) -> list[AccessRequest]:
        await self.initialize()
        criteria = []
        if application_id is not None:
            criteria.append(AccessRequestDocument.application_id == application_id)
        if status is not None:
            criteria.append(AccessRequestDocument.status == status.value)
        try:
            docs = await AccessRequestDocument.find(*criteria).sort("_id").to_list()
        except Exception as e:
            raise self._error("find_access_requests", e, application_id=application_id) from e
        return [doc.to_domain_model(self._crypto) for doc in docs]

    async def update_access_request(self, access_request: AccessRequest) -> None:
        if _parse_id(access_request.id) is None:
            raise AccessRequestNotFoundError.for_id(str(access_request.id))
        await self.initialize()
        try:
            await AccessRequestDocument.from_domain_model(access_request, self._crypto).replace()
        except DocumentNotFound as e:
            raise AccessRequestNotFoundError.for_id(str(access_request.id)) from e
        except Exception as e:
            raise self._error(
                "update_access_request", e, access_request_id=access_request.id
            ) from e

    # Teams

    async def insert_team(self, team: Team) -> Team:
        await self.initialize()
        try:
            doc = TeamDocument.from_domain_model(team, self._crypto)
            await doc.insert()
        except DuplicateKeyError as e:
            raise TeamNameNotUniqueError.for_name(team.name) from e
        except Exception as e:
            raise self._error("insert_team", e) from e
        return team.model_copy(update={"id": str(doc.id)})

    async def get_team(self, team_id: str) -> Team | None:
        object_id = _parse_id(team_id)
        if object_id is None:
            return None
        await self.initialize()
        try:
            doc = await TeamDocument.get(object_id)
        except Exception as e:
            raise self._error("get_team", e, team_id=team_id) from e
        return doc.to_domain_model(self._crypto) if doc is not None else None

    async def find_team_by_name(self, name: str) -> Team | None:
        await self.initialize()
        try:
            doc = await TeamDocument.find_one(
                TeamDocument.normalised_name == name.strip().lower()
            )
        except Exception as e:
            raise self._error("find_team_by_name", e) from e
        return doc.to_domain_model(self._crypto) if doc is not None else None

    async def list_teams(self, team_member: str | None = None) -> list[Team]:
        await self.initialize()
        criteria = []
        if team_member is not None:
            criteria.append(TeamDocument.team_member_hashes == self._crypto.fingerprint(team_member))
        try:
            docs = await TeamDocument.find(*criteria).sort("_id").to_list()
        except Exception as e:
            raise self._error("list_teams", e) from e
        return [doc.to_domain_model(self._crypto) for doc in docs]

    async def update_team(self, team: Team) -> None:
        if _parse_id(team.id) is None:
            raise TeamNotFoundError.for_id(str(team.id))
        await self.initialize()
        try:
            await TeamDocument.from_domain_model(team, self._crypto).replace()
        except DocumentNotFound as e:
            raise TeamNotFoundError.for_id(str(team.id)) from e
        except DuplicateKeyError as e:
            raise TeamNameNotUniqueError.for_name(team.name) from e
        except Exception as e:
            raise self._error("update_team", e, team_id=team.id) from e

    # Events

    async def insert_event(self, event: Event) -> Event:
        await self.initialize()
        try:
            doc = EventDocument.from_domain_model(event, self._crypto)
            await doc.insert()
        except Exception as e:
            raise self._error("insert_event", e, entity_id=event.entity_id) from e
        return event.with_id(str(doc.id))

    async def get_event(self, event_id: str) -> Event | None:
        object_id = _parse_id(event_id)
        if object_id is None:
            return None
        await self.initialize()
        try:
            doc = await EventDocument.get(object_id)
        except Exception as e:
            raise self._error("get_event", e, event_id=event_id) from e
        return doc.to_domain_model(self._crypto) if doc is not None else None

    async def find_events_by_entity(self, entity_type: EntityType, entity_id: str) -> list[Event]:
        await self.initialize()
        try:
            docs = (
                await EventDocument.find(
                    EventDocument.entity_id == entity_id,
                    EventDocument.entity_type == entity_type.value,
                )
                .sort("_id")
                .to_list()
            )
        except Exception as e:
            raise self._error("find_events_by_entity", e, entity_id=entity_id) from e
        return [doc.to_domain_model(self._crypto) for doc in docs]

    async def find_events_by_user(self, user: str) -> list[Event]:
        await self.initialize()
        try:
            docs = (
                await EventDocument.find(EventDocument.user_hash == self._crypto.fingerprint(user))
                .sort("_id")
                .to_list()
            )
        except Exception as e:
            raise self._error("find_events_by_user", e) from e
        return [doc.to_domain_model(self._crypto) for doc in docs]
