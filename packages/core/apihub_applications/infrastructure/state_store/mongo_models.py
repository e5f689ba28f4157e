"""MongoDB document models using Beanie ODM.

This module provides Beanie document models for MongoDB persistence.
These models map the domain Pydantic models to MongoDB documents with
indexes for efficient querying. Personal data is encrypted at rest; fields
that must be searched are stored alongside a keyed fingerprint.

Example:
    ```python
    from motor.motor_asyncio import AsyncIOMotorClient
    from apihub_applications.infrastructure.state_store.mongo_models import (
        initialize_beanie_models,
    )

    client = AsyncIOMotorClient("mongodb://localhost:27017")
    database = client["api-hub-applications"]
    await initialize_beanie_models(database)
    ```
"""

from datetime import datetime
from typing import Any

from beanie import Document, Indexed, PydanticObjectId, init_beanie
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel
from pymongo import IndexModel

from apihub_applications.domain.models.access_request import (
    AccessRequest,
    AccessRequestCancelled,
    AccessRequestDecision,
    AccessRequestEndpoint,
    AccessRequestStatus,
)
from apihub_applications.domain.models.application import (
    Api,
    Application,
    Credential,
    Deleted,
    TeamMember,
)
from apihub_applications.domain.models.event import EntityType, Event, EventType
from apihub_applications.domain.models.team import Team, TeamType
from apihub_applications.infrastructure.utils.encryption import EncryptionService


def _object_id(value: str | None) -> PydanticObjectId | None:
    return PydanticObjectId(value) if value is not None else None


def _encrypt_optional(crypto: EncryptionService, value: str | None) -> str | None:
    return crypto.encrypt_text(value) if value is not None else None


def _decrypt_optional(crypto: EncryptionService, value: str | None) -> str | None:
    return crypto.decrypt_text(value) if value is not None else None


class StoredCredential(BaseModel):
    """Credential as persisted; the client secret is never stored."""

    client_id: str
    created: datetime
    secret_fragment: str | None = None
    environment_id: str


class ApplicationDocument(Document):
    """Beanie document model for Application.

    Indexes:
        - team_id: Applications owned by a team
        - team_member_hashes: Applications with an inline member
        - deleted: Filtering out soft-deleted applications
    """

    name: str
    created: datetime
    last_updated: datetime
    created_by: str  # encrypted
    team_id: str | None = None
    team_members: list[str] = []  # encrypted emails
    team_member_hashes: list[str] = []
    apis: list[Api] = []
    credentials: list[StoredCredential] = []
    deleted: datetime | None = None
    deleted_by: str | None = None  # encrypted

    class Settings:
        """Beanie document settings."""

        name = "applications"
        indexes = [
            IndexModel([("team_id", 1)]),
            IndexModel([("team_member_hashes", 1)]),
            IndexModel([("deleted", 1)]),
        ]

    @classmethod
    def from_domain_model(
        cls, application: Application, crypto: EncryptionService
    ) -> "ApplicationDocument":
        """Create ApplicationDocument from domain Application model.

        Args:
            application: Domain Application model instance.
            crypto: EncryptionService for personal data.

        Returns:
            ApplicationDocument instance.
        """
        return cls(
            id=_object_id(application.id),
            name=application.name,
            created=application.created,
            last_updated=application.last_updated,
            created_by=crypto.encrypt_text(application.created_by),
            team_id=application.team_id,
            team_members=[crypto.encrypt_text(m.email) for m in application.team_members],
            team_member_hashes=[crypto.fingerprint(m.email) for m in application.team_members],
            apis=application.apis,
            credentials=[
                StoredCredential(
                    client_id=c.client_id,
                    created=c.created,
                    secret_fragment=c.secret_fragment,
                    environment_id=c.environment_id,
                )
                for c in application.credentials
            ],
            deleted=application.deleted.deleted if application.deleted else None,
            deleted_by=crypto.encrypt_text(application.deleted.deleted_by)
            if application.deleted
            else None,
        )

    def to_domain_model(self, crypto: EncryptionService) -> Application:
        """Convert ApplicationDocument to domain Application model."""
        deleted = None
        if self.deleted is not None:
            deleted = Deleted(
                deleted=self.deleted,
                deleted_by=_decrypt_optional(crypto, self.deleted_by) or "",
            )
        return Application(
            id=str(self.id),
            name=self.name,
            created=self.created,
            last_updated=self.last_updated,
            created_by=crypto.decrypt_text(self.created_by),
            team_id=self.team_id,
            team_members=[TeamMember(email=crypto.decrypt_text(m)) for m in self.team_members],
            apis=self.apis,
            credentials=[Credential(**c.model_dump()) for c in self.credentials],
            deleted=deleted,
        )


class AccessRequestDocument(Document):
    """Beanie document model for AccessRequest.

    Indexes:
        - application_id: Requests for an application
        - status: Requests in a given state
    """

    application_id: Indexed(str)  # type: ignore[valid-type]
    api_id: str
    api_name: str
    status: Indexed(str)  # type: ignore[valid-type]
    endpoints: list[AccessRequestEndpoint] = []
    supporting_information: str  # encrypted
    requested: datetime
    requested_by: str  # encrypted
    decided: datetime | None = None
    decided_by: str | None = None  # encrypted
    rejected_reason: str | None = None  # encrypted
    cancelled: datetime | None = None
    cancelled_by: str | None = None  # encrypted
    environment_id: str

    class Settings:
        """Beanie document settings."""

        name = "access-requests"
        indexes = [
            IndexModel([("application_id", 1), ("status", 1)]),
        ]

    @classmethod
    def from_domain_model(
        cls, access_request: AccessRequest, crypto: EncryptionService
    ) -> "AccessRequestDocument":
        decision = access_request.decision
        cancelled = access_request.cancelled
        return cls(
            id=_object_id(access_request.id),
            application_id=access_request.application_id,
            api_id=access_request.api_id,
            api_name=access_request.api_name,
            status=access_request.status.value,
            endpoints=access_request.endpoints,
            supporting_information=crypto.encrypt_text(access_request.supporting_information),
            requested=access_request.requested,
            requested_by=crypto.encrypt_text(access_request.requested_by),
            decided=decision.decided if decision else None,
            decided_by=crypto.encrypt_text(decision.decided_by) if decision else None,
            rejected_reason=_encrypt_optional(crypto, decision.rejected_reason)
            if decision
            else None,
            cancelled=cancelled.cancelled if cancelled else None,
            cancelled_by=crypto.encrypt_text(cancelled.cancelled_by) if cancelled else None,
            environment_id=access_request.environment_id,
        )

    def to_domain_model(self, crypto: EncryptionService) -> AccessRequest:
        decision = None
        if self.decided is not None:
            decision = AccessRequestDecision(
                decided=self.decided,
                decided_by=_decrypt_optional(crypto, self.decided_by) or "",
                rejected_reason=_decrypt_optional(crypto, self.rejected_reason),
            )
        cancelled = None
        if self.cancelled is not None:
            cancelled = AccessRequestCancelled(
                cancelled=self.cancelled,
                cancelled_by=_decrypt_optional(crypto, self.cancelled_by) or "",
            )
        return AccessRequest(
            id=str(self.id),
            application_id=self.application_id,
            api_id=self.api_id,
            api_name=self.api_name,
            status=AccessRequestStatus(self.status),
            endpoints=self.endpoints,
            supporting_information=crypto.decrypt_text(self.supporting_information),
            requested=self.requested,
            requested_by=crypto.decrypt_text(self.requested_by),
            decision=decision,
            cancelled=cancelled,
            environment_id=self.environment_id,
        )


class TeamDocument(Document):
    """Beanie document model for Team.

    Indexes:
        - normalised_name: Unique, case-insensitive team names
        - team_member_hashes: Teams containing a member
    """

    name: str
    normalised_name: Indexed(str, unique=True)  # type: ignore[valid-type]
    created: datetime
    team_members: list[str] = []  # encrypted emails
    team_member_hashes: list[str] = []
    team_type: str
    egresses: list[str] = []

    class Settings:
        """Beanie document settings."""

        name = "teams"
        indexes = [
            IndexModel([("team_member_hashes", 1)]),
        ]

    @classmethod
    def from_domain_model(cls, team: Team, crypto: EncryptionService) -> "TeamDocument":
        return cls(
            id=_object_id(team.id),
            name=team.name,
            normalised_name=team.name.lower(),
            created=team.created,
            team_members=[crypto.encrypt_text(m.email) for m in team.team_members],
            team_member_hashes=[crypto.fingerprint(m.email) for m in team.team_members],
            team_type=team.team_type.value,
            egresses=team.egresses,
        )

    def to_domain_model(self, crypto: EncryptionService) -> Team:
        return Team(
            id=str(self.id),
            name=self.name,
            created=self.created,
            team_members=[TeamMember(email=crypto.decrypt_text(m)) for m in self.team_members],
            team_type=TeamType(self.team_type),
            egresses=self.egresses,
        )


class EventDocument(Document):
    """Beanie document model for Event. Inserted once, never replaced.

    Indexes:
        - entity_id + entity_type: Audit trail of one entity
        - user_hash: Events performed by one user
    """

    entity_id: str
    entity_type: str
    event_type: str
    user: str  # encrypted
    user_hash: Indexed(str)  # type: ignore[valid-type]
    timestamp: datetime
    description: str = ""
    detail: str = ""
    parameters: dict[str, Any] = {}

    class Settings:
        """Beanie document settings."""

        name = "events"
        indexes = [
            IndexModel([("entity_id", 1), ("entity_type", 1)]),
        ]

    @classmethod
    def from_domain_model(cls, event: Event, crypto: EncryptionService) -> "EventDocument":
        return cls(
            id=_object_id(event.id),
            entity_id=event.entity_id,
            entity_type=event.entity_type.value,
            event_type=event.event_type.value,
            user=crypto.encrypt_text(event.user),
            user_hash=crypto.fingerprint(event.user),
            timestamp=event.timestamp,
            description=event.description,
            detail=event.detail,
            parameters=event.parameters,
        )

    def to_domain_model(self, crypto: EncryptionService) -> Event:
        return Event(
            id=str(self.id),
            entity_id=self.entity_id,
            entity_type=EntityType(self.entity_type),
            event_type=EventType(self.event_type),
            user=crypto.decrypt_text(self.user),
            timestamp=self.timestamp,
            description=self.description,
            detail=self.detail,
            parameters=self.parameters,
        )


async def initialize_beanie_models(database: AsyncIOMotorDatabase) -> None:
    """Initialize Beanie with all document models.

    Registers all Beanie document models and creates indexes on startup.
    This function should be called once when the application starts.

    Args:
        database: MongoDB database instance from motor client.
    """
    await init_beanie(
        database=database,
        document_models=[
            ApplicationDocument,
            AccessRequestDocument,
            TeamDocument,
            EventDocument,
        ],
    )
