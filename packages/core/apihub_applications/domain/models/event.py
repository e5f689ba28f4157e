"""Audit event model."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

UNKNOWN = "<unknown>"
"""Placeholder for a value that is not known when the event is built."""

MIGRATION_USER = "<migration>"
"""Actor recorded on system-generated events."""


class EventType(str, Enum):
    """Closed set of audited state transitions."""

    ApiAdded = "API_ADDED"
    EgressAdded = "EGRESS_ADDED"
    MemberAdded = "MEMBER_ADDED"
    Approved = "APPROVED"
    Canceled = "CANCELED"
    TeamChanged = "TEAM_CHANGED"
    Created = "CREATED"
    CredentialCreated = "CREDENTIAL_CREATED"
    Deleted = "DELETED"
    ScopesFixed = "SCOPES_FIXED"
    Promoted = "PROMOTED"
    Registered = "REGISTERED"
    Rejected = "REJECTED"
    ApiRemoved = "API_REMOVED"
    EgressRemoved = "EGRESS_REMOVED"
    MemberRemoved = "MEMBER_REMOVED"
    Renamed = "RENAMED"
    CredentialRevoked = "CREDENTIAL_REVOKED"
    Updated = "UPDATED"


class EntityType(str, Enum):
    """Kinds of entity an event can be about."""

    Application = "APPLICATION"
    AccessRequest = "ACCESSREQUEST"
    Team = "TEAM"
    Api = "API"


class Event(BaseModel):
    """Append-only audit record of one state transition.

    Events are immutable once written: stores insert them and never update or
    delete them.
    """

    id: str | None = Field(default=None, description="Assigned by the store on insert")
    entity_id: str = Field(..., description="Id of the entity the event is about")
    entity_type: EntityType = Field(...)
    event_type: EventType = Field(...)
    user: str = Field(..., description="Actor email, or MIGRATION_USER")
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    description: str = Field(default="")
    detail: str = Field(default="")
    parameters: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    def with_id(self, event_id: str) -> "Event":
        return self.model_copy(update={"id": event_id})
