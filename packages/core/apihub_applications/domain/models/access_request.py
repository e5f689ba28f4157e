"""AccessRequest model and the Pending -> decided/cancelled state machine."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from apihub_applications.domain.models.environment import PRODUCTION_ENVIRONMENT_ID


class AccessRequestStatus(str, Enum):
    """Lifecycle states of an access request."""

    Pending = "PENDING"
    """Awaiting a decision."""

    Approved = "APPROVED"
    """Approved; scopes for the requested endpoints may be granted. Terminal."""

    Rejected = "REJECTED"
    """Rejected with a reason. Terminal."""

    Cancelled = "CANCELLED"
    """Withdrawn before a decision. Terminal."""

    @property
    def is_terminal(self) -> bool:
        return self != AccessRequestStatus.Pending


class AccessRequestEndpoint(BaseModel):
    """An endpoint of the API the requester wants access to."""

    http_method: str = Field(..., min_length=1)
    path: str = Field(..., min_length=1)
    scopes: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)


class AccessRequestDecision(BaseModel):
    """Who decided, when, and (for rejections) why."""

    decided: datetime
    decided_by: str
    rejected_reason: str | None = None

    model_config = ConfigDict(frozen=True)


class AccessRequestCancelled(BaseModel):
    """Who cancelled and when."""

    cancelled: datetime
    cancelled_by: str

    model_config = ConfigDict(frozen=True)


class AccessRequest(BaseModel):
    """A request for the scopes of specific endpoints of one API.

    Requests only ever move out of Pending once, and never return to it.
    `decision` is set for Approved and Rejected requests, `cancelled` only
    for Cancelled ones.
    """

    id: str | None = Field(default=None)
    application_id: str = Field(..., min_length=1)
    api_id: str = Field(..., min_length=1)
    api_name: str = Field(...)
    status: AccessRequestStatus = Field(default=AccessRequestStatus.Pending)
    endpoints: list[AccessRequestEndpoint] = Field(default_factory=list)
    supporting_information: str = Field(default="")
    requested: datetime = Field(default_factory=datetime.utcnow)
    requested_by: str = Field(..., min_length=1)
    decision: AccessRequestDecision | None = Field(default=None)
    cancelled: AccessRequestCancelled | None = Field(default=None)
    environment_id: str = Field(default=PRODUCTION_ENVIRONMENT_ID)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_status_fields(self) -> "AccessRequest":
        """Keep decision and cancelled consistent with status."""
        if self.decision is not None and self.cancelled is not None:
            raise ValueError("An access request cannot be both decided and cancelled")
        if self.status in (AccessRequestStatus.Approved, AccessRequestStatus.Rejected):
            if self.decision is None:
                raise ValueError(f"A {self.status.value} access request requires a decision")
        elif self.decision is not None:
            raise ValueError(f"A {self.status.value} access request cannot have a decision")
        if self.status == AccessRequestStatus.Cancelled:
            if self.cancelled is None:
                raise ValueError("A CANCELLED access request requires cancellation details")
        elif self.cancelled is not None:
            raise ValueError(f"A {self.status.value} access request cannot be cancelled")
        if self.status == AccessRequestStatus.Rejected and not (
            self.decision and self.decision.rejected_reason
        ):
            raise ValueError("A REJECTED access request requires a rejection reason")
        return self

    @property
    def is_pending(self) -> bool:
        return self.status == AccessRequestStatus.Pending

    @property
    def safe_id(self) -> str:
        if self.id is None:
            raise ValueError("Access request has no id")
        return self.id

    @property
    def scopes(self) -> set[str]:
        return {scope for endpoint in self.endpoints for scope in endpoint.scopes}

    # Transitions build a new instance so the validator checks the result.

    def approve(self, now: datetime, user: str) -> "AccessRequest":
        return AccessRequest(
            **self.model_dump(exclude={"status", "decision"}),
            status=AccessRequestStatus.Approved,
            decision=AccessRequestDecision(decided=now, decided_by=user),
        )

    def reject(self, now: datetime, user: str, reason: str) -> "AccessRequest":
        return AccessRequest(
            **self.model_dump(exclude={"status", "decision"}),
            status=AccessRequestStatus.Rejected,
            decision=AccessRequestDecision(decided=now, decided_by=user, rejected_reason=reason),
        )

    def cancel(self, now: datetime, user: str) -> "AccessRequest":
        return AccessRequest(
            **self.model_dump(exclude={"status", "cancelled"}),
            status=AccessRequestStatus.Cancelled,
            cancelled=AccessRequestCancelled(cancelled=now, cancelled_by=user),
        )


class AccessRequestApi(BaseModel):
    """One API within an access request submission."""

    api_id: str = Field(..., min_length=1)
    api_name: str = Field(...)
    endpoints: list[AccessRequestEndpoint] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class AccessRequestRequest(BaseModel):
    """A submission covering one or more APIs for one application."""

    application_id: str = Field(..., min_length=1)
    supporting_information: str = Field(default="")
    requested_by: str = Field(..., min_length=1)
    apis: list[AccessRequestApi] = Field(..., min_length=1)
    environment_id: str = Field(default=PRODUCTION_ENVIRONMENT_ID)

    model_config = ConfigDict(frozen=True)

    def to_access_requests(self, now: datetime) -> list[AccessRequest]:
        """Create one Pending access request per API."""
        return [
            AccessRequest(
                application_id=self.application_id,
                api_id=api.api_id,
                api_name=api.api_name,
                status=AccessRequestStatus.Pending,
                endpoints=api.endpoints,
                supporting_information=self.supporting_information,
                requested=now,
                requested_by=self.requested_by,
                environment_id=self.environment_id,
            )
            for api in self.apis
        ]
