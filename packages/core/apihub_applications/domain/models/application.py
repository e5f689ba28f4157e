"""Application aggregate and its linked APIs, endpoints and credentials."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from apihub_applications.domain.models.errors import InternalInconsistencyError

API_NAME_UNKNOWN = "API name unknown"


class TeamMember(BaseModel):
    """A member identified by email address."""

    email: str = Field(..., min_length=1)

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    @field_validator("email")
    @classmethod
    def normalise_email(cls, v: str) -> str:
        return v.strip().lower()


class Endpoint(BaseModel):
    """An API endpoint linked to an application and the scopes it requires."""

    http_method: str = Field(..., min_length=1)
    path: str = Field(..., min_length=1)
    scopes: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    @field_validator("http_method")
    @classmethod
    def upper_case_method(cls, v: str) -> str:
        return v.strip().upper()

    def matches(self, http_method: str, path: str) -> bool:
        return self.http_method == http_method.upper() and self.path == path

    def __str__(self) -> str:
        return f"{self.http_method} {self.path}"


class Api(BaseModel):
    """An API linked to an application, with the subset of endpoints in use."""

    id: str = Field(..., min_length=1)
    title: str = Field(default=API_NAME_UNKNOWN)
    endpoints: list[Endpoint] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @field_validator("title", mode="before")
    @classmethod
    def default_title(cls, v: str | None) -> str:
        return v or API_NAME_UNKNOWN

    @property
    def required_scopes(self) -> set[str]:
        return {scope for endpoint in self.endpoints for scope in endpoint.scopes}

    def has_endpoint(self, http_method: str, path: str) -> bool:
        return any(endpoint.matches(http_method, path) for endpoint in self.endpoints)


class Credential(BaseModel):
    """An identity-system client owned by one application in one environment.

    The client secret is only known right after the client is created and is
    never persisted. The secret fragment keeps its last four characters for
    display.
    """

    client_id: str = Field(..., min_length=1)
    created: datetime = Field(default_factory=datetime.utcnow)
    client_secret: str | None = Field(default=None)
    secret_fragment: str | None = Field(default=None)
    environment_id: str = Field(..., min_length=1)

    model_config = ConfigDict(frozen=True)

    def with_secret(self, secret: str) -> "Credential":
        return self.model_copy(update={"client_secret": secret, "secret_fragment": secret[-4:]})

    def without_secret(self) -> "Credential":
        return self.model_copy(update={"client_secret": None})

    def __repr__(self) -> str:
        """String representation that never exposes the secret."""
        return (
            f"Credential(client_id={self.client_id!r}, environment_id={self.environment_id!r}, "
            f"secret_fragment={self.secret_fragment!r})"
        )


class CredentialScopes(BaseModel):
    """Scopes a credential holds in the identity system right now."""

    environment_id: str
    client_id: str
    created: datetime
    scopes: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class Deleted(BaseModel):
    """Soft-delete tombstone."""

    deleted: datetime
    deleted_by: str

    model_config = ConfigDict(frozen=True)


class Application(BaseModel):
    """Aggregate root for an API consumer registration.

    Applications are immutable; every change returns a modified copy. An
    application is owned either by a team (`team_id`) or by an inline list of
    team members, never both. Each environment holds exactly one master
    credential.
    """

    id: str | None = Field(default=None, description="Stable 24-hex id assigned on insert")
    name: str = Field(..., min_length=1)
    created: datetime = Field(default_factory=datetime.utcnow)
    last_updated: datetime = Field(default_factory=datetime.utcnow)
    created_by: str = Field(..., description="Email of the creator")
    team_id: str | None = Field(default=None)
    team_members: list[TeamMember] = Field(default_factory=list)
    apis: list[Api] = Field(default_factory=list)
    credentials: list[Credential] = Field(default_factory=list)
    deleted: Deleted | None = Field(default=None)

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    @property
    def safe_id(self) -> str:
        """The application id, which must be assigned by now."""
        if self.id is None:
            raise InternalInconsistencyError(f"Application {self.name!r} has no id")
        return self.id

    @property
    def is_deleted(self) -> bool:
        return self.deleted is not None

    def updated(self, now: datetime) -> "Application":
        return self.model_copy(update={"last_updated": now})

    def delete(self, now: datetime, user: str) -> "Application":
        return self.model_copy(
            update={"deleted": Deleted(deleted=now, deleted_by=user), "last_updated": now}
        )

    # APIs

    def has_api(self, api_id: str) -> bool:
        return any(api.id == api_id for api in self.apis)

    def get_api(self, api_id: str) -> Api | None:
        return next((api for api in self.apis if api.id == api_id), None)

    def add_api(self, api: Api) -> "Application":
        return self.model_copy(update={"apis": [*self.apis, api]})

    def replace_api(self, api: Api) -> "Application":
        """Replace the API with the same id, or append it when not linked."""
        if not self.has_api(api.id):
            return self.add_api(api)
        return self.model_copy(
            update={"apis": [api if existing.id == api.id else existing for existing in self.apis]}
        )

    def remove_api(self, api_id: str) -> "Application":
        return self.model_copy(update={"apis": [api for api in self.apis if api.id != api_id]})

    @property
    def required_scopes(self) -> set[str]:
        return {scope for api in self.apis for scope in api.required_scopes}

    # Ownership

    def set_team_id(self, team_id: str) -> "Application":
        return self.model_copy(update={"team_id": team_id, "team_members": []})

    def remove_team(self, now: datetime) -> "Application":
        return self.model_copy(update={"team_id": None, "last_updated": now})

    def set_team_members(self, team_members: list[TeamMember]) -> "Application":
        return self.model_copy(update={"team_members": list(team_members)})

    def has_team_member(self, email: str) -> bool:
        return any(member.email == email.strip().lower() for member in self.team_members)

    def add_team_member(self, email: str) -> "Application":
        if self.has_team_member(email):
            return self
        return self.set_team_members([*self.team_members, TeamMember(email=email)])

    # Credentials

    def get_credentials(self, environment_id: str) -> list[Credential]:
        return [c for c in self.credentials if c.environment_id == environment_id]

    def get_master_credential(self, environment_id: str) -> Credential | None:
        """Return the single credential for an environment.

        Raises:
            InternalInconsistencyError: If the environment holds more than one
                credential.
        """
        credentials = self.get_credentials(environment_id)
        if len(credentials) > 1:
            raise InternalInconsistencyError(
                f"Application {self.id} has {len(credentials)} credentials "
                f"in environment {environment_id}",
                details={"applicationId": self.id, "environmentId": environment_id},
            )
        return credentials[0] if credentials else None

    def add_credential(self, credential: Credential) -> "Application":
        if self.get_credentials(credential.environment_id):
            raise InternalInconsistencyError(
                f"Application {self.id} already has a credential in environment "
                f"{credential.environment_id}",
                details={"applicationId": self.id, "environmentId": credential.environment_id},
            )
        return self.model_copy(update={"credentials": [*self.credentials, credential]})

    def remove_credential(self, client_id: str) -> "Application":
        return self.model_copy(
            update={"credentials": [c for c in self.credentials if c.client_id != client_id]}
        )

    def __repr__(self) -> str:
        return (
            f"Application(id={self.id!r}, name={self.name!r}, team_id={self.team_id!r}, "
            f"apis={len(self.apis)}, deleted={self.is_deleted})"
        )


class AddApiRequest(BaseModel):
    """Request to link an API (or replace its endpoints) on an application."""

    id: str = Field(..., min_length=1)
    title: str = Field(default=API_NAME_UNKNOWN)
    endpoints: list[Endpoint] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    def to_api(self) -> Api:
        return Api(id=self.id, title=self.title, endpoints=self.endpoints)


class NewApplication(BaseModel):
    """Registration request for a new application."""

    name: str = Field(..., min_length=1)
    created_by: str = Field(..., min_length=1)
    team_id: str | None = Field(default=None)
    team_members: list[TeamMember] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)
