"""Outcome of a scope reconciliation run."""

from pydantic import BaseModel, ConfigDict, Field

from apihub_applications.domain.models.errors import IdentityError


class ScopeOperation:
    """Names of the identity calls a reconciliation issues."""

    FETCH = "fetch"
    ADD = "add"
    REMOVE = "remove"


class EnvironmentScopeFix(BaseModel):
    """Reconciliation outcome for one environment's master credential.

    `added` and `removed` list only the calls that succeeded. When `error` is
    set, `failed_operation` names the call that failed and no further calls
    were issued for this environment.
    """

    environment_id: str = Field(..., description="Environment reconciled")
    client_id: str | None = Field(
        default=None,
        description="Master credential client id (None when the environment has no credential)",
    )
    target: frozenset[str] = Field(
        default_factory=frozenset,
        description="Scopes the credential should hold",
    )
    current: frozenset[str] | None = Field(
        default=None,
        description="Scopes the credential held before reconciliation (None if fetch failed)",
    )
    added: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)
    skipped: bool = Field(
        default=False,
        description="True when the application has no credential in this environment",
    )
    failed_operation: str | None = Field(default=None)
    error: IdentityError | None = Field(default=None)

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def calls_made(self) -> int:
        """Number of add/remove calls that succeeded."""
        return len(self.added) + len(self.removed)


class ScopeFixResult(BaseModel):
    """Reconciliation outcome across every configured environment."""

    application_id: str = Field(..., description="Application reconciled")
    environments: list[EnvironmentScopeFix] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @property
    def succeeded(self) -> bool:
        return all(fix.succeeded for fix in self.environments)

    @property
    def failures(self) -> list[EnvironmentScopeFix]:
        return [fix for fix in self.environments if not fix.succeeded]

    @property
    def calls_made(self) -> int:
        return sum(fix.calls_made for fix in self.environments)

    def for_environment(self, environment_id: str) -> EnvironmentScopeFix | None:
        for fix in self.environments:
            if fix.environment_id == environment_id:
                return fix
        return None
