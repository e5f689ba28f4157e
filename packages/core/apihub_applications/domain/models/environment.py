"""Deployment environments and their validation rules."""

import re

from pydantic import BaseModel, ConfigDict, Field, model_validator

PRODUCTION_ENVIRONMENT_ID = "production"

_URL_SAFE_ID = re.compile(r"^[A-Za-z0-9\-_.~]+$")


class Environment(BaseModel):
    """A deployment stage with its own identity-system endpoint and credentials.

    Production-like environments are gated: an application only receives a
    scope there once an access request covering it has been approved.
    """

    id: str = Field(..., description="URL-safe environment identifier", min_length=1)
    name: str = Field(..., description="Display name")
    rank: int = Field(..., description="Promotion order, starting at 1", ge=1)
    is_production_like: bool = Field(default=False)
    apim_url: str = Field(..., description="Base URL of the identity/APIM gateway")
    client_id: str = Field(..., description="Client id this service uses to call the gateway")
    secret: str = Field(..., description="Secret this service uses to call the gateway")
    use_proxy: bool = Field(default=False)
    api_key: str | None = Field(default=None, description="x-api-key header value")
    promote_to: str | None = Field(default=None, description="Next environment in the chain")
    apim_environment_name: str = Field(..., description="Environment name at the gateway")

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    @property
    def is_gated(self) -> bool:
        return self.is_production_like

    def __repr__(self) -> str:
        """String representation that never exposes the secret."""
        return (
            f"Environment(id={self.id!r}, rank={self.rank}, "
            f"is_production_like={self.is_production_like})"
        )


class Environments(BaseModel):
    """Validated set of configured environments."""

    environments: list[Environment] = Field(..., min_length=1)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_environments(self) -> "Environments":
        """Check ranks, ids, the production environment and promotion chains."""
        ranks = sorted(environment.rank for environment in self.environments)
        if ranks != list(range(1, len(ranks) + 1)):
            raise ValueError(f"Environment ranks must be contiguous from 1, got {ranks}")

        ids = [environment.id for environment in self.environments]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Environment ids must be unique, got {ids}")
        for environment_id in ids:
            if not _URL_SAFE_ID.match(environment_id):
                raise ValueError(f"Environment id {environment_id!r} is not URL-safe")

        by_id = {environment.id: environment for environment in self.environments}
        production = by_id.get(PRODUCTION_ENVIRONMENT_ID)
        if production is None:
            raise ValueError("A production environment must be configured")
        if not production.is_production_like:
            raise ValueError("The production environment must be production-like")
        if production.promote_to is not None:
            raise ValueError("The production environment cannot promote to another environment")

        targets = [e.promote_to for e in self.environments if e.promote_to is not None]
        if len(set(targets)) != len(targets):
            raise ValueError("Two environments cannot promote to the same environment")
        for target in targets:
            if target not in by_id:
                raise ValueError(f"Unknown promotion target {target!r}")

        for environment in self.environments:
            seen = {environment.id}
            current = environment
            while current.promote_to is not None:
                if current.promote_to in seen:
                    raise ValueError(
                        f"Promotion chain starting at {environment.id!r} contains a cycle"
                    )
                seen.add(current.promote_to)
                current = by_id[current.promote_to]

            if environment.use_proxy and not environment.api_key:
                raise ValueError(
                    f"Environment {environment.id!r} uses the proxy but has no api_key"
                )

        return self

    @property
    def ordered(self) -> list[Environment]:
        return sorted(self.environments, key=lambda environment: environment.rank)

    @property
    def production(self) -> Environment:
        return next(e for e in self.environments if e.id == PRODUCTION_ENVIRONMENT_ID)

    @property
    def gated(self) -> list[Environment]:
        return [environment for environment in self.ordered if environment.is_gated]

    def for_id(self, environment_id: str) -> Environment | None:
        for environment in self.environments:
            if environment.id == environment_id:
                return environment
        return None
