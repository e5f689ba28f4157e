"""Team model."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from apihub_applications.domain.models.application import TeamMember


class TeamType(str, Enum):
    """Kinds of team."""

    ConsumerTeam = "consumer"
    """Team that owns applications consuming APIs."""

    ProducerTeam = "producer"
    """Team that publishes APIs; may also own egresses."""


class Team(BaseModel):
    """A group of people owning applications. Names are unique ignoring case."""

    id: str | None = Field(default=None)
    name: str = Field(..., min_length=1)
    created: datetime = Field(default_factory=datetime.utcnow)
    team_members: list[TeamMember] = Field(default_factory=list)
    team_type: TeamType = Field(default=TeamType.ConsumerTeam)
    egresses: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    @property
    def safe_id(self) -> str:
        if self.id is None:
            raise ValueError(f"Team {self.name!r} has no id")
        return self.id

    @property
    def member_emails(self) -> list[str]:
        return [member.email for member in self.team_members]

    def has_team_member(self, email: str) -> bool:
        return email.strip().lower() in self.member_emails

    def add_team_member(self, email: str) -> "Team":
        if self.has_team_member(email):
            return self
        return self.model_copy(
            update={"team_members": [*self.team_members, TeamMember(email=email)]}
        )

    def remove_team_member(self, email: str) -> "Team":
        email = email.strip().lower()
        return self.model_copy(
            update={"team_members": [m for m in self.team_members if m.email != email]}
        )

    def set_name(self, name: str) -> "Team":
        return self.model_copy(update={"name": name.strip()})

    def add_egresses(self, egresses: list[str]) -> "Team":
        merged = [*self.egresses, *(e for e in egresses if e not in self.egresses)]
        return self.model_copy(update={"egresses": list(dict.fromkeys(merged))})

    def remove_egress(self, egress: str) -> "Team":
        return self.model_copy(update={"egresses": [e for e in self.egresses if e != egress]})


class NewTeam(BaseModel):
    """Team creation request."""

    name: str = Field(..., min_length=1)
    team_members: list[TeamMember] = Field(default_factory=list)
    team_type: TeamType = Field(default=TeamType.ConsumerTeam)
    egresses: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    def to_team(self, now: datetime) -> Team:
        return Team(
            name=self.name,
            created=now,
            team_members=self.team_members,
            team_type=self.team_type,
            egresses=self.egresses,
        )
