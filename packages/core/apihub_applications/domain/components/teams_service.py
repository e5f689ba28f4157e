"""TeamsService component for team management."""

from collections.abc import Callable
from datetime import datetime

from apihub_applications.domain.components import event_derivation
from apihub_applications.domain.components.events_service import EventsService
from apihub_applications.domain.interfaces.state_store import StateStore
from apihub_applications.domain.models.errors import (
    EgressNotFoundError,
    InvalidRequestError,
    TeamMemberNotFoundError,
    TeamNameNotUniqueError,
    TeamNotFoundError,
)
from apihub_applications.domain.models.team import NewTeam, Team


class TeamsService:
    """Creates teams and manages their members, names and egresses.

    Team names are unique ignoring case. Every change records a team event.
    """

    def __init__(
        self,
        state_store: StateStore,
        events_service: EventsService,
        clock: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        self._state_store = state_store
        self._events = events_service
        self._clock = clock

    async def create(self, new_team: NewTeam, user: str) -> Team:
        """Create a team.

        Raises:
            TeamNameNotUniqueError: If another team already uses the name.
        """
        await self._ensure_name_unique(new_team.name)
        now = self._clock()
        team = await self._state_store.insert_team(new_team.to_team(now))
        await self._events.log(event_derivation.team_created(team, user, now))
        return team

    async def find_by_id(self, team_id: str) -> Team | None:
        return await self._state_store.get_team(team_id)

    async def find_all(self, team_member: str | None = None) -> list[Team]:
        return await self._state_store.list_teams(team_member)

    async def _get(self, team_id: str) -> Team:
        team = await self._state_store.get_team(team_id)
        if team is None:
            raise TeamNotFoundError.for_id(team_id)
        return team

    async def _ensure_name_unique(self, name: str, team_id: str | None = None) -> None:
        existing = await self._state_store.find_team_by_name(name)
        if existing is not None and existing.id != team_id:
            raise TeamNameNotUniqueError.for_name(name)

    async def add_team_member(self, team_id: str, email: str, user: str) -> Team:
        """Add a member; adding an existing member changes nothing."""
        team = await self._get(team_id)
        if team.has_team_member(email):
            return team
        updated = team.add_team_member(email)
        await self._state_store.update_team(updated)
        await self._events.log(
            event_derivation.team_member_added(updated, email.strip().lower(), user, self._clock())
        )
        return updated

    async def remove_team_member(self, team_id: str, email: str, user: str) -> Team:
        """Remove a member.

        Raises:
            TeamNotFoundError: If the team does not exist.
            TeamMemberNotFoundError: If the email is not a member.
            InvalidRequestError: If the member is the last one.
        """
        team = await self._get(team_id)
        if not team.has_team_member(email):
            raise TeamMemberNotFoundError.for_team(team_id, email)
        if len(team.team_members) == 1:
            raise InvalidRequestError(f"Cannot remove the last member of team {team_id}")
        updated = team.remove_team_member(email)
        await self._state_store.update_team(updated)
        await self._events.log(
            event_derivation.team_member_removed(updated, email.strip().lower(), user, self._clock())
        )
        return updated

    async def rename(self, team_id: str, name: str, user: str) -> Team:
        """Rename a team, keeping names unique ignoring case."""
        team = await self._get(team_id)
        await self._ensure_name_unique(name, team_id=team.id)
        updated = team.set_name(name)
        await self._state_store.update_team(updated)
        await self._events.log(event_derivation.team_renamed(updated, team.name, user, self._clock()))
        return updated

    async def add_egresses(self, team_id: str, egresses: list[str], user: str) -> Team:
        team = await self._get(team_id)
        updated = team.add_egresses(egresses)
        await self._state_store.update_team(updated)
        await self._events.log(event_derivation.egresses_added(updated, egresses, user, self._clock()))
        return updated

    async def remove_egress(self, team_id: str, egress: str, user: str) -> Team:
        team = await self._get(team_id)
        if egress not in team.egresses:
            raise EgressNotFoundError.for_team(team_id, egress)
        updated = team.remove_egress(egress)
        await self._state_store.update_team(updated)
        await self._events.log(event_derivation.egress_removed(updated, egress, user, self._clock()))
        return updated
