"""
API endpoints for teams.
"""
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Path, Query, status
from pydantic import BaseModel, Field

from apihub_applications.domain.components.teams_service import TeamsService
from apihub_applications.domain.models.errors import TeamNotFoundError
from apihub_applications.domain.models.team import NewTeam
from apihub_applications_service.dependencies import get_current_user, get_teams_service

router = APIRouter()

TeamId = Annotated[str, Path(..., description="The ID of the team.")]
CurrentUser = Annotated[str, Depends(get_current_user)]
Service = Annotated[TeamsService, Depends(get_teams_service)]


class TeamMemberRequest(BaseModel):
    email: str = Field(..., min_length=1)


class RenameTeamRequest(BaseModel):
    name: str = Field(..., min_length=1)


class EgressesRequest(BaseModel):
    egresses: list[str] = Field(..., min_length=1)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_team(
    request: Annotated[NewTeam, Body(...)], service: Service, user: CurrentUser
) -> dict[str, Any]:
    team = await service.create(request, user)
    return team.model_dump(mode="json")


@router.get("")
async def list_teams(
    service: Service,
    team_member: Annotated[str | None, Query(alias="teamMember")] = None,
) -> list[dict[str, Any]]:
    return [team.model_dump(mode="json") for team in await service.find_all(team_member)]


@router.get("/{team_id}")
async def get_team(team_id: TeamId, service: Service) -> dict[str, Any]:
    team = await service.find_by_id(team_id)
    if team is None:
        raise TeamNotFoundError.for_id(team_id)
    return team.model_dump(mode="json")


@router.post("/{team_id}/members")
async def add_team_member(
    team_id: TeamId,
    request: Annotated[TeamMemberRequest, Body(...)],
    service: Service,
    user: CurrentUser,
) -> dict[str, Any]:
    team = await service.add_team_member(team_id, request.email, user)
    return team.model_dump(mode="json")


@router.delete("/{team_id}/members/{email}")
async def remove_team_member(
    team_id: TeamId,
    email: Annotated[str, Path(..., description="Email of the member to remove.")],
    service: Service,
    user: CurrentUser,
) -> dict[str, Any]:
    team = await service.remove_team_member(team_id, email, user)
    return team.model_dump(mode="json")


@router.put("/{team_id}/name")
async def rename_team(
    team_id: TeamId,
    request: Annotated[RenameTeamRequest, Body(...)],
    service: Service,
    user: CurrentUser,
) -> dict[str, Any]:
    team = await service.rename(team_id, request.name, user)
    return team.model_dump(mode="json")


@router.post("/{team_id}/egresses")
async def add_egresses(
    team_id: TeamId,
    request: Annotated[EgressesRequest, Body(...)],
    service: Service,
    user: CurrentUser,
) -> dict[str, Any]:
    team = await service.add_egresses(team_id, request.egresses, user)
    return team.model_dump(mode="json")


@router.delete("/{team_id}/egresses/{egress}")
async def remove_egress(
    team_id: TeamId,
    egress: Annotated[str, Path(..., description="Egress to remove.")],
    service: Service,
    user: CurrentUser,
) -> dict[str, Any]:
    team = await service.remove_egress(team_id, egress, user)
    return team.model_dump(mode="json")
