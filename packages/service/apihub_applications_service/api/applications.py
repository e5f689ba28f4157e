"""
API endpoints for applications.
"""
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Path, Query, Response, status
from pydantic import BaseModel, Field

from apihub_applications.domain.components.applications_api_service import ApplicationsApiService
from apihub_applications.domain.components.applications_credentials_service import (
    ApplicationsCredentialsService,
)
from apihub_applications.domain.components.applications_lifecycle_service import (
    ApplicationsLifecycleService,
)
from apihub_applications.domain.components.events_service import EventsService
from apihub_applications.domain.models.application import AddApiRequest, NewApplication
from apihub_applications.domain.models.event import EntityType
from apihub_applications.domain.models.scope_fix import ScopeFixResult
from apihub_applications_service.dependencies import (
    get_applications_api_service,
    get_credentials_service,
    get_current_user,
    get_events_service,
    get_lifecycle_service,
)

router = APIRouter()

ApplicationId = Annotated[str, Path(..., description="The ID of the application.")]
CurrentUser = Annotated[str, Depends(get_current_user)]
Lifecycle = Annotated[ApplicationsLifecycleService, Depends(get_lifecycle_service)]
ApiService = Annotated[ApplicationsApiService, Depends(get_applications_api_service)]
Credentials = Annotated[ApplicationsCredentialsService, Depends(get_credentials_service)]
EnvironmentId = Annotated[str, Path(..., description="The ID of the environment.")]


class TeamMemberRequest(BaseModel):
    email: str = Field(..., min_length=1, description="Email of the member to add.")


def scope_fix_summary(result: ScopeFixResult) -> dict[str, Any]:
    return {
        "applicationId": result.application_id,
        "environments": [
            {
                "environmentId": fix.environment_id,
                "clientId": fix.client_id,
                "added": fix.added,
                "removed": fix.removed,
                "skipped": fix.skipped,
            }
            for fix in result.environments
        ],
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def register_application(
    request: Annotated[NewApplication, Body(...)],
    lifecycle: Lifecycle,
    user: CurrentUser,
) -> dict[str, Any]:
    """
    Register an application and create its credentials in every environment.
    """
    application = await lifecycle.register_application(request, user)
    return application.model_dump(mode="json")


@router.get("")
async def list_applications(
    lifecycle: Lifecycle,
    team_member: Annotated[str | None, Query(alias="teamMember")] = None,
    include_deleted: Annotated[bool, Query(alias="includeDeleted")] = False,
) -> list[dict[str, Any]]:
    applications = await lifecycle.find_all(team_member, include_deleted)
    return [application.model_dump(mode="json") for application in applications]


@router.get("/{application_id}")
async def get_application(
    application_id: ApplicationId,
    lifecycle: Lifecycle,
    include_deleted: Annotated[bool, Query(alias="includeDeleted")] = False,
) -> dict[str, Any]:
    application = await lifecycle.find_by_id(application_id, include_deleted)
    return application.model_dump(mode="json")


@router.delete("/{application_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_application(
    application_id: ApplicationId, lifecycle: Lifecycle, user: CurrentUser
) -> Response:
    await lifecycle.delete(application_id, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{application_id}/team-members", status_code=status.HTTP_204_NO_CONTENT)
async def add_team_member(
    application_id: ApplicationId,
    request: Annotated[TeamMemberRequest, Body(...)],
    lifecycle: Lifecycle,
) -> Response:
    await lifecycle.add_team_member(application_id, request.email)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{application_id}/apis")
async def add_api(
    application_id: ApplicationId,
    request: Annotated[AddApiRequest, Body(...)],
    api_service: ApiService,
    user: CurrentUser,
) -> dict[str, Any]:
    """
    Link an API to the application and reconcile its scopes.
    """
    application = await api_service.add_api(application_id, request, user)
    return application.model_dump(mode="json")


@router.delete("/{application_id}/apis/{api_id}")
async def remove_api(
    application_id: ApplicationId,
    api_id: Annotated[str, Path(..., description="The ID of the API to unlink.")],
    api_service: ApiService,
    user: CurrentUser,
) -> dict[str, Any]:
    application = await api_service.remove_api(application_id, api_id, user)
    return application.model_dump(mode="json")


@router.put("/{application_id}/teams/{team_id}")
async def change_owning_team(
    application_id: ApplicationId,
    team_id: Annotated[str, Path(..., description="The ID of the new owning team.")],
    api_service: ApiService,
    user: CurrentUser,
) -> dict[str, Any]:
    application = await api_service.change_owning_team(application_id, team_id, user)
    return application.model_dump(mode="json")


@router.delete("/{application_id}/teams")
async def remove_owning_team(
    application_id: ApplicationId, api_service: ApiService, user: CurrentUser
) -> dict[str, Any]:
    application = await api_service.remove_owning_team(application_id, user)
    return application.model_dump(mode="json")


@router.put("/{application_id}/fix-scopes")
async def fix_scopes(
    application_id: ApplicationId, api_service: ApiService, user: CurrentUser
) -> dict[str, Any]:
    """
    Reconcile the application's credential scopes in every environment.
    """
    result = await api_service.fix_scopes(application_id, user)
    return scope_fix_summary(result)


@router.get("/{application_id}/events")
async def list_application_events(
    application_id: ApplicationId,
    events_service: Annotated[EventsService, Depends(get_events_service)],
) -> list[dict[str, Any]]:
    events = await events_service.find_by_entity(EntityType.Application, application_id)
    return [event.model_dump(mode="json") for event in events]


@router.post(
    "/{application_id}/environments/{environment_id}/credentials",
    status_code=status.HTTP_201_CREATED,
)
async def add_credential(
    application_id: ApplicationId,
    environment_id: EnvironmentId,
    credentials: Credentials,
    user: CurrentUser,
) -> dict[str, Any]:
    """
    Create a credential in an environment and grant it the application's scopes.

    The client secret is only returned here.
    """
    credential, fix = await credentials.add_credential(application_id, environment_id, user)
    return {
        "credential": credential.model_dump(mode="json"),
        "scopesReconciled": fix.succeeded,
        "scopes": sorted(fix.target),
    }


@router.delete(
    "/{application_id}/environments/{environment_id}/credentials/{client_id}",
)
async def revoke_credential(
    application_id: ApplicationId,
    environment_id: EnvironmentId,
    client_id: Annotated[str, Path(..., description="The client ID of the credential.")],
    credentials: Credentials,
    user: CurrentUser,
) -> dict[str, Any]:
    application = await credentials.revoke_credential(
        application_id, environment_id, client_id, user
    )
    return application.model_dump(mode="json")


@router.get("/{application_id}/credentials/scopes")
async def list_credential_scopes(
    application_id: ApplicationId, credentials: Credentials
) -> list[dict[str, Any]]:
    scopes = await credentials.fetch_all_scopes(application_id)
    return [credential_scopes.model_dump(mode="json") for credential_scopes in scopes]
