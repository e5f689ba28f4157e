"""
API endpoints for access requests.
"""
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Path, Query, status
from pydantic import BaseModel, Field

from apihub_applications.domain.components.access_requests_service import AccessRequestsService
from apihub_applications.domain.models.access_request import (
    AccessRequestRequest,
    AccessRequestStatus,
)
from apihub_applications.domain.models.errors import AccessRequestNotFoundError
from apihub_applications_service.dependencies import (
    get_access_requests_service,
    get_current_user,
)

router = APIRouter()

AccessRequestId = Annotated[str, Path(..., description="The ID of the access request.")]
CurrentUser = Annotated[str, Depends(get_current_user)]
Service = Annotated[AccessRequestsService, Depends(get_access_requests_service)]


class RejectRequest(BaseModel):
    rejected_reason: str = Field(..., description="Why the request was rejected.")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_access_requests(
    request: Annotated[AccessRequestRequest, Body(...)],
    service: Service,
) -> list[dict[str, Any]]:
    """
    Submit one access request per requested API.
    """
    access_requests = await service.create_access_requests(request)
    return [access_request.model_dump(mode="json") for access_request in access_requests]


@router.get("")
async def list_access_requests(
    service: Service,
    application_id: Annotated[str | None, Query(alias="applicationId")] = None,
    request_status: Annotated[AccessRequestStatus | None, Query(alias="status")] = None,
) -> list[dict[str, Any]]:
    access_requests = await service.get_access_requests(application_id, request_status)
    return [access_request.model_dump(mode="json") for access_request in access_requests]


@router.get("/{access_request_id}")
async def get_access_request(access_request_id: AccessRequestId, service: Service) -> dict[str, Any]:
    access_request = await service.get_access_request(access_request_id)
    if access_request is None:
        raise AccessRequestNotFoundError.for_id(access_request_id)
    return access_request.model_dump(mode="json")


@router.put("/{access_request_id}/approve")
async def approve_access_request(
    access_request_id: AccessRequestId, service: Service, user: CurrentUser
) -> dict[str, Any]:
    """
    Approve a pending request and grant its scopes.
    """
    access_request = await service.approve(access_request_id, user)
    return access_request.model_dump(mode="json")


@router.put("/{access_request_id}/reject")
async def reject_access_request(
    access_request_id: AccessRequestId,
    request: Annotated[RejectRequest, Body(...)],
    service: Service,
    user: CurrentUser,
) -> dict[str, Any]:
    access_request = await service.reject(access_request_id, user, request.rejected_reason)
    return access_request.model_dump(mode="json")


@router.put("/{access_request_id}/cancel")
async def cancel_access_request(
    access_request_id: AccessRequestId, service: Service, user: CurrentUser
) -> dict[str, Any]:
    access_request = await service.cancel(access_request_id, user)
    return access_request.model_dump(mode="json")
