from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query

from .. import schemas
from ..deps import get_current_user, provide
from ..service import WorkspaceService

router = APIRouter(prefix="/workspaces", tags=["workspaces"])

get_service = provide(WorkspaceService)


@router.post("", response_model=schemas.WorkspaceResponse, status_code=201)
def create_workspace(
    request: schemas.WorkspaceCreateRequest,
    service: WorkspaceService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.WorkspaceResponse:
    workspace = service.create_workspace(request, user_id)
    return schemas.WorkspaceResponse.model_validate(workspace)


@router.get("", response_model=list[schemas.WorkspaceMembershipResponse])
def list_workspaces(
    service: WorkspaceService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> list[schemas.WorkspaceMembershipResponse]:
    """Workspaces the caller belongs to, with the caller's role in each."""
    return [
        schemas.WorkspaceMembershipResponse(
            role=role, workspace=schemas.WorkspaceResponse.model_validate(workspace)
        )
        for role, workspace in service.list_workspaces(user_id)
    ]


@router.get("/check-slug-availability", response_model=schemas.SlugAvailabilityResponse)
def check_workspace_slug_availability(
    workspace_slug: str = Query(..., min_length=3, max_length=24),
    service: WorkspaceService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.SlugAvailabilityResponse:
    return schemas.SlugAvailabilityResponse(
        is_reserved=not service.is_workspace_slug_available(workspace_slug)
    )


@router.get("/{workspace_public_id}", response_model=schemas.WorkspaceResponse)
def get_workspace(
    workspace_public_id: str,
    service: WorkspaceService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.WorkspaceResponse:
    workspace = service.get_workspace(workspace_public_id, user_id)
    return schemas.WorkspaceResponse.model_validate(workspace)


@router.put("/{workspace_public_id}", response_model=schemas.WorkspaceResponse)
def update_workspace(
    workspace_public_id: str,
    request: schemas.WorkspaceUpdateRequest,
    service: WorkspaceService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.WorkspaceResponse:
    workspace = service.update_workspace(workspace_public_id, request, user_id)
    return schemas.WorkspaceResponse.model_validate(workspace)


@router.delete("/{workspace_public_id}", response_model=schemas.SuccessResponse)
def delete_workspace(
    workspace_public_id: str,
    service: WorkspaceService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.SuccessResponse:
    service.delete_workspace(workspace_public_id, user_id)
    return schemas.SuccessResponse()


# ========================================================================
# Members
# ========================================================================


@router.get("/{workspace_public_id}/members", response_model=list[schemas.MemberResponse])
def list_members(
    workspace_public_id: str,
    service: WorkspaceService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> list[schemas.MemberResponse]:
    members = service.list_members(workspace_public_id, user_id)
    return [schemas.MemberResponse.model_validate(m) for m in members]


@router.post(
    "/{workspace_public_id}/members",
    response_model=schemas.MemberResponse,
    status_code=201,
)
def invite_member(
    workspace_public_id: str,
    request: schemas.MemberInviteRequest,
    service: WorkspaceService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.MemberResponse:
    member = service.invite_member(workspace_public_id, request, user_id)
    return schemas.MemberResponse.model_validate(member)


@router.delete(
    "/{workspace_public_id}/members/{member_public_id}",
    response_model=schemas.SuccessResponse,
)
def remove_member(
    workspace_public_id: str,
    member_public_id: str,
    service: WorkspaceService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.SuccessResponse:
    service.remove_member(workspace_public_id, member_public_id, user_id)
    return schemas.SuccessResponse()
