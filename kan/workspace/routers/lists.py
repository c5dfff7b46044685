from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends

from .. import schemas
from ..boards import ListService
from ..deps import get_current_user, provide

router = APIRouter(prefix="/lists", tags=["lists"])

get_service = provide(ListService)


@router.post("", response_model=schemas.ListResponse, status_code=201)
def create_list(
    request: schemas.ListCreateRequest,
    service: ListService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.ListResponse:
    """Append a list to the end of a board."""
    board_list = service.create_list(request, user_id)
    return schemas.ListResponse.model_validate(board_list)


@router.put("/{list_public_id}", response_model=schemas.ListResponse)
def update_list(
    list_public_id: str,
    request: schemas.ListUpdateRequest,
    service: ListService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.ListResponse:
    board_list = service.update_list(list_public_id, request, user_id)
    return schemas.ListResponse.model_validate(board_list)


@router.delete("/{list_public_id}", response_model=schemas.SuccessResponse)
def delete_list(
    list_public_id: str,
    service: ListService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.SuccessResponse:
    service.delete_list(list_public_id, user_id)
    return schemas.SuccessResponse()
