from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends

from .. import schemas
from ..boards import live
from ..cards import ChecklistService
from ..deps import get_current_user, provide
from ..models import Checklist

router = APIRouter(tags=["checklists"])

get_service = provide(ChecklistService)


def _checklist_response(checklist: Checklist) -> schemas.ChecklistResponse:
    return schemas.ChecklistResponse(
        public_id=checklist.public_id,
        name=checklist.name,
        items=[schemas.ChecklistItemResponse.model_validate(i) for i in live(checklist.items)],
    )


@router.post(
    "/cards/{card_public_id}/checklists",
    response_model=schemas.ChecklistResponse,
    status_code=201,
)
def create_checklist(
    card_public_id: str,
    request: schemas.ChecklistCreateRequest,
    service: ChecklistService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.ChecklistResponse:
    return _checklist_response(service.create_checklist(card_public_id, request, user_id))


@router.put("/checklists/{checklist_public_id}", response_model=schemas.ChecklistResponse)
def update_checklist(
    checklist_public_id: str,
    request: schemas.ChecklistUpdateRequest,
    service: ChecklistService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.ChecklistResponse:
    return _checklist_response(service.update_checklist(checklist_public_id, request, user_id))


@router.delete("/checklists/{checklist_public_id}", response_model=schemas.SuccessResponse)
def delete_checklist(
    checklist_public_id: str,
    service: ChecklistService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.SuccessResponse:
    service.delete_checklist(checklist_public_id, user_id)
    return schemas.SuccessResponse()


@router.post(
    "/checklists/{checklist_public_id}/items",
    response_model=schemas.ChecklistItemResponse,
    status_code=201,
)
def create_checklist_item(
    checklist_public_id: str,
    request: schemas.ChecklistItemCreateRequest,
    service: ChecklistService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.ChecklistItemResponse:
    item = service.create_item(checklist_public_id, request, user_id)
    return schemas.ChecklistItemResponse.model_validate(item)


@router.patch("/checklist-items/{item_public_id}", response_model=schemas.ChecklistItemResponse)
def update_checklist_item(
    item_public_id: str,
    request: schemas.ChecklistItemUpdateRequest,
    service: ChecklistService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.ChecklistItemResponse:
    """Rename an item and/or toggle its completion."""
    item = service.update_item(item_public_id, request, user_id)
    return schemas.ChecklistItemResponse.model_validate(item)


@router.delete("/checklist-items/{item_public_id}", response_model=schemas.SuccessResponse)
def delete_checklist_item(
    item_public_id: str,
    service: ChecklistService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.SuccessResponse:
    service.delete_item(item_public_id, user_id)
    return schemas.SuccessResponse()
