from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends

from .. import schemas
from ..boards import LabelService
from ..deps import get_current_user, provide

router = APIRouter(prefix="/labels", tags=["labels"])

get_service = provide(LabelService)


@router.post("", response_model=schemas.LabelResponse, status_code=201)
def create_label(
    request: schemas.LabelCreateRequest,
    service: LabelService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.LabelResponse:
    label = service.create_label(request, user_id)
    return schemas.LabelResponse.model_validate(label)


@router.get("/{label_public_id}", response_model=schemas.LabelResponse)
def get_label(
    label_public_id: str,
    service: LabelService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.LabelResponse:
    return schemas.LabelResponse.model_validate(service.get_label(label_public_id, user_id))


@router.put("/{label_public_id}", response_model=schemas.LabelResponse)
def update_label(
    label_public_id: str,
    request: schemas.LabelUpdateRequest,
    service: LabelService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.LabelResponse:
    label = service.update_label(label_public_id, request, user_id)
    return schemas.LabelResponse.model_validate(label)


@router.delete("/{label_public_id}", response_model=schemas.SuccessResponse)
def delete_label(
    label_public_id: str,
    service: LabelService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.SuccessResponse:
    service.delete_label(label_public_id, user_id)
    return schemas.SuccessResponse()
