from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query

from .. import schemas
from ..deps import get_current_user, get_optional_user, provide
from ..pages import PageService

router = APIRouter(tags=["pages"])

get_service = provide(PageService)


@router.get(
    "/workspaces/{workspace_public_id}/pages", response_model=list[schemas.PageSummary]
)
def list_pages(
    workspace_public_id: str,
    service: PageService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> list[schemas.PageSummary]:
    return service.list_pages(workspace_public_id, user_id)


@router.post("/pages", response_model=schemas.PageResponse, status_code=201)
def create_page(
    request: schemas.PageCreateRequest,
    service: PageService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.PageResponse:
    return service.create_page(request, user_id)


@router.get("/pages/slug/{page_slug}", response_model=schemas.PageResponse)
def get_page_by_slug(
    page_slug: str,
    service: PageService = Depends(get_service),
    user_id: Optional[uuid.UUID] = Depends(get_optional_user),
) -> schemas.PageResponse:
    return service.get_page_by_slug(page_slug, user_id)


@router.get("/pages/{page_public_id}", response_model=schemas.PageResponse)
def get_page(
    page_public_id: str,
    service: PageService = Depends(get_service),
    user_id: Optional[uuid.UUID] = Depends(get_optional_user),
) -> schemas.PageResponse:
    """Public pages are readable without an identity."""
    return service.get_page(page_public_id, user_id)


@router.put("/pages/{page_public_id}", response_model=schemas.PageResponse)
def update_page(
    page_public_id: str,
    request: schemas.PageUpdateRequest,
    service: PageService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.PageResponse:
    return service.update_page(page_public_id, request, user_id)


@router.get(
    "/pages/{page_public_id}/check-slug-availability",
    response_model=schemas.SlugAvailabilityResponse,
)
def check_page_slug_availability(
    page_public_id: str,
    page_slug: str = Query(..., min_length=3, max_length=60),
    service: PageService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.SlugAvailabilityResponse:
    return schemas.SlugAvailabilityResponse(
        is_reserved=service.check_slug_availability(page_slug, page_public_id, user_id)
    )


@router.delete("/pages/{page_public_id}", response_model=schemas.SuccessResponse)
def delete_page(
    page_public_id: str,
    service: PageService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.SuccessResponse:
    service.delete_page(page_public_id, user_id)
    return schemas.SuccessResponse()


# ========================================================================
# Tags
# ========================================================================


@router.post(
    "/pages/{page_public_id}/tags", response_model=schemas.TagResponse, status_code=201
)
def create_tag(
    page_public_id: str,
    request: schemas.TagCreateRequest,
    service: PageService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.TagResponse:
    return schemas.TagResponse.model_validate(
        service.create_tag(page_public_id, request, user_id)
    )


@router.put("/page-tags/{tag_public_id}", response_model=schemas.TagResponse)
def update_tag(
    tag_public_id: str,
    request: schemas.TagUpdateRequest,
    service: PageService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.TagResponse:
    return schemas.TagResponse.model_validate(service.update_tag(tag_public_id, request, user_id))


@router.delete("/page-tags/{tag_public_id}", response_model=schemas.SuccessResponse)
def delete_tag(
    tag_public_id: str,
    service: PageService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.SuccessResponse:
    service.delete_tag(tag_public_id, user_id)
    return schemas.SuccessResponse()


# ========================================================================
# Workspace page labels
# ========================================================================


@router.get(
    "/workspaces/{workspace_public_id}/page-labels",
    response_model=list[schemas.PageLabelResponse],
)
def list_page_labels(
    workspace_public_id: str,
    service: PageService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> list[schemas.PageLabelResponse]:
    labels = service.list_labels(workspace_public_id, user_id)
    return [schemas.PageLabelResponse.model_validate(label) for label in labels]


@router.post(
    "/workspaces/{workspace_public_id}/page-labels",
    response_model=schemas.PageLabelResponse,
    status_code=201,
)
def create_page_label(
    workspace_public_id: str,
    request: schemas.PageLabelCreateRequest,
    service: PageService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.PageLabelResponse:
    label = service.create_label(workspace_public_id, request, user_id)
    return schemas.PageLabelResponse.model_validate(label)


@router.put("/page-labels/{label_public_id}", response_model=schemas.PageLabelResponse)
def update_page_label(
    label_public_id: str,
    request: schemas.PageLabelUpdateRequest,
    service: PageService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.PageLabelResponse:
    label = service.update_label(label_public_id, request, user_id)
    return schemas.PageLabelResponse.model_validate(label)


@router.delete("/page-labels/{label_public_id}", response_model=schemas.SuccessResponse)
def delete_page_label(
    label_public_id: str,
    service: PageService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.SuccessResponse:
    service.delete_label(label_public_id, user_id)
    return schemas.SuccessResponse()


@router.put(
    "/pages/{page_public_id}/labels/{label_public_id}", response_model=schemas.SuccessResponse
)
def attach_page_label(
    page_public_id: str,
    label_public_id: str,
    service: PageService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.SuccessResponse:
    service.attach_label(page_public_id, label_public_id, user_id)
    return schemas.SuccessResponse()


@router.delete(
    "/pages/{page_public_id}/labels/{label_public_id}", response_model=schemas.SuccessResponse
)
def detach_page_label(
    page_public_id: str,
    label_public_id: str,
    service: PageService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.SuccessResponse:
    service.detach_label(page_public_id, label_public_id, user_id)
    return schemas.SuccessResponse()
