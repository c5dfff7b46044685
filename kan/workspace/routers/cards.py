from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import StreamingResponse

from .. import schemas
from ..cards import CardService, card_response
from ..deps import get_current_user, provide
from ..events import card_topic
from .streaming import authorize_subscription, stream_topic

router = APIRouter(tags=["cards"])

get_service = provide(CardService)


@router.post("/cards", response_model=schemas.CardResponse, status_code=201)
def create_card(
    request: schemas.CardCreateRequest,
    service: CardService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.CardResponse:
    return card_response(service.create_card(request, user_id))


@router.get("/cards/{card_public_id}", response_model=schemas.CardResponse)
def get_card(
    card_public_id: str,
    service: CardService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.CardResponse:
    return card_response(service.get_card(card_public_id, user_id))


@router.put("/cards/{card_public_id}", response_model=schemas.CardResponse)
def update_card(
    card_public_id: str,
    request: schemas.CardUpdateRequest,
    service: CardService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.CardResponse:
    """Partial update; sending ``list_public_id`` moves the card."""
    return card_response(service.update_card(card_public_id, request, user_id))


@router.delete("/cards/{card_public_id}", response_model=schemas.SuccessResponse)
def delete_card(
    card_public_id: str,
    service: CardService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.SuccessResponse:
    service.delete_card(card_public_id, user_id)
    return schemas.SuccessResponse()


@router.put(
    "/cards/{card_public_id}/labels/{label_public_id}", response_model=schemas.ToggleResponse
)
def toggle_card_label(
    card_public_id: str,
    label_public_id: str,
    service: CardService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.ToggleResponse:
    return schemas.ToggleResponse(
        added=service.toggle_label(card_public_id, label_public_id, user_id)
    )


@router.put(
    "/cards/{card_public_id}/members/{member_public_id}",
    response_model=schemas.ToggleResponse,
)
def toggle_card_member(
    card_public_id: str,
    member_public_id: str,
    service: CardService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.ToggleResponse:
    return schemas.ToggleResponse(
        added=service.toggle_member(card_public_id, member_public_id, user_id)
    )


# ========================================================================
# Comments
# ========================================================================


@router.post(
    "/cards/{card_public_id}/comments",
    response_model=schemas.CommentResponse,
    status_code=201,
)
def add_comment(
    card_public_id: str,
    request: schemas.CommentCreateRequest,
    service: CardService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.CommentResponse:
    comment = service.add_comment(card_public_id, request, user_id)
    return schemas.CommentResponse.model_validate(comment)


@router.put("/comments/{comment_public_id}", response_model=schemas.CommentResponse)
def update_comment(
    comment_public_id: str,
    request: schemas.CommentUpdateRequest,
    service: CardService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.CommentResponse:
    comment = service.update_comment(comment_public_id, request, user_id)
    return schemas.CommentResponse.model_validate(comment)


@router.delete("/comments/{comment_public_id}", response_model=schemas.SuccessResponse)
def delete_comment(
    comment_public_id: str,
    service: CardService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.SuccessResponse:
    service.delete_comment(comment_public_id, user_id)
    return schemas.SuccessResponse()


@router.get("/cards/{card_public_id}/events", response_class=StreamingResponse)
async def card_events(
    request: Request,
    card_public_id: str,
    last_event_id: Optional[str] = Query(None),
    last_event_id_header: Optional[str] = Header(None, alias="Last-Event-ID"),
    user_id: uuid.UUID = Depends(get_current_user),
) -> StreamingResponse:
    """Live card events as ``text/event-stream``."""
    card_id = await authorize_subscription(request, CardService, card_public_id, user_id)
    return stream_topic(request, card_topic(card_id), last_event_id or last_event_id_header)
