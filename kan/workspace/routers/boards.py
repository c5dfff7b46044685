from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import StreamingResponse

from .. import schemas
from ..boards import BoardService
from ..deps import get_current_user, get_optional_user, provide
from ..events import board_topic
from .streaming import authorize_subscription, stream_topic

router = APIRouter(tags=["boards"])

get_service = provide(BoardService)


@router.get(
    "/workspaces/{workspace_public_id}/boards", response_model=list[schemas.BoardSummary]
)
def list_boards(
    workspace_public_id: str,
    service: BoardService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> list[schemas.BoardSummary]:
    boards = service.list_boards(workspace_public_id, user_id)
    return [schemas.BoardSummary.model_validate(board) for board in boards]


@router.get(
    "/workspaces/{workspace_slug}/boards/{board_slug}", response_model=schemas.BoardResponse
)
def get_board_by_slug(
    workspace_slug: str,
    board_slug: str,
    members: list[str] = Query([]),
    labels: list[str] = Query([]),
    due_date_filters: list[str] = Query([]),
    service: BoardService = Depends(get_service),
    user_id: Optional[uuid.UUID] = Depends(get_optional_user),
) -> schemas.BoardResponse:
    """Public boards need no identity; private boards require membership."""
    return service.get_board_by_slug(
        workspace_slug,
        board_slug,
        user_id,
        members=members,
        labels=labels,
        due_date_filters=due_date_filters,
    )


@router.post("/boards", response_model=schemas.BoardResponse, status_code=201)
def create_board(
    request: schemas.BoardCreateRequest,
    service: BoardService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.BoardResponse:
    return service.create_board(request, user_id)


@router.get("/boards/{board_public_id}", response_model=schemas.BoardResponse)
def get_board(
    board_public_id: str,
    members: list[str] = Query([]),
    labels: list[str] = Query([]),
    due_date_filters: list[str] = Query([]),
    service: BoardService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.BoardResponse:
    return service.get_board(
        board_public_id,
        user_id,
        members=members,
        labels=labels,
        due_date_filters=due_date_filters,
    )


@router.put("/boards/{board_public_id}", response_model=schemas.BoardSummary)
def update_board(
    board_public_id: str,
    request: schemas.BoardUpdateRequest,
    service: BoardService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.BoardSummary:
    board = service.update_board(board_public_id, request, user_id)
    return schemas.BoardSummary.model_validate(board)


@router.delete("/boards/{board_public_id}", response_model=schemas.SuccessResponse)
def delete_board(
    board_public_id: str,
    service: BoardService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.SuccessResponse:
    service.delete_board(board_public_id, user_id)
    return schemas.SuccessResponse()


@router.get(
    "/boards/{board_public_id}/check-slug-availability",
    response_model=schemas.SlugAvailabilityResponse,
)
def check_board_slug_availability(
    board_public_id: str,
    board_slug: str = Query(..., min_length=3, max_length=60),
    service: BoardService = Depends(get_service),
    user_id: uuid.UUID = Depends(get_current_user),
) -> schemas.SlugAvailabilityResponse:
    return schemas.SlugAvailabilityResponse(
        is_reserved=service.check_slug_availability(board_slug, board_public_id, user_id)
    )


@router.get("/boards/{board_public_id}/events", response_class=StreamingResponse)
async def board_events(
    request: Request,
    board_public_id: str,
    last_event_id: Optional[str] = Query(None),
    last_event_id_header: Optional[str] = Header(None, alias="Last-Event-ID"),
    user_id: uuid.UUID = Depends(get_current_user),
) -> StreamingResponse:
    """Live board events as ``text/event-stream``."""
    board_id = await authorize_subscription(request, BoardService, board_public_id, user_id)
    return stream_topic(request, board_topic(board_id), last_event_id or last_event_id_header)
