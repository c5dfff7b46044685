"""Pydantic schemas for workspace API requests/responses."""

from __future__ import annotations

import datetime as dt
import uuid
from typing import Annotated, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from .models import (
    BoardVisibility,
    CardActivityType,
    MemberRole,
    MemberStatus,
    PageVisibility,
    WorkspacePlan,
)
from .utils import SLUG_PATTERN

__all__ = [
    "SuccessResponse",
    "SlugAvailabilityResponse",
    "ToggleResponse",
    "WorkspaceCreateRequest",
    "WorkspaceUpdateRequest",
    "WorkspaceResponse",
    "WorkspaceMembershipResponse",
    "MemberInviteRequest",
    "MemberResponse",
    "MemberSummary",
    "BoardCreateRequest",
    "BoardUpdateRequest",
    "BoardSummary",
    "BoardResponse",
    "ListCreateRequest",
    "ListUpdateRequest",
    "ListResponse",
    "ListWithCardsResponse",
    "LabelCreateRequest",
    "LabelUpdateRequest",
    "LabelResponse",
    "CardCreateRequest",
    "CardUpdateRequest",
    "CardSummary",
    "CardResponse",
    "CommentCreateRequest",
    "CommentUpdateRequest",
    "CommentResponse",
    "ActivityResponse",
    "ChecklistCreateRequest",
    "ChecklistUpdateRequest",
    "ChecklistResponse",
    "ChecklistItemCreateRequest",
    "ChecklistItemUpdateRequest",
    "ChecklistItemResponse",
    "PageCreateRequest",
    "PageUpdateRequest",
    "PageSummary",
    "PageResponse",
    "TagCreateRequest",
    "TagUpdateRequest",
    "TagResponse",
    "PageLabelCreateRequest",
    "PageLabelUpdateRequest",
    "PageLabelResponse",
]

PublicId = Annotated[str, StringConstraints(min_length=12, max_length=12)]
COLOUR_PATTERN = r"^#[0-9a-fA-F]{6}$"


class SuccessResponse(BaseModel):
    success: bool = True


class SlugAvailabilityResponse(BaseModel):
    is_reserved: bool


class ToggleResponse(BaseModel):
    """Result of a label/member toggle on a card."""

    added: bool


# ========================================================================
# Workspaces
# ========================================================================


class WorkspaceCreateRequest(BaseModel):
    """Workspace creation request."""

    name: str = Field(..., min_length=1, max_length=64)
    slug: Optional[str] = Field(None, min_length=3, max_length=24, pattern=SLUG_PATTERN)
    description: Optional[str] = Field(None, max_length=280)
    email: str = Field(..., min_length=3, max_length=255)


class WorkspaceUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=64)
    slug: Optional[str] = Field(None, min_length=3, max_length=24, pattern=SLUG_PATTERN)
    description: Optional[str] = Field(None, max_length=280)
    plan: Optional[WorkspacePlan] = None


class WorkspaceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    public_id: str
    name: str
    slug: str
    description: Optional[str]
    plan: WorkspacePlan
    created_at: dt.datetime


class WorkspaceMembershipResponse(BaseModel):
    role: MemberRole
    workspace: WorkspaceResponse


class MemberInviteRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    role: MemberRole = MemberRole.MEMBER
    user_id: Optional[uuid.UUID] = None


class MemberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    public_id: str
    email: str
    user_id: Optional[uuid.UUID]
    role: MemberRole
    status: MemberStatus
    created_at: dt.datetime


class MemberSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    public_id: str
    email: str
    user_id: Optional[uuid.UUID]


# ========================================================================
# Boards, lists and labels
# ========================================================================


class BoardCreateRequest(BaseModel):
    """Board creation request with optional initial lists and labels."""

    name: str = Field(..., min_length=1, max_length=100)
    workspace_public_id: PublicId
    lists: list[str] = Field(default_factory=list)
    labels: list[str] = Field(default_factory=list)


class BoardUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    slug: Optional[str] = Field(None, min_length=3, max_length=60, pattern=SLUG_PATTERN)
    visibility: Optional[BoardVisibility] = None


class LabelResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    public_id: str
    name: str
    colour_code: Optional[str]


class CardSummary(BaseModel):
    public_id: str
    title: str
    description: Optional[str]
    index: int
    due_date: Optional[dt.datetime]
    list_public_id: str
    labels: list[LabelResponse]
    members: list[MemberSummary]


class ListResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    public_id: str
    name: str
    index: int


class ListWithCardsResponse(ListResponse):
    cards: list[CardSummary]


class BoardSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    public_id: str
    name: str
    slug: str
    visibility: BoardVisibility
    created_at: dt.datetime


class BoardResponse(BoardSummary):
    """Board with its ordered lists, filtered cards and labels."""

    workspace_public_id: str
    lists: list[ListWithCardsResponse]
    labels: list[LabelResponse]


class ListCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    board_public_id: PublicId


class ListUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    index: Optional[int] = Field(None, ge=0)


class LabelCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=36)
    board_public_id: PublicId
    colour_code: str = Field(..., pattern=COLOUR_PATTERN)


class LabelUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=36)
    colour_code: Optional[str] = Field(None, pattern=COLOUR_PATTERN)


# ========================================================================
# Cards
# ========================================================================


class CardCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=2000)
    description: Optional[str] = Field(None, max_length=10000)
    list_public_id: PublicId
    label_public_ids: list[str] = Field(default_factory=list)
    member_public_ids: list[str] = Field(default_factory=list)
    position: Literal["start", "end"] = "end"
    due_date: Optional[dt.datetime] = None


class CardUpdateRequest(BaseModel):
    """Partial card update; an explicit ``due_date: null`` clears the due date."""

    title: Optional[str] = Field(None, min_length=1, max_length=2000)
    description: Optional[str] = Field(None, max_length=10000)
    list_public_id: Optional[str] = Field(None, min_length=12, max_length=12)
    index: Optional[int] = Field(None, ge=0)
    due_date: Optional[dt.datetime] = None


class CommentCreateRequest(BaseModel):
    comment: str = Field(..., min_length=1, max_length=10000)


class CommentUpdateRequest(BaseModel):
    comment: str = Field(..., min_length=1, max_length=10000)


class CommentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    public_id: str
    comment: str
    created_by: Optional[uuid.UUID]
    created_at: dt.datetime
    updated_at: Optional[dt.datetime]


class ActivityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    public_id: str
    type: CardActivityType
    created_by: Optional[uuid.UUID]
    created_at: dt.datetime
    from_title: Optional[str] = None
    to_title: Optional[str] = None
    from_index: Optional[int] = None
    to_index: Optional[int] = None
    from_comment: Optional[str] = None
    to_comment: Optional[str] = None


class ChecklistItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    public_id: str
    title: str
    completed: bool
    index: int


class ChecklistResponse(BaseModel):
    public_id: str
    name: str
    items: list[ChecklistItemResponse] = Field(default_factory=list)


class CardResponse(CardSummary):
    """Card detail view."""

    board_public_id: str
    checklists: list[ChecklistResponse]
    comments: list[CommentResponse]
    activities: list[ActivityResponse]


# ========================================================================
# Checklists
# ========================================================================


class ChecklistCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class ChecklistUpdateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class ChecklistItemCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)


class ChecklistItemUpdateRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    completed: Optional[bool] = None


# ========================================================================
# Pages
# ========================================================================


class PageCreateRequest(BaseModel):
    workspace_public_id: PublicId
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=20000)


class PageUpdateRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=20000)
    visibility: Optional[PageVisibility] = None
    slug: Optional[str] = Field(None, min_length=3, max_length=60, pattern=SLUG_PATTERN)


class TagCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    colour_code: Optional[str] = Field(None, pattern=COLOUR_PATTERN)


class TagUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    colour_code: Optional[str] = Field(None, pattern=COLOUR_PATTERN)


class TagResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    public_id: str
    name: str
    colour_code: Optional[str]


class PageLabelCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    colour_code: Optional[str] = Field(None, pattern=COLOUR_PATTERN)


class PageLabelUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    colour_code: Optional[str] = Field(None, pattern=COLOUR_PATTERN)


class PageLabelResponse(TagResponse):
    pass


class PageSummary(BaseModel):
    public_id: str
    title: str
    slug: Optional[str]
    visibility: PageVisibility
    created_at: dt.datetime
    tags: list[TagResponse]
    labels: list[PageLabelResponse]


class PageResponse(PageSummary):
    description: Optional[str]
    updated_at: Optional[dt.datetime]
    created_by: Optional[uuid.UUID]
    workspace_public_id: str
    workspace_slug: str
    members: list[MemberResponse]
