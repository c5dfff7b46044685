"""Board, list and label services."""

from __future__ import annotations

import uuid
from typing import Iterable, Optional, Sequence

import structlog
from sqlalchemy import and_, func, select
from sqlalchemy.exc import NoResultFound

from . import schemas
from .events import BoardListEvent, emit_board_event
from .models import (
    Board,
    BoardList,
    BoardVisibility,
    Card,
    CardActivityType,
    Label,
    Workspace,
)
from .service import ServiceBase
from .utils import (
    DueDateRange,
    colour_for_index,
    convert_due_date_filters_to_ranges,
    generate_slug,
    generate_uid,
    matches_due_date_ranges,
    utcnow,
)

__all__ = [
    "BoardService",
    "LabelService",
    "ListService",
    "board_response",
    "card_summary",
    "live",
]

logger = structlog.get_logger(__name__)


def live(records: Iterable) -> list:
    """Drop soft-deleted rows from a loaded relationship."""
    return [record for record in records if record.deleted_at is None]


def card_summary(card: Card) -> schemas.CardSummary:
    return schemas.CardSummary(
        public_id=card.public_id,
        title=card.title,
        description=card.description,
        index=card.index,
        due_date=card.due_date,
        list_public_id=card.board_list.public_id,
        labels=[schemas.LabelResponse.model_validate(label) for label in live(card.labels)],
        members=[
            schemas.MemberSummary.model_validate(member) for member in live(card.members)
        ],
    )


def _card_matches(
    card: Card,
    member_ids: set[str],
    label_ids: set[str],
    ranges: Sequence[DueDateRange],
) -> bool:
    # Filters combine with AND across kinds, OR within a kind.
    if member_ids and not any(m.public_id in member_ids for m in live(card.members)):
        return False
    if label_ids and not any(label.public_id in label_ids for label in live(card.labels)):
        return False
    if ranges and not matches_due_date_ranges(card.due_date, ranges):
        return False
    return True


def board_response(
    board: Board,
    members: Sequence[str] = (),
    labels: Sequence[str] = (),
    due_date_filters: Sequence[str] = (),
) -> schemas.BoardResponse:
    """Render a board with ordered lists, filtered cards and its labels."""
    member_ids = set(members)
    label_ids = set(labels)
    ranges = convert_due_date_filters_to_ranges(due_date_filters)

    lists = []
    for board_list in sorted(live(board.lists), key=lambda item: item.index):
        cards = [
            card_summary(card)
            for card in sorted(live(board_list.cards), key=lambda item: item.index)
            if _card_matches(card, member_ids, label_ids, ranges)
        ]
        lists.append(
            schemas.ListWithCardsResponse(
                public_id=board_list.public_id,
                name=board_list.name,
                index=board_list.index,
                cards=cards,
            )
        )

    return schemas.BoardResponse(
        public_id=board.public_id,
        name=board.name,
        slug=board.slug,
        visibility=board.visibility,
        created_at=board.created_at,
        workspace_public_id=board.workspace.public_id,
        lists=lists,
        labels=[schemas.LabelResponse.model_validate(label) for label in live(board.labels)],
    )


class BoardService(ServiceBase):
    """Board business logic."""

    def get_board_record(self, board_public_id: str) -> Board:
        return self._get_live(Board, board_public_id, "Board")

    def is_board_slug_available(
        self, slug: str, workspace_id: int, exclude_board_id: Optional[int] = None
    ) -> bool:
        stmt = select(Board.id).where(
            and_(
                Board.workspace_id == workspace_id,
                Board.slug == slug,
                Board.deleted_at.is_(None),
            )
        )
        if exclude_board_id is not None:
            stmt = stmt.where(Board.id != exclude_board_id)
        return self.session.execute(stmt).first() is None

    def list_boards(
        self, workspace_public_id: str, user_id: Optional[uuid.UUID]
    ) -> list[Board]:
        workspace = self._get_live(Workspace, workspace_public_id, "Workspace")
        self.assert_user_in_workspace(user_id, workspace.id)
        return list(
            self.session.execute(
                select(Board)
                .where(and_(Board.workspace_id == workspace.id, Board.deleted_at.is_(None)))
                .order_by(Board.id)
            ).scalars()
        )

    def get_board(
        self,
        board_public_id: str,
        user_id: Optional[uuid.UUID],
        *,
        members: Sequence[str] = (),
        labels: Sequence[str] = (),
        due_date_filters: Sequence[str] = (),
    ) -> schemas.BoardResponse:
        board = self.get_board_record(board_public_id)
        self.assert_user_in_workspace(user_id, board.workspace_id)
        return board_response(board, members, labels, due_date_filters)

    def get_board_by_slug(
        self,
        workspace_slug: str,
        board_slug: str,
        user_id: Optional[uuid.UUID],
        *,
        members: Sequence[str] = (),
        labels: Sequence[str] = (),
        due_date_filters: Sequence[str] = (),
    ) -> schemas.BoardResponse:
        """Public boards are readable anonymously; private ones need membership."""
        workspace = (
            self.session.execute(
                select(Workspace).where(
                    and_(
                        Workspace.slug == workspace_slug.lower(),
                        Workspace.deleted_at.is_(None),
                    )
                )
            )
            .scalars()
            .first()
        )
        if workspace is None:
            raise NoResultFound(f"Workspace with slug {workspace_slug} not found")

        board = (
            self.session.execute(
                select(Board).where(
                    and_(
                        Board.workspace_id == workspace.id,
                        Board.slug == board_slug.lower(),
                        Board.deleted_at.is_(None),
                    )
                )
            )
            .scalars()
            .first()
        )
        if board is None:
            raise NoResultFound(f"Board with slug {board_slug} not found")

        if board.visibility != BoardVisibility.PUBLIC:
            self.assert_user_in_workspace(user_id, workspace.id)
        return board_response(board, members, labels, due_date_filters)

    def create_board(
        self, request: schemas.BoardCreateRequest, user_id: Optional[uuid.UUID]
    ) -> schemas.BoardResponse:
        workspace = self._get_live(Workspace, request.workspace_public_id, "Workspace")
        member = self.assert_user_in_workspace(user_id, workspace.id)

        slug = generate_slug(request.name) or generate_uid()
        if not self.is_board_slug_available(slug, workspace.id):
            slug = f"{slug}-{generate_uid()}"

        board = Board(
            workspace_id=workspace.id,
            name=request.name,
            slug=slug,
            created_by=member.user_id,
        )
        board.lists = [
            BoardList(name=name, index=index, created_by=member.user_id)
            for index, name in enumerate(request.lists)
        ]
        board.labels = [
            Label(name=name, colour_code=colour_for_index(index), created_by=member.user_id)
            for index, name in enumerate(request.labels)
        ]
        self.session.add(board)
        self.session.commit()
        logger.info(
            "board_created",
            board=board.public_id,
            workspace=workspace.public_id,
            lists=len(request.lists),
            labels=len(request.labels),
        )
        return board_response(board)

    def update_board(
        self,
        board_public_id: str,
        request: schemas.BoardUpdateRequest,
        user_id: Optional[uuid.UUID],
    ) -> Board:
        board = self.get_board_record(board_public_id)
        self.assert_user_in_workspace(user_id, board.workspace_id)

        if request.slug is not None:
            slug = request.slug.lower()
            if not self.is_board_slug_available(slug, board.workspace_id, board.id):
                raise ValueError(f"Board slug {slug} is not available")
            board.slug = slug
        if request.name is not None:
            board.name = request.name
        if request.visibility is not None:
            board.visibility = request.visibility

        self.session.commit()
        return board

    def delete_board(self, board_public_id: str, user_id: Optional[uuid.UUID]) -> None:
        """Soft-delete the board with its lists and cards under one timestamp."""
        board = self.get_board_record(board_public_id)
        member = self.assert_user_in_workspace(user_id, board.workspace_id)

        deleted_at = utcnow()
        archived = 0
        for board_list in live(board.lists):
            for card in live(board_list.cards):
                card.soft_delete(member.user_id, deleted_at)
                self._record_activity(card, CardActivityType.ARCHIVED, member.user_id)
                archived += 1
            board_list.soft_delete(member.user_id, deleted_at)
        board.soft_delete(member.user_id, deleted_at)

        self.session.commit()
        logger.info("board_deleted", board=board_public_id, archived_cards=archived)

    def check_slug_availability(
        self, board_slug: str, board_public_id: str, user_id: Optional[uuid.UUID]
    ) -> bool:
        """Return ``True`` when another live board in the workspace holds the slug."""
        board = self.get_board_record(board_public_id)
        self.assert_user_in_workspace(user_id, board.workspace_id)
        return not self.is_board_slug_available(
            board_slug.lower(), board.workspace_id, board.id
        )

    def authorize_events(self, board_public_id: str, user_id: Optional[uuid.UUID]) -> int:
        """Check a board subscription may be opened; return the internal board id."""
        board = self.get_board_record(board_public_id)
        self.assert_user_in_workspace(user_id, board.workspace_id)
        return board.id


class ListService(ServiceBase):
    """List business logic; every mutation is broadcast on the board topic."""

    def _get_list(self, list_public_id: str, user_id: Optional[uuid.UUID]):
        board_list = self._get_live(BoardList, list_public_id, "List")
        member = self.assert_user_in_workspace(user_id, board_list.board.workspace_id)
        return board_list, member

    def _siblings(self, board_id: int) -> list[BoardList]:
        return list(
            self.session.execute(
                select(BoardList)
                .where(and_(BoardList.board_id == board_id, BoardList.deleted_at.is_(None)))
                .order_by(BoardList.index, BoardList.id)
            ).scalars()
        )

    def create_list(
        self, request: schemas.ListCreateRequest, user_id: Optional[uuid.UUID]
    ) -> BoardList:
        board = self._get_live(Board, request.board_public_id, "Board")
        member = self.assert_user_in_workspace(user_id, board.workspace_id)

        next_index = self.session.execute(
            select(func.count(BoardList.id)).where(
                and_(BoardList.board_id == board.id, BoardList.deleted_at.is_(None))
            )
        ).scalar_one()
        board_list = BoardList(
            name=request.name,
            index=next_index,
            created_by=member.user_id,
        )
        board.lists.append(board_list)
        self.session.commit()

        emit_board_event(
            board.id,
            BoardListEvent(
                type="list.created",
                board_id=board.id,
                list_public_id=board_list.public_id,
                name=board_list.name,
                index=board_list.index,
            ),
            bus=self.events,
        )
        return board_list

    def update_list(
        self,
        list_public_id: str,
        request: schemas.ListUpdateRequest,
        user_id: Optional[uuid.UUID],
    ) -> BoardList:
        board_list, _ = self._get_list(list_public_id, user_id)

        if request.name is not None:
            board_list.name = request.name

        if request.index is not None and request.index != board_list.index:
            siblings = [item for item in self._siblings(board_list.board_id) if item.id != board_list.id]
            target = min(request.index, len(siblings))
            siblings.insert(target, board_list)
            for index, item in enumerate(siblings):
                item.index = index

        self.session.commit()

        emit_board_event(
            board_list.board_id,
            BoardListEvent(
                type="list.updated",
                board_id=board_list.board_id,
                list_public_id=board_list.public_id,
                name=board_list.name,
                index=board_list.index,
            ),
            bus=self.events,
        )
        return board_list

    def delete_list(self, list_public_id: str, user_id: Optional[uuid.UUID]) -> None:
        board_list, member = self._get_list(list_public_id, user_id)

        deleted_at = utcnow()
        for card in live(board_list.cards):
            card.soft_delete(member.user_id, deleted_at)
            self._record_activity(card, CardActivityType.ARCHIVED, member.user_id)
        board_list.soft_delete(member.user_id, deleted_at)

        # Close the gap left behind.
        remaining = [item for item in self._siblings(board_list.board_id) if item.id != board_list.id]
        for index, item in enumerate(remaining):
            item.index = index

        self.session.commit()
        logger.info("list_deleted", list=list_public_id)

        emit_board_event(
            board_list.board_id,
            BoardListEvent(
                type="list.deleted",
                board_id=board_list.board_id,
                list_public_id=board_list.public_id,
            ),
            bus=self.events,
        )


class LabelService(ServiceBase):
    """Board label business logic."""

    def _get_label(self, label_public_id: str, user_id: Optional[uuid.UUID]):
        label = self._get_live(Label, label_public_id, "Label")
        if label.board.deleted_at is not None:
            raise NoResultFound(f"Label with public ID {label_public_id} not found")
        member = self.assert_user_in_workspace(user_id, label.board.workspace_id)
        return label, member

    def get_label(self, label_public_id: str, user_id: Optional[uuid.UUID]) -> Label:
        label, _ = self._get_label(label_public_id, user_id)
        return label

    def create_label(
        self, request: schemas.LabelCreateRequest, user_id: Optional[uuid.UUID]
    ) -> Label:
        board = self._get_live(Board, request.board_public_id, "Board")
        member = self.assert_user_in_workspace(user_id, board.workspace_id)

        label = Label(
            name=request.name,
            colour_code=request.colour_code,
            created_by=member.user_id,
        )
        board.labels.append(label)
        self.session.commit()
        return label

    def update_label(
        self,
        label_public_id: str,
        request: schemas.LabelUpdateRequest,
        user_id: Optional[uuid.UUID],
    ) -> Label:
        label, _ = self._get_label(label_public_id, user_id)
        if request.name is not None:
            label.name = request.name
        if request.colour_code is not None:
            label.colour_code = request.colour_code
        self.session.commit()
        return label

    def delete_label(self, label_public_id: str, user_id: Optional[uuid.UUID]) -> None:
        label, member = self._get_label(label_public_id, user_id)
        label.soft_delete(member.user_id)
        self.session.commit()
