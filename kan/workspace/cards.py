"""Card, comment and checklist services.

Every mutation commits first and then broadcasts: board subscribers get the
coarse ``card.*`` / ``checklist.changed`` events, card subscribers get the
detailed per-card events.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy import and_, select
from sqlalchemy.exc import NoResultFound

from . import schemas
from .boards import card_summary, live
from .events import (
    BoardCardEvent,
    BoardChecklistEvent,
    CardChanges,
    CardChecklistEvent,
    CardCommentEvent,
    CardLabelEvent,
    CardMemberEvent,
    CardUpdatedEvent,
    emit_board_event,
    emit_card_event,
)
from .models import (
    BoardList,
    Card,
    CardActivityType,
    CardComment,
    Checklist,
    ChecklistItem,
    Label,
    WorkspaceMember,
)
from .service import ServiceBase
from .utils import as_utc, utcnow

__all__ = ["CardService", "ChecklistService", "card_response"]

logger = structlog.get_logger(__name__)


def card_response(card: Card) -> schemas.CardResponse:
    summary = card_summary(card)
    return schemas.CardResponse(
        **summary.model_dump(),
        board_public_id=card.board_list.board.public_id,
        checklists=[
            schemas.ChecklistResponse(
                public_id=checklist.public_id,
                name=checklist.name,
                items=[
                    schemas.ChecklistItemResponse.model_validate(item)
                    for item in live(checklist.items)
                ],
            )
            for checklist in live(card.checklists)
        ],
        comments=[schemas.CommentResponse.model_validate(c) for c in live(card.comments)],
        activities=[schemas.ActivityResponse.model_validate(a) for a in card.activities],
    )


def _same_instant(left, right) -> bool:
    if left is None or right is None:
        return left is right
    return as_utc(left) == as_utc(right)


class _CardScoped(ServiceBase):
    """Resolves a card together with the caller's membership."""

    def _get_card(self, card_public_id: str, user_id: Optional[uuid.UUID]):
        card = self._get_live(Card, card_public_id, "Card")
        member = self.assert_user_in_workspace(user_id, card.board_list.board.workspace_id)
        return card, member

    def _live_cards(self, list_id: int) -> list[Card]:
        return list(
            self.session.execute(
                select(Card)
                .where(and_(Card.list_id == list_id, Card.deleted_at.is_(None)))
                .order_by(Card.index, Card.id)
            ).scalars()
        )


class CardService(_CardScoped):
    """Card business logic."""

    # ========================================================================
    # Cards
    # ========================================================================

    def create_card(
        self, request: schemas.CardCreateRequest, user_id: Optional[uuid.UUID]
    ) -> Card:
        board_list = self._get_live(BoardList, request.list_public_id, "List")
        board = board_list.board
        member = self.assert_user_in_workspace(user_id, board.workspace_id)

        labels = []
        for label_public_id in request.label_public_ids:
            label = self._get_live(Label, label_public_id, "Label")
            if label.board_id != board.id:
                raise ValueError(f"Label {label_public_id} does not belong to this board")
            labels.append(label)

        members = []
        for member_public_id in request.member_public_ids:
            card_member = self._get_live(WorkspaceMember, member_public_id, "Member")
            if card_member.workspace_id != board.workspace_id:
                raise ValueError(f"Member {member_public_id} does not belong to this workspace")
            members.append(card_member)

        siblings = self._live_cards(board_list.id)
        if request.position == "start":
            for offset, sibling in enumerate(siblings, start=1):
                sibling.index = offset
            index = 0
        else:
            index = len(siblings)

        card = Card(
            board_list=board_list,
            title=request.title,
            description=request.description,
            index=index,
            due_date=request.due_date,
            created_by=member.user_id,
        )
        card.labels = labels
        card.members = members
        self.session.add(card)
        self._record_activity(card, CardActivityType.CREATED, member.user_id)
        self.session.commit()
        logger.info("card_created", card=card.public_id, list=board_list.public_id)

        emit_board_event(
            board.id,
            BoardCardEvent(
                type="card.created",
                board_id=board.id,
                card_public_id=card.public_id,
                list_public_id=board_list.public_id,
            ),
            bus=self.events,
        )
        return card

    def get_card(self, card_public_id: str, user_id: Optional[uuid.UUID]) -> Card:
        card, _ = self._get_card(card_public_id, user_id)
        return card

    def update_card(
        self,
        card_public_id: str,
        request: schemas.CardUpdateRequest,
        user_id: Optional[uuid.UUID],
    ) -> Card:
        """Apply a partial update, moving the card between lists if asked."""
        card, member = self._get_card(card_public_id, user_id)
        actor = member.user_id
        changes = CardChanges()
        touched = False

        if request.title is not None and request.title != card.title:
            self._record_activity(
                card,
                CardActivityType.TITLE_UPDATED,
                actor,
                from_title=card.title,
                to_title=request.title,
            )
            card.title = changes.title = request.title

        if request.description is not None and request.description != card.description:
            self._record_activity(
                card,
                CardActivityType.DESCRIPTION_UPDATED,
                actor,
                from_description=card.description,
                to_description=request.description,
            )
            card.description = changes.description = request.description

        if "due_date" in request.model_fields_set and not _same_instant(
            request.due_date, card.due_date
        ):
            self._record_activity(
                card,
                CardActivityType.DUE_DATE_UPDATED,
                actor,
                from_due_date=card.due_date,
                to_due_date=request.due_date,
            )
            card.due_date = request.due_date
            touched = True

        if request.list_public_id is not None and request.list_public_id != card.board_list.public_id:
            self._move_to_list(card, request.list_public_id, request.index, actor, changes)
        elif request.index is not None and request.index != card.index:
            self._reorder(card, request.index, actor, changes)

        board_id = card.board_list.board_id
        self.session.commit()

        if not touched and not changes.model_fields_set:
            return card

        emit_board_event(
            board_id,
            BoardCardEvent(
                type="card.updated",
                board_id=board_id,
                card_public_id=card.public_id,
                list_public_id=card.board_list.public_id,
                changes=changes,
            ),
            bus=self.events,
        )
        emit_card_event(
            card.id,
            CardUpdatedEvent(
                type="updated",
                card_id=card.id,
                card_public_id=card.public_id,
                changes=changes,
            ),
            bus=self.events,
        )
        return card

    def _reorder(self, card: Card, index: int, actor, changes: CardChanges) -> None:
        siblings = [c for c in self._live_cards(card.list_id) if c.id != card.id]
        target = min(index, len(siblings))
        from_index = card.index
        siblings.insert(target, card)
        for position, sibling in enumerate(siblings):
            sibling.index = position
        self._record_activity(
            card,
            CardActivityType.INDEX_UPDATED,
            actor,
            from_index=from_index,
            to_index=card.index,
        )
        changes.index = card.index

    def _move_to_list(
        self,
        card: Card,
        list_public_id: str,
        index: Optional[int],
        actor,
        changes: CardChanges,
    ) -> None:
        source = card.board_list
        destination = self._get_live(BoardList, list_public_id, "List")
        if destination.board_id != source.board_id:
            raise ValueError("Cards can only move between lists of the same board")

        from_index = card.index
        for position, sibling in enumerate(
            c for c in self._live_cards(source.id) if c.id != card.id
        ):
            sibling.index = position

        targets = self._live_cards(destination.id)
        target = len(targets) if index is None else min(index, len(targets))
        targets.insert(target, card)
        card.board_list = destination
        for position, sibling in enumerate(targets):
            sibling.index = position

        self._record_activity(
            card,
            CardActivityType.LIST_UPDATED,
            actor,
            from_list_id=source.id,
            to_list_id=destination.id,
            from_index=from_index,
            to_index=card.index,
        )
        changes.list_public_id = destination.public_id
        changes.index = card.index

    def delete_card(self, card_public_id: str, user_id: Optional[uuid.UUID]) -> None:
        card, member = self._get_card(card_public_id, user_id)
        board_id = card.board_list.board_id

        card.soft_delete(member.user_id)
        self._record_activity(card, CardActivityType.ARCHIVED, member.user_id)
        for position, sibling in enumerate(
            c for c in self._live_cards(card.list_id) if c.id != card.id
        ):
            sibling.index = position
        self.session.commit()
        logger.info("card_deleted", card=card_public_id)

        emit_board_event(
            board_id,
            BoardCardEvent(
                type="card.deleted",
                board_id=board_id,
                card_public_id=card.public_id,
                list_public_id=card.board_list.public_id,
            ),
            bus=self.events,
        )
        emit_card_event(
            card.id,
            CardUpdatedEvent(type="deleted", card_id=card.id, card_public_id=card.public_id),
            bus=self.events,
        )

    def authorize_events(self, card_public_id: str, user_id: Optional[uuid.UUID]) -> int:
        """Check a card subscription may be opened; return the internal card id."""
        card, _ = self._get_card(card_public_id, user_id)
        return card.id

    # ========================================================================
    # Comments
    # ========================================================================

    def _get_own_comment(self, comment_public_id: str, user_id: Optional[uuid.UUID]):
        comment = self._get_live(CardComment, comment_public_id, "Comment")
        card = comment.card
        if card.deleted_at is not None:
            raise NoResultFound(f"Comment with public ID {comment_public_id} not found")
        member = self.assert_user_in_workspace(user_id, card.board_list.board.workspace_id)
        if comment.created_by != member.user_id:
            raise PermissionError("Only the author can change this comment")
        return comment, member

    def add_comment(
        self,
        card_public_id: str,
        request: schemas.CommentCreateRequest,
        user_id: Optional[uuid.UUID],
    ) -> CardComment:
        card, member = self._get_card(card_public_id, user_id)
        comment = CardComment(comment=request.comment, created_by=member.user_id)
        card.comments.append(comment)
        self.session.flush()
        self._record_activity(
            card,
            CardActivityType.COMMENT_ADDED,
            member.user_id,
            comment_id=comment.id,
            to_comment=comment.comment,
        )
        self.session.commit()

        emit_card_event(
            card.id,
            CardCommentEvent(
                type="comment.added",
                card_id=card.id,
                card_public_id=card.public_id,
                comment_public_id=comment.public_id,
                comment=comment.comment,
            ),
            bus=self.events,
        )
        return comment

    def update_comment(
        self,
        comment_public_id: str,
        request: schemas.CommentUpdateRequest,
        user_id: Optional[uuid.UUID],
    ) -> CardComment:
        comment, member = self._get_own_comment(comment_public_id, user_id)
        card = comment.card

        self._record_activity(
            card,
            CardActivityType.COMMENT_UPDATED,
            member.user_id,
            comment_id=comment.id,
            from_comment=comment.comment,
            to_comment=request.comment,
        )
        comment.comment = request.comment
        self.session.commit()

        emit_card_event(
            card.id,
            CardCommentEvent(
                type="comment.updated",
                card_id=card.id,
                card_public_id=card.public_id,
                comment_public_id=comment.public_id,
                comment=comment.comment,
            ),
            bus=self.events,
        )
        return comment

    def delete_comment(self, comment_public_id: str, user_id: Optional[uuid.UUID]) -> None:
        comment, member = self._get_own_comment(comment_public_id, user_id)
        card = comment.card

        comment.soft_delete(member.user_id)
        self._record_activity(
            card,
            CardActivityType.COMMENT_DELETED,
            member.user_id,
            comment_id=comment.id,
            from_comment=comment.comment,
        )
        self.session.commit()

        emit_card_event(
            card.id,
            CardCommentEvent(
                type="comment.deleted",
                card_id=card.id,
                card_public_id=card.public_id,
                comment_public_id=comment.public_id,
            ),
            bus=self.events,
        )

    # ========================================================================
    # Labels and members
    # ========================================================================

    def toggle_label(
        self, card_public_id: str, label_public_id: str, user_id: Optional[uuid.UUID]
    ) -> bool:
        """Attach the label if missing, detach it otherwise; return ``True`` when added."""
        card, member = self._get_card(card_public_id, user_id)
        label = self._get_live(Label, label_public_id, "Label")
        if label.board_id != card.board_list.board_id:
            raise ValueError(f"Label {label_public_id} does not belong to this board")

        added = label not in card.labels
        if added:
            card.labels.append(label)
        else:
            card.labels.remove(label)
        self._record_activity(
            card,
            CardActivityType.LABEL_ADDED if added else CardActivityType.LABEL_REMOVED,
            member.user_id,
            label_id=label.id,
        )
        self.session.commit()

        emit_card_event(
            card.id,
            CardLabelEvent(
                type="label.added" if added else "label.removed",
                card_id=card.id,
                card_public_id=card.public_id,
                label_public_id=label.public_id,
            ),
            bus=self.events,
        )
        return added

    def toggle_member(
        self,
        card_public_id: str,
        workspace_member_public_id: str,
        user_id: Optional[uuid.UUID],
    ) -> bool:
        card, member = self._get_card(card_public_id, user_id)
        target = self._get_live(WorkspaceMember, workspace_member_public_id, "Member")
        if target.workspace_id != card.board_list.board.workspace_id:
            raise ValueError(
                f"Member {workspace_member_public_id} does not belong to this workspace"
            )

        added = target not in card.members
        if added:
            card.members.append(target)
        else:
            card.members.remove(target)
        self._record_activity(
            card,
            CardActivityType.MEMBER_ADDED if added else CardActivityType.MEMBER_REMOVED,
            member.user_id,
            workspace_member_id=target.id,
        )
        self.session.commit()

        emit_card_event(
            card.id,
            CardMemberEvent(
                type="member.added" if added else "member.removed",
                card_id=card.id,
                card_public_id=card.public_id,
                workspace_member_public_id=target.public_id,
            ),
            bus=self.events,
        )
        return added


class ChecklistService(_CardScoped):
    """Checklist business logic.

    Each change records a card activity and announces ``checklist.changed``
    on both the board and the card topics.
    """

    def _announce(self, card: Card) -> None:
        board_id = card.board_list.board_id
        emit_board_event(
            board_id,
            BoardChecklistEvent(board_id=board_id, card_public_id=card.public_id),
            bus=self.events,
        )
        emit_card_event(
            card.id,
            CardChecklistEvent(card_id=card.id, card_public_id=card.public_id),
            bus=self.events,
        )

    def _get_checklist(self, checklist_public_id: str, user_id: Optional[uuid.UUID]):
        checklist = self._get_live(Checklist, checklist_public_id, "Checklist")
        if checklist.card.deleted_at is not None:
            raise NoResultFound(f"Checklist with public ID {checklist_public_id} not found")
        member = self.assert_user_in_workspace(
            user_id, checklist.card.board_list.board.workspace_id
        )
        return checklist, member

    def _get_item(self, item_public_id: str, user_id: Optional[uuid.UUID]):
        item = self._get_live(ChecklistItem, item_public_id, "Checklist item")
        if item.checklist.deleted_at is not None:
            raise NoResultFound(f"Checklist item with public ID {item_public_id} not found")
        _, member = self._get_checklist(item.checklist.public_id, user_id)
        return item, member

    def create_checklist(
        self,
        card_public_id: str,
        request: schemas.ChecklistCreateRequest,
        user_id: Optional[uuid.UUID],
    ) -> Checklist:
        card, member = self._get_card(card_public_id, user_id)
        checklist = Checklist(
            name=request.name,
            index=len(live(card.checklists)),
            created_by=member.user_id,
        )
        card.checklists.append(checklist)
        self._record_activity(
            card, CardActivityType.CHECKLIST_ADDED, member.user_id, to_title=request.name
        )
        self.session.commit()
        self._announce(card)
        return checklist

    def update_checklist(
        self,
        checklist_public_id: str,
        request: schemas.ChecklistUpdateRequest,
        user_id: Optional[uuid.UUID],
    ) -> Checklist:
        checklist, member = self._get_checklist(checklist_public_id, user_id)
        self._record_activity(
            checklist.card,
            CardActivityType.CHECKLIST_RENAMED,
            member.user_id,
            from_title=checklist.name,
            to_title=request.name,
        )
        checklist.name = request.name
        self.session.commit()
        self._announce(checklist.card)
        return checklist

    def delete_checklist(self, checklist_public_id: str, user_id: Optional[uuid.UUID]) -> None:
        checklist, member = self._get_checklist(checklist_public_id, user_id)
        deleted_at = utcnow()
        for item in live(checklist.items):
            item.soft_delete(member.user_id, deleted_at)
        checklist.soft_delete(member.user_id, deleted_at)
        self._record_activity(
            checklist.card,
            CardActivityType.CHECKLIST_DELETED,
            member.user_id,
            from_title=checklist.name,
        )
        self.session.commit()
        self._announce(checklist.card)

    def create_item(
        self,
        checklist_public_id: str,
        request: schemas.ChecklistItemCreateRequest,
        user_id: Optional[uuid.UUID],
    ) -> ChecklistItem:
        checklist, member = self._get_checklist(checklist_public_id, user_id)
        item = ChecklistItem(
            title=request.title,
            index=len(live(checklist.items)),
            created_by=member.user_id,
        )
        checklist.items.append(item)
        self._record_activity(
            checklist.card,
            CardActivityType.CHECKLIST_ITEM_ADDED,
            member.user_id,
            to_title=request.title,
        )
        self.session.commit()
        self._announce(checklist.card)
        return item

    def update_item(
        self,
        item_public_id: str,
        request: schemas.ChecklistItemUpdateRequest,
        user_id: Optional[uuid.UUID],
    ) -> ChecklistItem:
        item, member = self._get_item(item_public_id, user_id)
        card = item.checklist.card

        if request.title is not None and request.title != item.title:
            self._record_activity(
                card,
                CardActivityType.CHECKLIST_ITEM_UPDATED,
                member.user_id,
                from_title=item.title,
                to_title=request.title,
            )
            item.title = request.title

        if request.completed is not None and request.completed != item.completed:
            self._record_activity(
                card,
                (
                    CardActivityType.CHECKLIST_ITEM_COMPLETED
                    if request.completed
                    else CardActivityType.CHECKLIST_ITEM_UNCOMPLETED
                ),
                member.user_id,
                to_title=item.title,
            )
            item.completed = request.completed

        self.session.commit()
        self._announce(card)
        return item

    def delete_item(self, item_public_id: str, user_id: Optional[uuid.UUID]) -> None:
        item, member = self._get_item(item_public_id, user_id)
        item.soft_delete(member.user_id)
        self._record_activity(
            item.checklist.card,
            CardActivityType.CHECKLIST_ITEM_DELETED,
            member.user_id,
            from_title=item.title,
        )
        self.session.commit()
        self._announce(item.checklist.card)
