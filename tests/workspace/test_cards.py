import datetime as dt
import uuid

import pytest
from sqlalchemy.exc import NoResultFound

from kan.workspace import schemas
from kan.workspace.cards import card_response
from kan.workspace.events import board_topic, card_topic
from kan.workspace.models import CardActivityType


@pytest.fixture()
def board(env):
    return env.boards.create_board(
        schemas.BoardCreateRequest(
            name="Sprint",
            workspace_public_id=env.workspace.public_id,
            lists=["Todo", "Doing"],
            labels=["Bug"],
        ),
        env.owner,
    )


def _board_id(env, board) -> int:
    return env.boards.get_board_record(board.public_id).id


def _card(env, board, title, list_index=0, **extra):
    return env.cards.create_card(
        schemas.CardCreateRequest(
            title=title, list_public_id=board.lists[list_index].public_id, **extra
        ),
        env.owner,
    )


def _titles(env, board, list_index=0):
    result = env.boards.get_board(board.public_id, env.owner)
    return [card.title for card in result.lists[list_index].cards]


def _activity_types(card):
    return [activity.type for activity in card.activities]


def test_create_card_positions_and_emits(env, board):
    events = env.record(board_topic(_board_id(env, board)))

    first = _card(env, board, "First")
    second = _card(env, board, "Second")
    top = _card(env, board, "Top", position="start")

    assert (top.index, first.index, second.index) == (0, 1, 2)
    assert _titles(env, board) == ["Top", "First", "Second"]
    assert [e.type for e in events] == ["card.created"] * 3
    assert events[-1].card_public_id == top.public_id
    assert events[-1].list_public_id == board.lists[0].public_id
    assert _activity_types(top) == [CardActivityType.CREATED]


def test_create_card_rejects_foreign_label(env, board):
    other = env.boards.create_board(
        schemas.BoardCreateRequest(
            name="Other", workspace_public_id=env.workspace.public_id, labels=["Elsewhere"]
        ),
        env.owner,
    )

    with pytest.raises(ValueError):
        _card(env, board, "Nope", label_public_ids=[other.labels[0].public_id])


def test_card_access_requires_membership(env, board):
    card = _card(env, board, "Private")

    with pytest.raises(PermissionError):
        env.cards.get_card(card.public_id, uuid.uuid4())
    with pytest.raises(NoResultFound):
        env.cards.get_card("missing00000", env.owner)


def test_update_card_fields_emit_changes(env, board):
    card = _card(env, board, "Draft")
    board_events = env.record(board_topic(_board_id(env, board)))
    card_events = env.record(card_topic(card.id))

    env.cards.update_card(
        card.public_id,
        schemas.CardUpdateRequest(title="Final", description="Ready to ship"),
        env.owner,
    )

    assert card.title == "Final"
    [board_event] = board_events
    assert board_event.type == "card.updated"
    assert board_event.changes.title == "Final"
    assert board_event.changes.description == "Ready to ship"
    assert board_event.changes.index is None
    [card_event] = card_events
    assert card_event.type == "updated"
    assert card_event.changes == board_event.changes
    assert _activity_types(card)[-2:] == [
        CardActivityType.TITLE_UPDATED,
        CardActivityType.DESCRIPTION_UPDATED,
    ]


def test_update_card_without_changes_is_silent(env, board):
    card = _card(env, board, "Same")
    events = env.record(board_topic(_board_id(env, board)))

    env.cards.update_card(card.public_id, schemas.CardUpdateRequest(title="Same"), env.owner)

    assert events == []


def test_update_card_can_clear_due_date(env, board):
    due = dt.datetime(2030, 1, 1, tzinfo=dt.timezone.utc)
    card = _card(env, board, "Deadline", due_date=due)

    env.cards.update_card(card.public_id, schemas.CardUpdateRequest(title="Deadline"), env.owner)
    assert card.due_date is not None

    request = schemas.CardUpdateRequest.model_validate({"due_date": None})
    env.cards.update_card(card.public_id, request, env.owner)

    assert card.due_date is None
    assert _activity_types(card)[-1] == CardActivityType.DUE_DATE_UPDATED


def test_reorder_card_within_list(env, board):
    _card(env, board, "A")
    _card(env, board, "B")
    c = _card(env, board, "C")
    events = env.record(board_topic(_board_id(env, board)))

    env.cards.update_card(c.public_id, schemas.CardUpdateRequest(index=0), env.owner)

    assert _titles(env, board) == ["C", "A", "B"]
    assert events[0].changes.index == 0
    assert _activity_types(c)[-1] == CardActivityType.INDEX_UPDATED


def test_move_card_between_lists(env, board):
    a = _card(env, board, "A")
    _card(env, board, "B")
    _card(env, board, "Existing", list_index=1)

    moved = env.cards.update_card(
        a.public_id,
        schemas.CardUpdateRequest(list_public_id=board.lists[1].public_id, index=0),
        env.owner,
    )

    assert _titles(env, board, 0) == ["B"]
    assert _titles(env, board, 1) == ["A", "Existing"]
    assert moved.index == 0
    assert moved.board_list.public_id == board.lists[1].public_id
    activity = moved.activities[-1]
    assert activity.type == CardActivityType.LIST_UPDATED
    assert (activity.from_index, activity.to_index) == (0, 0)


def test_move_card_to_other_board_is_rejected(env, board):
    card = _card(env, board, "Stay")
    other = env.boards.create_board(
        schemas.BoardCreateRequest(
            name="Other", workspace_public_id=env.workspace.public_id, lists=["Inbox"]
        ),
        env.owner,
    )

    with pytest.raises(ValueError):
        env.cards.update_card(
            card.public_id,
            schemas.CardUpdateRequest(list_public_id=other.lists[0].public_id),
            env.owner,
        )


def test_delete_card_compacts_siblings_and_emits(env, board):
    a = _card(env, board, "A")
    b = _card(env, board, "B")
    board_events = env.record(board_topic(_board_id(env, board)))
    card_events = env.record(card_topic(a.id))

    env.cards.delete_card(a.public_id, env.owner)

    assert b.index == 0
    assert _titles(env, board) == ["B"]
    assert [e.type for e in board_events] == ["card.deleted"]
    assert [e.type for e in card_events] == ["deleted"]
    assert _activity_types(a)[-1] == CardActivityType.ARCHIVED
    with pytest.raises(NoResultFound):
        env.cards.get_card(a.public_id, env.owner)


# ========================================================================
# Comments
# ========================================================================


def test_comment_lifecycle(env, board):
    card = _card(env, board, "Discuss")
    events = env.record(card_topic(card.id))

    comment = env.cards.add_comment(
        card.public_id, schemas.CommentCreateRequest(comment="First thoughts"), env.owner
    )
    env.cards.update_comment(
        comment.public_id, schemas.CommentUpdateRequest(comment="Second thoughts"), env.owner
    )
    env.cards.delete_comment(comment.public_id, env.owner)

    assert [e.type for e in events] == ["comment.added", "comment.updated", "comment.deleted"]
    assert events[1].comment == "Second thoughts"
    assert card_response(card).comments == []
    assert _activity_types(card)[-3:] == [
        CardActivityType.COMMENT_ADDED,
        CardActivityType.COMMENT_UPDATED,
        CardActivityType.COMMENT_DELETED,
    ]


def test_only_author_may_edit_comment(env, board):
    member = env.add_member()
    card = _card(env, board, "Discuss")
    comment = env.cards.add_comment(
        card.public_id, schemas.CommentCreateRequest(comment="Mine"), env.owner
    )

    with pytest.raises(PermissionError):
        env.cards.update_comment(
            comment.public_id, schemas.CommentUpdateRequest(comment="Yours"), member
        )
    with pytest.raises(PermissionError):
        env.cards.delete_comment(comment.public_id, member)


# ========================================================================
# Labels and members
# ========================================================================


def test_toggle_label(env, board):
    card = _card(env, board, "Tag me")
    label = board.labels[0].public_id
    events = env.record(card_topic(card.id))

    assert env.cards.toggle_label(card.public_id, label, env.owner) is True
    assert [item.public_id for item in card.labels] == [label]
    assert env.cards.toggle_label(card.public_id, label, env.owner) is False
    assert card.labels == []
    assert [e.type for e in events] == ["label.added", "label.removed"]


def test_toggle_member(env, board):
    env.add_member("helper@example.com")
    card = _card(env, board, "Assign me")
    members = env.workspaces.list_members(env.workspace.public_id, env.owner)
    helper = next(m for m in members if m.email == "helper@example.com")
    events = env.record(card_topic(card.id))

    assert env.cards.toggle_member(card.public_id, helper.public_id, env.owner) is True
    assert env.cards.toggle_member(card.public_id, helper.public_id, env.owner) is False
    assert [(e.type, e.workspace_member_public_id) for e in events] == [
        ("member.added", helper.public_id),
        ("member.removed", helper.public_id),
    ]


# ========================================================================
# Checklists
# ========================================================================


def test_checklist_lifecycle_announces_on_both_topics(env, board):
    card = _card(env, board, "Release")
    board_events = env.record(board_topic(_board_id(env, board)))
    card_events = env.record(card_topic(card.id))

    checklist = env.checklists.create_checklist(
        card.public_id, schemas.ChecklistCreateRequest(name="Steps"), env.owner
    )
    env.checklists.update_checklist(
        checklist.public_id, schemas.ChecklistUpdateRequest(name="Release steps"), env.owner
    )
    item = env.checklists.create_item(
        checklist.public_id, schemas.ChecklistItemCreateRequest(title="Tag"), env.owner
    )
    env.checklists.update_item(
        item.public_id, schemas.ChecklistItemUpdateRequest(completed=True), env.owner
    )
    env.checklists.update_item(
        item.public_id, schemas.ChecklistItemUpdateRequest(title="Tag v1"), env.owner
    )

    [rendered] = card_response(card).checklists
    assert rendered.name == "Release steps"
    assert [(i.title, i.completed) for i in rendered.items] == [("Tag v1", True)]

    env.checklists.delete_item(item.public_id, env.owner)
    env.checklists.delete_checklist(checklist.public_id, env.owner)

    assert card_response(card).checklists == []
    assert [e.type for e in board_events] == ["checklist.changed"] * 7
    assert [e.type for e in card_events] == ["checklist.changed"] * 7
    assert _activity_types(card)[1:] == [
        CardActivityType.CHECKLIST_ADDED,
        CardActivityType.CHECKLIST_RENAMED,
        CardActivityType.CHECKLIST_ITEM_ADDED,
        CardActivityType.CHECKLIST_ITEM_COMPLETED,
        CardActivityType.CHECKLIST_ITEM_UPDATED,
        CardActivityType.CHECKLIST_ITEM_DELETED,
        CardActivityType.CHECKLIST_DELETED,
    ]


def test_deleting_checklist_hides_its_items(env, board):
    card = _card(env, board, "Release")
    checklist = env.checklists.create_checklist(
        card.public_id, schemas.ChecklistCreateRequest(name="Steps"), env.owner
    )
    item = env.checklists.create_item(
        checklist.public_id, schemas.ChecklistItemCreateRequest(title="Tag"), env.owner
    )

    env.checklists.delete_checklist(checklist.public_id, env.owner)

    assert item.deleted_at == checklist.deleted_at
    with pytest.raises(NoResultFound):
        env.checklists.update_item(
            item.public_id, schemas.ChecklistItemUpdateRequest(completed=True), env.owner
        )
