import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

import pytest
from sqlalchemy.orm import Session

from kan.workspace import schemas
from kan.workspace.boards import BoardService, LabelService, ListService
from kan.workspace.cards import CardService, ChecklistService
from kan.workspace.events import EventBus
from kan.workspace.models import Workspace
from kan.workspace.pages import PageService
from kan.workspace.service import (
    WorkspaceDatabase,
    WorkspaceService,
    WorkspaceSettings,
    init_engine,
)


@dataclass
class WorkspaceEnv:
    session: Session
    settings: WorkspaceSettings
    bus: EventBus
    workspaces: WorkspaceService
    boards: BoardService
    lists: ListService
    labels: LabelService
    cards: CardService
    checklists: ChecklistService
    pages: PageService
    owner: uuid.UUID
    workspace: Workspace

    def record(self, topic: str) -> list[Any]:
        """Collect everything emitted on ``topic``."""
        received: list[Any] = []
        self.bus.on(topic, received.append)
        return received

    def add_member(self, email: str = "member@example.com") -> uuid.UUID:
        user_id = uuid.uuid4()
        self.workspaces.invite_member(
            self.workspace.public_id,
            schemas.MemberInviteRequest(email=email, user_id=user_id),
            self.owner,
        )
        return user_id


@pytest.fixture()
def env(tmp_path: Path):
    settings = WorkspaceSettings(database_url=f"sqlite:///{tmp_path / 'kan.db'}")
    engine = init_engine(settings)
    database = WorkspaceDatabase(engine)
    database.create_all()
    session = database.session()
    bus = EventBus()

    def build(cls: Callable[..., Any]) -> Any:
        return cls(session=session, settings=settings, events=bus)

    owner = uuid.uuid4()
    workspaces = build(WorkspaceService)
    workspace = workspaces.create_workspace(
        schemas.WorkspaceCreateRequest(name="Acme", email="owner@example.com"), owner
    )

    yield WorkspaceEnv(
        session=session,
        settings=settings,
        bus=bus,
        workspaces=workspaces,
        boards=build(BoardService),
        lists=build(ListService),
        labels=build(LabelService),
        cards=build(CardService),
        checklists=build(ChecklistService),
        pages=build(PageService),
        owner=owner,
        workspace=workspace,
    )

    session.close()
    engine.dispose()
