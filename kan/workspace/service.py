"""Service layer for workspace management.

Business logic:
- settings, engine and session factory
- workspace membership checks shared by every service
- workspace and member lifecycle
"""

from __future__ import annotations

import os
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional, TypeVar

import structlog
from sqlalchemy import and_, create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import NoResultFound
from sqlalchemy.orm import Session, sessionmaker

from . import schemas
from .events import EventBus, event_bus
from .models import (
    Base,
    Card,
    CardActivity,
    CardActivityType,
    MemberRole,
    MemberStatus,
    Workspace,
    WorkspaceMember,
)
from .utils import generate_slug, generate_uid, utcnow

__all__ = [
    "AuthenticationRequired",
    "ServiceBase",
    "WorkspaceDatabase",
    "WorkspaceService",
    "WorkspaceSettings",
    "init_engine",
]

logger = structlog.get_logger(__name__)

_DEFAULT_CORS_ORIGINS = ("http://localhost:3000", "http://127.0.0.1:3000")

RecordT = TypeVar("RecordT")


class AuthenticationRequired(PermissionError):
    """Raised when an operation needs a caller identity and none was given."""


@dataclass(slots=True)
class WorkspaceSettings:
    """Workspace service settings."""

    database_url: str
    events_max_listeners: int = 1000
    sse_ping_interval: float = 15.0
    cors_origins: tuple[str, ...] = field(default=_DEFAULT_CORS_ORIGINS)
    auto_create_tables: bool = False

    @classmethod
    def from_env(cls, database_url: Optional[str] = None) -> WorkspaceSettings:
        database_url = (
            database_url or os.getenv("KAN_DATABASE_URL") or os.getenv("DATABASE_URL")
        )
        if not database_url:
            raise ValueError(
                "Database connection required: set KAN_DATABASE_URL or DATABASE_URL"
            )
        origins = os.getenv("KAN_CORS_ORIGINS")
        return cls(
            database_url=database_url,
            events_max_listeners=int(os.getenv("KAN_EVENTS_MAX_LISTENERS", "1000")),
            sse_ping_interval=float(os.getenv("KAN_SSE_PING_SECONDS", "15")),
            cors_origins=(
                tuple(o.strip() for o in origins.split(",") if o.strip())
                if origins
                else _DEFAULT_CORS_ORIGINS
            ),
            auto_create_tables=os.getenv("KAN_AUTO_CREATE_TABLES", "false").lower()
            == "true",
        )


def init_engine(settings: WorkspaceSettings) -> Engine:
    """Initialise the SQLAlchemy engine."""
    # SQLAlchemy wants 'postgresql+psycopg://', hosting providers hand out 'postgres://'
    database_url = settings.database_url
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql+psycopg://", 1)
    elif database_url.startswith("postgresql://") and "+psycopg" not in database_url:
        database_url = database_url.replace("postgresql://", "postgresql+psycopg://", 1)

    if database_url.startswith("sqlite"):
        from sqlalchemy.pool import StaticPool

        return create_engine(
            database_url,
            echo=False,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )

    return create_engine(
        database_url,
        echo=False,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
    )


class WorkspaceDatabase:
    """Database session management."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    def session(self) -> Session:
        return self._session_factory()

    def create_all(self):
        """Create tables (development and tests)."""
        Base.metadata.create_all(self.engine)


class ServiceBase:
    """Shared plumbing: session, settings, event bus and membership checks."""

    def __init__(
        self,
        session: Session,
        settings: WorkspaceSettings,
        events: Optional[EventBus] = None,
    ):
        self.session = session
        self.settings = settings
        self.events = events or event_bus

    # ========================================================================
    # Permission checks
    # ========================================================================

    @staticmethod
    def _require_user(user_id: Optional[uuid.UUID]) -> uuid.UUID:
        if user_id is None:
            raise AuthenticationRequired("User not authenticated")
        return user_id

    def assert_user_in_workspace(
        self,
        user_id: Optional[uuid.UUID],
        workspace_id: int,
        role: Optional[MemberRole] = None,
    ) -> WorkspaceMember:
        """Return the caller's active membership or raise ``PermissionError``."""
        user_id = self._require_user(user_id)
        conditions = [
            WorkspaceMember.workspace_id == workspace_id,
            WorkspaceMember.user_id == user_id,
            WorkspaceMember.status == MemberStatus.ACTIVE,
            WorkspaceMember.deleted_at.is_(None),
        ]
        if role is not None:
            conditions.append(WorkspaceMember.role == role)
        member = (
            self.session.execute(select(WorkspaceMember).where(and_(*conditions)))
            .scalars()
            .first()
        )
        if not member:
            if role is not None:
                raise PermissionError(f"Requires {role.value} role in this workspace")
            raise PermissionError("User does not have access to this workspace")
        return member

    # ========================================================================
    # Lookups
    # ========================================================================

    def _get_live(self, model: type[RecordT], public_id: str, label: str) -> RecordT:
        record = (
            self.session.execute(
                select(model).where(
                    and_(model.public_id == public_id, model.deleted_at.is_(None))
                )
            )
            .scalars()
            .first()
        )
        if record is None:
            raise NoResultFound(f"{label} with public ID {public_id} not found")
        return record

    def _record_activity(
        self,
        card: Card,
        activity_type: CardActivityType,
        user_id: uuid.UUID,
        **fields: Any,
    ) -> CardActivity:
        activity = CardActivity(type=activity_type, created_by=user_id, **fields)
        card.activities.append(activity)
        return activity


class WorkspaceService(ServiceBase):
    """Workspace and membership business logic."""

    # ========================================================================
    # Workspaces
    # ========================================================================

    def is_workspace_slug_available(
        self, slug: str, exclude_workspace_id: Optional[int] = None
    ) -> bool:
        stmt = select(Workspace.id).where(
            and_(Workspace.slug == slug.lower(), Workspace.deleted_at.is_(None))
        )
        if exclude_workspace_id is not None:
            stmt = stmt.where(Workspace.id != exclude_workspace_id)
        return self.session.execute(stmt).first() is None

    def create_workspace(
        self, request: schemas.WorkspaceCreateRequest, user_id: Optional[uuid.UUID]
    ) -> Workspace:
        """Create a workspace; the creator joins as an active admin."""
        user_id = self._require_user(user_id)

        if request.slug:
            slug = request.slug.lower()
            if not self.is_workspace_slug_available(slug):
                raise ValueError(f"Workspace slug {slug} is not available")
        else:
            slug = generate_slug(request.name) or generate_uid()
            if not self.is_workspace_slug_available(slug):
                slug = f"{slug}-{generate_uid()}"

        workspace = Workspace(
            name=request.name,
            slug=slug,
            description=request.description,
            created_by=user_id,
        )
        self.session.add(workspace)
        self.session.flush()

        self.session.add(
            WorkspaceMember(
                workspace_id=workspace.id,
                user_id=user_id,
                email=request.email,
                role=MemberRole.ADMIN,
                status=MemberStatus.ACTIVE,
                created_by=user_id,
            )
        )
        self.session.commit()
        logger.info("workspace_created", workspace=workspace.public_id, slug=slug)
        return workspace

    def get_workspace(self, workspace_public_id: str, user_id: Optional[uuid.UUID]) -> Workspace:
        workspace = self._get_live(Workspace, workspace_public_id, "Workspace")
        self.assert_user_in_workspace(user_id, workspace.id)
        return workspace

    def list_workspaces(
        self, user_id: Optional[uuid.UUID]
    ) -> list[tuple[MemberRole, Workspace]]:
        """Workspaces the caller is an active member of."""
        user_id = self._require_user(user_id)
        rows = self.session.execute(
            select(WorkspaceMember.role, Workspace)
            .join(Workspace, Workspace.id == WorkspaceMember.workspace_id)
            .where(
                and_(
                    WorkspaceMember.user_id == user_id,
                    WorkspaceMember.status == MemberStatus.ACTIVE,
                    WorkspaceMember.deleted_at.is_(None),
                    Workspace.deleted_at.is_(None),
                )
            )
            .order_by(Workspace.id)
        ).all()
        return [(role, workspace) for role, workspace in rows]

    def update_workspace(
        self,
        workspace_public_id: str,
        request: schemas.WorkspaceUpdateRequest,
        user_id: Optional[uuid.UUID],
    ) -> Workspace:
        workspace = self._get_live(Workspace, workspace_public_id, "Workspace")
        self.assert_user_in_workspace(user_id, workspace.id, MemberRole.ADMIN)

        if request.slug is not None:
            slug = request.slug.lower()
            if not self.is_workspace_slug_available(slug, exclude_workspace_id=workspace.id):
                raise ValueError(f"Workspace slug {slug} is not available")
            workspace.slug = slug
        if request.name is not None:
            workspace.name = request.name
        if request.description is not None:
            workspace.description = request.description
        if request.plan is not None:
            workspace.plan = request.plan

        self.session.commit()
        return workspace

    def delete_workspace(self, workspace_public_id: str, user_id: Optional[uuid.UUID]) -> None:
        workspace = self._get_live(Workspace, workspace_public_id, "Workspace")
        member = self.assert_user_in_workspace(user_id, workspace.id, MemberRole.ADMIN)
        workspace.soft_delete(member.user_id)
        self.session.commit()
        logger.info("workspace_deleted", workspace=workspace_public_id)

    # ========================================================================
    # Members
    # ========================================================================

    def _live_members(self, workspace_id: int) -> list[WorkspaceMember]:
        return list(
            self.session.execute(
                select(WorkspaceMember)
                .where(
                    and_(
                        WorkspaceMember.workspace_id == workspace_id,
                        WorkspaceMember.deleted_at.is_(None),
                    )
                )
                .order_by(WorkspaceMember.id)
            ).scalars()
        )

    def list_members(
        self, workspace_public_id: str, user_id: Optional[uuid.UUID]
    ) -> list[WorkspaceMember]:
        workspace = self._get_live(Workspace, workspace_public_id, "Workspace")
        self.assert_user_in_workspace(user_id, workspace.id)
        return self._live_members(workspace.id)

    def invite_member(
        self,
        workspace_public_id: str,
        request: schemas.MemberInviteRequest,
        user_id: Optional[uuid.UUID],
    ) -> WorkspaceMember:
        """Invite by email; a known ``user_id`` joins immediately as active."""
        workspace = self._get_live(Workspace, workspace_public_id, "Workspace")
        admin = self.assert_user_in_workspace(user_id, workspace.id, MemberRole.ADMIN)

        email = request.email.strip().lower()
        for existing in self._live_members(workspace.id):
            if existing.email.lower() == email or (
                request.user_id is not None and existing.user_id == request.user_id
            ):
                raise ValueError(f"{email} is already a member of this workspace")

        member = WorkspaceMember(
            workspace_id=workspace.id,
            user_id=request.user_id,
            email=email,
            role=request.role,
            status=MemberStatus.ACTIVE if request.user_id else MemberStatus.INVITED,
            created_by=admin.user_id,
        )
        self.session.add(member)
        self.session.commit()
        logger.info(
            "member_invited",
            workspace=workspace_public_id,
            member=member.public_id,
            role=request.role.value,
        )
        return member

    def remove_member(
        self,
        workspace_public_id: str,
        member_public_id: str,
        user_id: Optional[uuid.UUID],
    ) -> None:
        workspace = self._get_live(Workspace, workspace_public_id, "Workspace")
        admin = self.assert_user_in_workspace(user_id, workspace.id, MemberRole.ADMIN)

        member = self._get_live(WorkspaceMember, member_public_id, "Member")
        if member.workspace_id != workspace.id:
            raise NoResultFound(f"Member with public ID {member_public_id} not found")

        if member.role == MemberRole.ADMIN:
            admins = [
                m
                for m in self._live_members(workspace.id)
                if m.role == MemberRole.ADMIN and m.status == MemberStatus.ACTIVE
            ]
            if len(admins) <= 1:
                raise ValueError("A workspace needs at least one admin")

        member.status = MemberStatus.REMOVED
        member.soft_delete(admin.user_id, utcnow())
        self.session.commit()
        logger.info("member_removed", workspace=workspace_public_id, member=member_public_id)
