"""Wiki page service: pages, per-page tags and workspace page labels."""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy import and_, select
from sqlalchemy.exc import NoResultFound

from . import schemas
from .boards import live
from .models import (
    MemberStatus,
    Page,
    PageLabel,
    PageTag,
    PageVisibility,
    Workspace,
    WorkspaceMember,
)
from .service import ServiceBase

__all__ = ["PageService", "page_response", "page_summary"]

logger = structlog.get_logger(__name__)


def page_summary(page: Page) -> schemas.PageSummary:
    return schemas.PageSummary(
        public_id=page.public_id,
        title=page.title,
        slug=page.slug,
        visibility=page.visibility,
        created_at=page.created_at,
        tags=[schemas.TagResponse.model_validate(tag) for tag in live(page.tags)],
        labels=[schemas.PageLabelResponse.model_validate(label) for label in live(page.labels)],
    )


def page_response(page: Page, members: list[WorkspaceMember]) -> schemas.PageResponse:
    return schemas.PageResponse(
        **page_summary(page).model_dump(),
        description=page.description,
        updated_at=page.updated_at,
        created_by=page.created_by,
        workspace_public_id=page.workspace.public_id,
        workspace_slug=page.workspace.slug,
        members=[schemas.MemberResponse.model_validate(member) for member in members],
    )


class PageService(ServiceBase):
    """Page business logic."""

    def _get_page(self, page_public_id: str, user_id: Optional[uuid.UUID]):
        page = self._get_live(Page, page_public_id, "Page")
        member = self.assert_user_in_workspace(user_id, page.workspace_id)
        return page, member

    def _active_members(self, workspace_id: int) -> list[WorkspaceMember]:
        return list(
            self.session.execute(
                select(WorkspaceMember)
                .where(
                    and_(
                        WorkspaceMember.workspace_id == workspace_id,
                        WorkspaceMember.status == MemberStatus.ACTIVE,
                        WorkspaceMember.deleted_at.is_(None),
                    )
                )
                .order_by(WorkspaceMember.id)
            ).scalars()
        )

    def _readable(self, page: Page, user_id: Optional[uuid.UUID]) -> schemas.PageResponse:
        """Public pages are readable by anyone; the member roster only by members."""
        if page.visibility == PageVisibility.PUBLIC and user_id is None:
            return page_response(page, [])
        if page.visibility == PageVisibility.PUBLIC:
            try:
                self.assert_user_in_workspace(user_id, page.workspace_id)
            except PermissionError:
                return page_response(page, [])
            return page_response(page, self._active_members(page.workspace_id))
        self.assert_user_in_workspace(user_id, page.workspace_id)
        return page_response(page, self._active_members(page.workspace_id))

    def is_page_slug_available(self, slug: str, exclude_page_id: Optional[int] = None) -> bool:
        stmt = select(Page.id).where(and_(Page.slug == slug.lower(), Page.deleted_at.is_(None)))
        if exclude_page_id is not None:
            stmt = stmt.where(Page.id != exclude_page_id)
        return self.session.execute(stmt).first() is None

    # ========================================================================
    # Pages
    # ========================================================================

    def list_pages(
        self, workspace_public_id: str, user_id: Optional[uuid.UUID]
    ) -> list[schemas.PageSummary]:
        workspace = self._get_live(Workspace, workspace_public_id, "Workspace")
        self.assert_user_in_workspace(user_id, workspace.id)
        pages = self.session.execute(
            select(Page)
            .where(and_(Page.workspace_id == workspace.id, Page.deleted_at.is_(None)))
            .order_by(Page.created_at.desc(), Page.id.desc())
        ).scalars()
        return [page_summary(page) for page in pages]

    def get_page(
        self, page_public_id: str, user_id: Optional[uuid.UUID]
    ) -> schemas.PageResponse:
        page = self._get_live(Page, page_public_id, "Page")
        return self._readable(page, user_id)

    def get_page_by_slug(
        self, page_slug: str, user_id: Optional[uuid.UUID]
    ) -> schemas.PageResponse:
        page = (
            self.session.execute(
                select(Page).where(
                    and_(Page.slug == page_slug.lower(), Page.deleted_at.is_(None))
                )
            )
            .scalars()
            .first()
        )
        if page is None:
            raise NoResultFound("Page not found")
        return self._readable(page, user_id)

    def create_page(
        self, request: schemas.PageCreateRequest, user_id: Optional[uuid.UUID]
    ) -> schemas.PageResponse:
        workspace = self._get_live(Workspace, request.workspace_public_id, "Workspace")
        member = self.assert_user_in_workspace(user_id, workspace.id)

        page = Page(
            workspace_id=workspace.id,
            title=request.title,
            description=request.description,
            created_by=member.user_id,
        )
        self.session.add(page)
        self.session.commit()
        logger.info("page_created", page=page.public_id, workspace=workspace.public_id)
        return page_response(page, self._active_members(workspace.id))

    def update_page(
        self,
        page_public_id: str,
        request: schemas.PageUpdateRequest,
        user_id: Optional[uuid.UUID],
    ) -> schemas.PageResponse:
        page, _ = self._get_page(page_public_id, user_id)

        if request.slug is not None:
            slug = request.slug.lower()
            if not self.is_page_slug_available(slug, exclude_page_id=page.id):
                raise ValueError(f"Page slug {slug} is not available")
            page.slug = slug
        if request.title is not None:
            page.title = request.title
        if request.description is not None:
            page.description = request.description
        if request.visibility is not None:
            page.visibility = request.visibility

        self.session.commit()
        return page_response(page, self._active_members(page.workspace_id))

    def check_slug_availability(
        self, page_slug: str, page_public_id: str, user_id: Optional[uuid.UUID]
    ) -> bool:
        """Return ``True`` when another live page already holds the slug."""
        page, _ = self._get_page(page_public_id, user_id)
        return not self.is_page_slug_available(page_slug, exclude_page_id=page.id)

    def delete_page(self, page_public_id: str, user_id: Optional[uuid.UUID]) -> None:
        page, member = self._get_page(page_public_id, user_id)
        page.soft_delete(member.user_id)
        self.session.commit()
        logger.info("page_deleted", page=page_public_id)

    # ========================================================================
    # Tags
    # ========================================================================

    def _get_tag(self, tag_public_id: str, user_id: Optional[uuid.UUID]):
        tag = self._get_live(PageTag, tag_public_id, "Tag")
        if tag.page.deleted_at is not None:
            raise NoResultFound("Tag not found")
        member = self.assert_user_in_workspace(user_id, tag.page.workspace_id)
        return tag, member

    def create_tag(
        self,
        page_public_id: str,
        request: schemas.TagCreateRequest,
        user_id: Optional[uuid.UUID],
    ) -> PageTag:
        page, member = self._get_page(page_public_id, user_id)
        tag = PageTag(
            name=request.name,
            colour_code=request.colour_code,
            created_by=member.user_id,
        )
        page.tags.append(tag)
        self.session.commit()
        return tag

    def update_tag(
        self,
        tag_public_id: str,
        request: schemas.TagUpdateRequest,
        user_id: Optional[uuid.UUID],
    ) -> PageTag:
        tag, _ = self._get_tag(tag_public_id, user_id)
        if request.name is not None:
            tag.name = request.name
        if request.colour_code is not None:
            tag.colour_code = request.colour_code
        self.session.commit()
        return tag

    def delete_tag(self, tag_public_id: str, user_id: Optional[uuid.UUID]) -> None:
        tag, member = self._get_tag(tag_public_id, user_id)
        tag.soft_delete(member.user_id)
        self.session.commit()

    # ========================================================================
    # Workspace page labels
    # ========================================================================

    def _get_label(self, label_public_id: str, user_id: Optional[uuid.UUID]):
        label = self._get_live(PageLabel, label_public_id, "Label")
        member = self.assert_user_in_workspace(user_id, label.workspace_id)
        return label, member

    def list_labels(
        self, workspace_public_id: str, user_id: Optional[uuid.UUID]
    ) -> list[PageLabel]:
        workspace = self._get_live(Workspace, workspace_public_id, "Workspace")
        self.assert_user_in_workspace(user_id, workspace.id)
        return list(
            self.session.execute(
                select(PageLabel)
                .where(
                    and_(PageLabel.workspace_id == workspace.id, PageLabel.deleted_at.is_(None))
                )
                .order_by(PageLabel.name)
            ).scalars()
        )

    def create_label(
        self,
        workspace_public_id: str,
        request: schemas.PageLabelCreateRequest,
        user_id: Optional[uuid.UUID],
    ) -> PageLabel:
        workspace = self._get_live(Workspace, workspace_public_id, "Workspace")
        member = self.assert_user_in_workspace(user_id, workspace.id)
        label = PageLabel(
            workspace_id=workspace.id,
            name=request.name,
            colour_code=request.colour_code,
            created_by=member.user_id,
        )
        self.session.add(label)
        self.session.commit()
        return label

    def update_label(
        self,
        label_public_id: str,
        request: schemas.PageLabelUpdateRequest,
        user_id: Optional[uuid.UUID],
    ) -> PageLabel:
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

    def attach_label(
        self, page_public_id: str, label_public_id: str, user_id: Optional[uuid.UUID]
    ) -> None:
        page, _ = self._get_page(page_public_id, user_id)
        label = self._get_live(PageLabel, label_public_id, "Label")
        if label.workspace_id != page.workspace_id:
            raise PermissionError("Label not in workspace")
        if label not in page.labels:
            page.labels.append(label)
        self.session.commit()

    def detach_label(
        self, page_public_id: str, label_public_id: str, user_id: Optional[uuid.UUID]
    ) -> None:
        """Detach a label; unknown or foreign labels are a no-op."""
        page, _ = self._get_page(page_public_id, user_id)
        label = (
            self.session.execute(select(PageLabel).where(PageLabel.public_id == label_public_id))
            .scalars()
            .first()
        )
        if label is None or label.workspace_id != page.workspace_id:
            return
        if label in page.labels:
            page.labels.remove(label)
        self.session.commit()
