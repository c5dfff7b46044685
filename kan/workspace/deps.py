"""FastAPI dependencies shared by the workspace routers."""

from __future__ import annotations

import uuid
from typing import Callable, Generator, Optional, TypeVar

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from .events import EventBus
from .service import ServiceBase, WorkspaceDatabase, WorkspaceSettings

__all__ = [
    "get_bus",
    "get_current_user",
    "get_database",
    "get_optional_user",
    "get_session",
    "get_settings",
    "provide",
]

ServiceT = TypeVar("ServiceT", bound=ServiceBase)


def get_settings(request: Request) -> WorkspaceSettings:
    return request.app.state.settings


def get_database(request: Request) -> WorkspaceDatabase:
    return request.app.state.database


def get_bus(request: Request) -> EventBus:
    return request.app.state.event_bus


def get_session(
    database: WorkspaceDatabase = Depends(get_database),
) -> Generator[Session, None, None]:
    session = database.session()
    try:
        yield session
    finally:
        session.close()


def provide(service_cls: type[ServiceT]) -> Callable[..., ServiceT]:
    """Build a dependency returning ``service_cls`` bound to the request session."""

    def dependency(
        session: Session = Depends(get_session),
        settings: WorkspaceSettings = Depends(get_settings),
        bus: EventBus = Depends(get_bus),
    ) -> ServiceT:
        return service_cls(session=session, settings=settings, events=bus)

    dependency.__name__ = f"get_{service_cls.__name__}"
    return dependency


def _parse_user(value: Optional[str]) -> Optional[uuid.UUID]:
    if not value:
        return None
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=401, detail="Malformed X-User-ID header") from None


def get_current_user(
    x_user_id: Optional[str] = Header(None, alias="X-User-ID"),
) -> uuid.UUID:
    """Caller identity forwarded by the authenticating proxy."""
    user_id = _parse_user(x_user_id)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user_id


def get_optional_user(
    x_user_id: Optional[str] = Header(None, alias="X-User-ID"),
) -> Optional[uuid.UUID]:
    return _parse_user(x_user_id)
