"""FastAPI application for the workspace service.

- workspace, member, board, list, card, checklist, label and page routes
- live board/card events over server-sent events
- service exceptions mapped onto HTTP status codes
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, NoResultFound
from starlette.exceptions import HTTPException as StarletteHTTPException

from .events import EventBus, event_bus
from .routers import ROUTERS
from .service import AuthenticationRequired, WorkspaceDatabase, WorkspaceSettings, init_engine

__all__ = ["create_app", "WorkspaceSettings"]

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


def _error(status_code: int, code: str, detail: object) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"code": code, "detail": detail})


_HTTP_CODES = {401: "unauthorized", 403: "forbidden", 404: "not-found"}


def create_app(
    settings: WorkspaceSettings | None = None,
    *,
    bus: Optional[EventBus] = None,
) -> FastAPI:
    """Create and configure the FastAPI application for the workspace service."""

    settings = settings or WorkspaceSettings.from_env()
    engine = init_engine(settings)
    database = WorkspaceDatabase(engine=engine)
    if settings.auto_create_tables:
        database.create_all()

    if bus is None:
        bus = event_bus
        bus.max_listeners = settings.events_max_listeners

    app = FastAPI(
        title="Kan Workspace API",
        version="1.0.0",
        description="Boards, cards and pages with live board/card events",
    )
    app.state.settings = settings
    app.state.database = database
    app.state.event_bus = bus

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AuthenticationRequired)
    async def _unauthorized(request: Request, exc: AuthenticationRequired):
        return _error(status.HTTP_401_UNAUTHORIZED, "unauthorized", str(exc))

    @app.exception_handler(PermissionError)
    async def _forbidden(request: Request, exc: PermissionError):
        return _error(status.HTTP_403_FORBIDDEN, "forbidden", str(exc))

    @app.exception_handler(NoResultFound)
    async def _not_found(request: Request, exc: NoResultFound):
        return _error(status.HTTP_404_NOT_FOUND, "not-found", str(exc) or "Not found")

    @app.exception_handler(ValueError)
    async def _bad_request(request: Request, exc: ValueError):
        return _error(status.HTTP_400_BAD_REQUEST, "bad-request", str(exc))

    @app.exception_handler(IntegrityError)
    async def _conflict(request: Request, exc: IntegrityError):
        logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
        return _error(status.HTTP_400_BAD_REQUEST, "bad-request", "Conflicting record")

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        code = _HTTP_CODES.get(exc.status_code, "http-error")
        response = _error(exc.status_code, code, exc.detail)
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def _invalid(request: Request, exc: RequestValidationError):
        return _error(status.HTTP_400_BAD_REQUEST, "bad-request", jsonable_encoder(exc.errors()))

    @app.exception_handler(Exception)
    async def _internal(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "internal-error", "Internal server error")

    @app.get("/v1/healthz", tags=["health"])
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    for router in ROUTERS:
        app.include_router(router, prefix="/v1")

    return app
