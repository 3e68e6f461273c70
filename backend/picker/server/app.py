from __future__ import annotations

import contextlib
from http import HTTPStatus
from typing import TYPE_CHECKING, cast

import structlog
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute

from picker.realtime.cache import RosterCache
from picker.realtime.connections import SessionConnectionManager
from picker.realtime.hub import BroadcastHub
from picker.realtime.websocket import session_websocket
from picker.server.middleware import SecurityHeadersMiddleware, SlashNormalizationMiddleware
from picker.server.settings import PickerServerSettings
from picker.sessions import SessionError, SessionService
from picker.views.admin_handlers import cancel_session, delete_sessions, list_sessions
from picker.views.policy import admin_api, public_route, validate_route_access_policy
from picker.views.session_handlers import (
    cast_vote,
    complete_player,
    create_session,
    end_session,
    get_results,
    get_session,
    join_session,
    list_active_sessions,
)
from shared.db import Database, SqliteGameCatalog, SqliteSessionRepository
from shared.logging import setup_logging

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from starlette.requests import Request
    from starlette.responses import Response


async def health(request: Request) -> JSONResponse:
    hub: BroadcastHub = request.app.state.hub
    return JSONResponse(
        {
            "status": "ok",
            "cachedSessions": len(hub.cache),
            "connections": hub.connections.connection_count,
        },
    )


async def _session_error_handler(_request: Request, exc: Exception) -> Response:
    error = cast("SessionError", exc)
    return JSONResponse({"error": error.message}, status_code=error.status_code)


async def _unexpected_error_handler(request: Request, _exc: Exception) -> Response:
    logger.exception("unhandled error", method=request.method, path=request.url.path)
    return JSONResponse({"error": "Internal server error"}, status_code=HTTPStatus.INTERNAL_SERVER_ERROR)


def create_app(settings: PickerServerSettings | None = None) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = PickerServerSettings()

    routes = [
        Route("/health", public_route(health), methods=["GET"], name="health"),
        Route("/sessions", public_route(list_active_sessions), methods=["GET"], name="list_active_sessions"),
        Route("/sessions", public_route(create_session), methods=["POST"], name="create_session"),
        Route("/sessions/{code}", public_route(get_session), methods=["GET"], name="get_session"),
        Route("/sessions/{code}/join", public_route(join_session), methods=["POST"], name="join_session"),
        Route("/sessions/{code}/vote", public_route(cast_vote), methods=["POST"], name="cast_vote"),
        Route("/sessions/{code}/complete", public_route(complete_player), methods=["POST"], name="complete_player"),
        Route("/sessions/{code}/end", public_route(end_session), methods=["POST"], name="end_session"),
        Route("/sessions/{code}/results", public_route(get_results), methods=["GET"], name="get_results"),
        Route("/admin/sessions", admin_api(list_sessions), methods=["GET"], name="admin_list_sessions"),
        Route("/admin/sessions", admin_api(delete_sessions), methods=["DELETE"], name="admin_delete_sessions"),
        Route(
            "/admin/sessions/{code}/cancel",
            admin_api(cancel_session),
            methods=["POST"],
            name="admin_cancel_session",
        ),
        WebSocketRoute("/ws", session_websocket, name="session_websocket"),
    ]
    validate_route_access_policy(routes)

    db = Database(settings.database_path)
    db.connect()
    session_service = SessionService(
        SqliteSessionRepository(db),
        SqliteGameCatalog(db),
        max_code_attempts=settings.max_code_attempts,
    )
    roster_cache = RosterCache(
        max_sessions=settings.roster_cache_max_sessions,
        ttl_seconds=settings.roster_cache_ttl_seconds,
    )
    hub = BroadcastHub(
        session_service,
        roster_cache,
        SessionConnectionManager(),
        reap_interval_seconds=settings.roster_reap_interval_seconds,
    )

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncGenerator[None]:
        hub.start_reaper()
        yield
        await hub.stop_reaper()
        await hub.connections.close_all()
        db.close()
        logger.info("picker server stopped")

    app = Starlette(
        routes=routes,
        lifespan=lifespan,
        exception_handlers={
            SessionError: _session_error_handler,
            Exception: _unexpected_error_handler,
        },
    )
    app.add_middleware(SlashNormalizationMiddleware)  # type: ignore[arg-type]
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["Content-Type", "X-API-Key"],
    )
    app.add_middleware(SecurityHeadersMiddleware)  # type: ignore[arg-type]

    app.state.settings = settings
    app.state.db = db
    app.state.session_service = session_service
    app.state.hub = hub

    logger.info("picker server ready", database_path=settings.database_path)
    return app


def get_app() -> Starlette:  # pragma: no cover
    """Factory function for uvicorn --factory picker.server.app:get_app."""
    s = PickerServerSettings()
    setup_logging(log_dir=s.log_dir)
    return create_app(settings=s)
