"""Administrative session endpoints. Every route here is wrapped with ``admin_api``."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.responses import JSONResponse

from picker.sessions.errors import SessionValidationError
from picker.sessions.types import DeleteSessionsRequest
from picker.views.requests import parse_request_body, query_int
from picker.views.session_handlers import summary_json
from shared.dal.models import SessionStatus, SessionType

if TYPE_CHECKING:
    from enum import StrEnum

    from starlette.requests import Request

    from picker.realtime.hub import BroadcastHub
    from picker.sessions.service import SessionService


DEFAULT_PAGE_SIZE = 50


def _query_enum[E: StrEnum](request: Request, name: str, enum_cls: type[E]) -> E | None:
    raw = request.query_params.get(name)
    if not raw:
        return None
    try:
        return enum_cls(raw)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise SessionValidationError(f"Query parameter {name} must be one of: {allowed}") from None


async def list_sessions(request: Request) -> JSONResponse:
    """GET /admin/sessions?type=&status=&limit=&offset= - every session, newest first."""
    service: SessionService = request.app.state.session_service
    page = await service.list_sessions(
        session_type=_query_enum(request, "type", SessionType),
        status=_query_enum(request, "status", SessionStatus),
        limit=query_int(request, "limit", DEFAULT_PAGE_SIZE),
        offset=query_int(request, "offset", 0),
    )
    winners = await service.winner_games(page.sessions)

    sessions = []
    for summary in page.sessions:
        entry = summary_json(summary)
        winner = winners.get(summary.session.winner_game_id) if summary.session.winner_game_id else None
        entry["winnerGame"] = {"id": winner.id, "name": winner.name, "image": winner.image} if winner else None
        sessions.append(entry)

    return JSONResponse(
        {
            "sessions": sessions,
            "pagination": {
                "total": page.total,
                "limit": page.limit,
                "offset": page.offset,
                "hasMore": page.has_more,
            },
        },
    )


async def delete_sessions(request: Request) -> JSONResponse:
    """DELETE /admin/sessions {sessionIds} - removes sessions with their players and votes."""
    service: SessionService = request.app.state.session_service
    body = await parse_request_body(request, DeleteSessionsRequest)
    deleted = await service.delete_sessions(body.session_ids)
    return JSONResponse({"success": True, "deletedCount": deleted})


async def cancel_session(request: Request) -> JSONResponse:
    """POST /admin/sessions/{code}/cancel - active -> cancelled, then notify participants."""
    service: SessionService = request.app.state.session_service
    hub: BroadcastHub = request.app.state.hub
    session = await service.cancel_session(request.path_params["code"])
    await hub.session_ended(session.code)
    return JSONResponse({"success": True, "status": session.status.value})
