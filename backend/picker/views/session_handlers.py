"""JSON endpoints for session participants."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.responses import JSONResponse

from picker.sessions.aggregator import hydrate_results
from picker.sessions.types import (
    CreateSessionRequest,
    JoinSessionRequest,
    PlayerActionRequest,
    VoteRequest,
)
from picker.views.requests import parse_request_body

if TYPE_CHECKING:
    from starlette.requests import Request

    from picker.realtime.hub import BroadcastHub
    from picker.sessions.service import SessionService
    from shared.dal.models import PickSession, SessionPlayer, SessionSummary


def _service(request: Request) -> SessionService:
    return request.app.state.session_service


def _session_json(session: PickSession, *fields: str) -> dict:
    dumped = session.model_dump(mode="json", by_alias=True, exclude={"game_ids", "final_results"})
    if not fields:
        return dumped
    return {key: dumped[key] for key in fields}


def _player_json(player: SessionPlayer, *, joined_at: bool = False) -> dict:
    data = {
        "id": player.id,
        "name": player.name,
        "isHost": player.is_host,
        "status": player.status.value,
        "progress": player.progress,
    }
    if joined_at:
        data["joinedAt"] = player.joined_at.isoformat()
    return data


def summary_json(summary: SessionSummary) -> dict:
    return {
        **_session_json(summary.session),
        "playerCount": summary.player_count,
        "gameCount": len(summary.session.game_ids),
        "voteCount": summary.vote_count,
    }


async def list_active_sessions(request: Request) -> JSONResponse:
    """GET /sessions - newest active sessions with player and vote counts."""
    summaries = await _service(request).list_active_sessions()
    return JSONResponse({"sessions": [summary_json(s) for s in summaries]})


async def create_session(request: Request) -> JSONResponse:
    """POST /sessions {hostName, type?, filters?, gameIds, winnerGameId?}"""
    body = await parse_request_body(request, CreateSessionRequest)
    created = await _service(request).create_session(
        body.host_name,
        body.type,
        body.filters,
        body.game_ids,
        body.winner_game_id,
    )
    return JSONResponse(
        {
            "session": _session_json(created.session, "id", "code", "type", "hostName", "status"),
            "playerId": created.player_id,
            "totalGames": created.total_games,
        },
        status_code=201,
    )


async def get_session(request: Request) -> JSONResponse:
    """GET /sessions/{code} - session, players in join order, games in candidate order."""
    details = await _service(request).get_session(request.path_params["code"])
    return JSONResponse(
        {
            "session": _session_json(details.session),
            "players": [_player_json(p, joined_at=True) for p in details.players],
            "games": [game.model_dump(mode="json", by_alias=True) for game in details.games],
        },
    )


async def join_session(request: Request) -> JSONResponse:
    """POST /sessions/{code}/join {playerName}"""
    body = await parse_request_body(request, JoinSessionRequest)
    result = await _service(request).join_session(request.path_params["code"], body.player_name)
    return JSONResponse(
        {
            "player": _player_json(result.player),
            "session": _session_json(result.session, "code", "hostName", "status"),
            "isRejoining": result.is_rejoining,
        },
    )


async def cast_vote(request: Request) -> JSONResponse:
    """POST /sessions/{code}/vote {playerId, gameId, decision, progress}"""
    body = await parse_request_body(request, VoteRequest)
    await _service(request).cast_vote(
        request.path_params["code"],
        body.player_id,
        body.game_id,
        body.decision,
        body.progress,
    )
    return JSONResponse({"success": True})


async def complete_player(request: Request) -> JSONResponse:
    """POST /sessions/{code}/complete {playerId}"""
    body = await parse_request_body(request, PlayerActionRequest)
    result = await _service(request).complete_player(request.path_params["code"], body.player_id)
    return JSONResponse(
        {
            "success": True,
            "allPlayersDone": result.all_players_done,
            "players": [_player_json(p) for p in result.players],
        },
    )


async def end_session(request: Request) -> JSONResponse:
    """POST /sessions/{code}/end {playerId} - host only.

    Also notifies connected participants, so the session ends for everyone
    even if the host's own socket event never arrives.
    """
    body = await parse_request_body(request, PlayerActionRequest)
    session = await _service(request).end_session(request.path_params["code"], body.player_id)
    hub: BroadcastHub = request.app.state.hub
    await hub.session_ended(session.code)
    return JSONResponse({"success": True})


async def get_results(request: Request) -> JSONResponse:
    """GET /sessions/{code}/results - live standings, or the frozen ones once completed."""
    outcome = await _service(request).get_results(request.path_params["code"])
    session = outcome.session
    unanimous = hydrate_results(outcome.results.unanimous_matches, outcome.metadata)
    ranked = hydrate_results(outcome.results.ranked_results, outcome.metadata)
    return JSONResponse(
        {
            "session": {
                "code": session.code,
                "hostName": session.host_name,
                "status": session.status.value,
                "totalGames": len(session.game_ids),
                "totalPlayers": len(outcome.players),
            },
            "players": [
                {"id": p.id, "name": p.name, "isHost": p.is_host, "status": p.status.value} for p in outcome.players
            ],
            "unanimousMatches": unanimous,
            "rankedResults": ranked,
            "hasUnanimousMatch": bool(unanimous),
        },
    )
