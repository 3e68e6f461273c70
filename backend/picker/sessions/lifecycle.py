"""Session and player state transitions, and the guards around them.

Sessions move ``active -> completed`` (host ends it) or ``active -> cancelled``
(administrative). Players move ``picking -> done``. Nothing moves back.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from picker.sessions.errors import ForbiddenActionError, InvalidSessionStateError, SessionNotFoundError
from shared.dal.models import PlayerStatus, SessionStatus

if TYPE_CHECKING:
    from shared.dal.models import PickSession, SessionPlayer

_SESSION_TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.ACTIVE: frozenset({SessionStatus.COMPLETED, SessionStatus.CANCELLED}),
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.CANCELLED: frozenset(),
}

_PLAYER_TRANSITIONS: dict[PlayerStatus, frozenset[PlayerStatus]] = {
    PlayerStatus.PICKING: frozenset({PlayerStatus.DONE}),
    PlayerStatus.DONE: frozenset(),
}


def can_transition(current: SessionStatus, target: SessionStatus) -> bool:
    return target in _SESSION_TRANSITIONS[current]


def can_transition_player(current: PlayerStatus, target: PlayerStatus) -> bool:
    return target in _PLAYER_TRANSITIONS[current]


def ensure_active(session: PickSession) -> None:
    """Votes, joins and completions are only accepted while the session is active."""
    if session.status != SessionStatus.ACTIVE:
        raise InvalidSessionStateError("Session is no longer active")


def ensure_transition(session: PickSession, target: SessionStatus) -> None:
    if not can_transition(session.status, target):
        raise InvalidSessionStateError(f"Cannot move session from {session.status} to {target}")


def find_player(players: list[SessionPlayer], player_id: str) -> SessionPlayer:
    for player in players:
        if player.id == player_id:
            return player
    raise SessionNotFoundError("Player not found in session")


def ensure_host(players: list[SessionPlayer], player_id: str) -> SessionPlayer:
    """Return the host player, or raise if player_id is not the session's host."""
    player = next((p for p in players if p.id == player_id), None)
    if player is None or not player.is_host:
        raise ForbiddenActionError("Only the host can end the session")
    return player


def all_players_done(players: list[SessionPlayer]) -> bool:
    return bool(players) and all(p.status == PlayerStatus.DONE for p in players)
