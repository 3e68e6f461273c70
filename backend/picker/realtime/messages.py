"""Realtime channel message models.

Inbound messages are JSON objects discriminated on ``type``. Outbound
messages are plain dicts built by the ``*_message`` helpers below, using the
same camelCase field names as the REST surface.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

if TYPE_CHECKING:
    from picker.realtime.cache import PlayerSnapshot
    from shared.dal.models import PickSession

MAX_WS_MESSAGE_SIZE = 4096
_MAX_ID_LENGTH = 64


class _InboundMessage(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


class JoinSessionMessage(_InboundMessage):
    type: Literal["join-session"]
    session_code: str = Field(min_length=1, max_length=16)
    player_id: str = Field(min_length=1, max_length=_MAX_ID_LENGTH)


class StartPickingMessage(_InboundMessage):
    type: Literal["start-picking"]
    session_code: str = Field(min_length=1, max_length=16)


class PlayerProgressMessage(_InboundMessage):
    type: Literal["player-progress"]
    session_code: str = Field(min_length=1, max_length=16)
    player_id: str = Field(min_length=1, max_length=_MAX_ID_LENGTH)
    progress: int = Field(ge=0)


class PlayerDoneMessage(_InboundMessage):
    type: Literal["player-done"]
    session_code: str = Field(min_length=1, max_length=16)
    player_id: str = Field(min_length=1, max_length=_MAX_ID_LENGTH)


class EndSessionMessage(_InboundMessage):
    type: Literal["end-session"]
    session_code: str = Field(min_length=1, max_length=16)
    player_id: str | None = Field(default=None, max_length=_MAX_ID_LENGTH)


class PingMessage(_InboundMessage):
    type: Literal["ping"]


InboundMessage = (
    JoinSessionMessage
    | StartPickingMessage
    | PlayerProgressMessage
    | PlayerDoneMessage
    | EndSessionMessage
    | PingMessage
)

_inbound_adapter: TypeAdapter[InboundMessage] = TypeAdapter(Annotated[InboundMessage, Field(discriminator="type")])


def parse_realtime_message(raw: str) -> InboundMessage:
    """Parse and validate one inbound text frame.

    Raises ValueError for oversized or non-JSON frames and
    pydantic.ValidationError for unknown types or bad fields.
    """
    byte_len = len(raw.encode("utf-8"))
    if byte_len > MAX_WS_MESSAGE_SIZE:
        raise ValueError(f"Message too large ({byte_len} bytes, max {MAX_WS_MESSAGE_SIZE})")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON: {e.msg}") from None
    return _inbound_adapter.validate_python(data)


def session_update_message(session: PickSession, players: list[PlayerSnapshot]) -> dict:
    return {
        "type": "session-update",
        "code": session.code,
        "hostName": session.host_name,
        "status": session.status.value,
        "totalGames": len(session.game_ids),
        "players": [p.to_wire() for p in players],
    }


def player_joined_message(player: PlayerSnapshot) -> dict:
    return {"type": "player-joined", **player.to_wire()}


def picking_started_message(code: str) -> dict:
    return {"type": "picking-started", "sessionCode": code}


def player_progress_message(player_id: str, progress: int) -> dict:
    return {"type": "player-progress-update", "playerId": player_id, "progress": progress}


def player_completed_message(player_id: str) -> dict:
    return {"type": "player-completed", "playerId": player_id}


def session_ended_message(code: str) -> dict:
    return {"type": "session-ended", "sessionCode": code}


def error_message(message: str) -> dict:
    return {"type": "error", "message": message}


def pong_message() -> dict:
    return {"type": "pong"}
