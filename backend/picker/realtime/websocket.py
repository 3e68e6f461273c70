"""WebSocket endpoint for the session realtime channel."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError
from starlette.websockets import WebSocket, WebSocketDisconnect

from picker.realtime.messages import (
    EndSessionMessage,
    JoinSessionMessage,
    PingMessage,
    PlayerDoneMessage,
    PlayerProgressMessage,
    StartPickingMessage,
    error_message,
    parse_realtime_message,
    pong_message,
)
from picker.realtime.rate_limit import TokenBucket
from shared.validators import describe_validation_error

if TYPE_CHECKING:
    from picker.realtime.hub import BroadcastHub
    from picker.realtime.messages import InboundMessage
    from picker.server.settings import PickerServerSettings

logger = structlog.get_logger()

# A player swiping quickly sends a progress event per card.
_RATE_LIMIT_RATE = 20.0
_RATE_LIMIT_BURST = 40

# Disconnect after this many consecutive unparseable messages
_MAX_INVALID_MESSAGES = 5


async def session_websocket(websocket: WebSocket) -> None:
    """Handle one participant socket for its whole lifetime."""
    settings: PickerServerSettings = websocket.app.state.settings
    hub: BroadcastHub = websocket.app.state.hub

    if not _check_origin(websocket, settings.ws_allowed_origin):
        await websocket.close(code=4003, reason="forbidden_origin")
        return

    await websocket.accept()
    connection_id = str(uuid.uuid4())
    hub.connections.register(connection_id, websocket)
    log = logger.bind(connection_id=connection_id)
    log.info("websocket connected")

    try:
        await _message_loop(websocket, hub, connection_id)
    except (WebSocketDisconnect, RuntimeError, ConnectionError):
        pass
    finally:
        hub.disconnect(connection_id)
        log.info("websocket disconnected")


def _check_origin(websocket: WebSocket, allowed_origin: str | None) -> bool:
    if not allowed_origin:
        return True
    return websocket.headers.get("origin", "") == allowed_origin


async def _message_loop(websocket: WebSocket, hub: BroadcastHub, connection_id: str) -> None:
    bucket = TokenBucket(rate=_RATE_LIMIT_RATE, burst=_RATE_LIMIT_BURST)
    invalid_messages = 0

    while True:
        raw = await websocket.receive_text()
        try:
            message = parse_realtime_message(raw)
        except ValueError as e:
            invalid_messages += 1
            logger.warning("invalid realtime message", connection_id=connection_id, strikes=invalid_messages)
            await websocket.send_json(error_message(_error_text(e)))
            if invalid_messages >= _MAX_INVALID_MESSAGES:
                logger.info("too many invalid messages, disconnecting", connection_id=connection_id)
                await websocket.close(code=4004, reason="too_many_invalid_messages")
                return
            continue

        invalid_messages = 0

        if not bucket.consume():
            await websocket.send_json(error_message("Too many messages"))
            continue
        await _dispatch(websocket, hub, connection_id, message)


async def _dispatch(websocket: WebSocket, hub: BroadcastHub, connection_id: str, message: InboundMessage) -> None:
    if isinstance(message, JoinSessionMessage):
        await hub.join(connection_id, message.session_code, message.player_id)
    elif isinstance(message, StartPickingMessage):
        await hub.start_picking(connection_id, message.session_code)
    elif isinstance(message, PlayerProgressMessage):
        await hub.progress(connection_id, message.session_code, message.player_id, message.progress)
    elif isinstance(message, PlayerDoneMessage):
        await hub.done(connection_id, message.session_code, message.player_id)
    elif isinstance(message, EndSessionMessage):
        await hub.end(connection_id, message.session_code)
    elif isinstance(message, PingMessage):
        await websocket.send_json(pong_message())


def _error_text(exc: ValueError) -> str:
    if isinstance(exc, ValidationError):
        return f"Invalid message: {describe_validation_error(exc)}"
    return str(exc)
