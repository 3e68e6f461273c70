"""WebSocket connection registry with one broadcast channel per session code."""

from __future__ import annotations

import contextlib
import json
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from starlette.websockets import WebSocket

logger = structlog.get_logger()


class SessionConnectionManager:
    """Track open sockets and which session channel each one listens on.

    A socket is registered on connect and joins at most one channel, the
    session code from its latest ``join-session``. Sends to a broken socket
    are dropped silently; the socket's own receive loop cleans it up.
    """

    def __init__(self) -> None:
        self._sockets: dict[str, WebSocket] = {}  # conn_id -> ws
        self._channels: dict[str, set[str]] = {}  # session code -> {conn_id}
        self._connection_channel: dict[str, str] = {}  # conn_id -> session code

    def register(self, connection_id: str, websocket: WebSocket) -> None:
        self._sockets[connection_id] = websocket

    def subscribe(self, connection_id: str, code: str) -> None:
        """Put a registered socket on a session channel, leaving any previous one."""
        if connection_id not in self._sockets:
            return
        self._leave_channel(connection_id)
        self._channels.setdefault(code, set()).add(connection_id)
        self._connection_channel[connection_id] = code

    @property
    def connection_count(self) -> int:
        return len(self._sockets)

    def channel_of(self, connection_id: str) -> str | None:
        return self._connection_channel.get(connection_id)

    def members(self, code: str) -> set[str]:
        return set(self._channels.get(code, ()))

    def remove(self, connection_id: str) -> str | None:
        """Forget a socket and return the channel it was on, or None."""
        self._sockets.pop(connection_id, None)
        return self._leave_channel(connection_id)

    async def broadcast(self, code: str, message: dict, exclude: str | None = None) -> None:
        """Send a JSON message to every socket on the channel, optionally skipping one."""
        payload = json.dumps(message)
        for conn_id in list(self._channels.get(code, ())):
            if conn_id == exclude:
                continue
            ws = self._sockets.get(conn_id)
            if ws is None:
                continue
            with contextlib.suppress(ConnectionError, RuntimeError):
                await ws.send_text(payload)

    async def send_to(self, connection_id: str, message: dict) -> bool:
        """Send a JSON message to one socket. Returns True on success."""
        ws = self._sockets.get(connection_id)
        if ws is None:
            return False
        try:
            await ws.send_text(json.dumps(message))
        except (ConnectionError, RuntimeError):
            return False
        return True

    async def close_all(self, code: int = 1001, reason: str = "server_shutdown") -> None:
        """Close every open socket (used on shutdown)."""
        sockets = list(self._sockets.values())
        self._sockets.clear()
        self._channels.clear()
        self._connection_channel.clear()
        for ws in sockets:
            with contextlib.suppress(ConnectionError, RuntimeError):
                await ws.close(code=code, reason=reason)
        if sockets:
            logger.info("closed realtime connections", count=len(sockets))

    def _leave_channel(self, connection_id: str) -> str | None:
        code = self._connection_channel.pop(connection_id, None)
        if code is not None and code in self._channels:
            self._channels[code].discard(connection_id)
            if not self._channels[code]:
                del self._channels[code]
        return code
