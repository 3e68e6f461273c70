"""Fan-out of session events to connected participants."""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

import structlog

from picker.realtime.messages import (
    error_message,
    picking_started_message,
    player_completed_message,
    player_joined_message,
    player_progress_message,
    session_ended_message,
    session_update_message,
)
from picker.sessions.codes import normalize_code
from picker.sessions.errors import SessionError

if TYPE_CHECKING:
    from picker.realtime.cache import RosterCache
    from picker.realtime.connections import SessionConnectionManager
    from picker.sessions.service import SessionService

logger = structlog.get_logger()

JOIN_FAILED_MESSAGE = "Failed to join session"
NOT_JOINED_MESSAGE = "Join the session before sending session events"


class BroadcastHub:
    """Process-wide owner of the roster cache and the per-session channels.

    Created once per application and shared by the socket endpoint and the
    REST handlers. Nothing here writes to the session store: progress and
    done events are advisory mirrors of the durable REST calls.
    """

    def __init__(
        self,
        service: SessionService,
        cache: RosterCache,
        connections: SessionConnectionManager,
        *,
        reap_interval_seconds: float = 60.0,
    ) -> None:
        self._service = service
        self._cache = cache
        self._connections = connections
        self._reap_interval_seconds = reap_interval_seconds
        self._reaper_task: asyncio.Task[None] | None = None

    @property
    def cache(self) -> RosterCache:
        return self._cache

    @property
    def connections(self) -> SessionConnectionManager:
        return self._connections

    async def join(self, connection_id: str, code: str, player_id: str) -> None:
        """Subscribe a socket to a session and refresh everyone's roster from the store.

        A failed fetch is reported to the joining socket only.
        """
        code = normalize_code(code)
        log = logger.bind(session_code=code, player_id=player_id, connection_id=connection_id)
        try:
            details = await self._service.get_session(code)
        except SessionError as e:
            log.info("realtime join rejected", reason=e.message)
            await self._connections.send_to(connection_id, error_message(e.message))
            return
        except Exception:
            log.exception("realtime join failed")
            await self._connections.send_to(connection_id, error_message(JOIN_FAILED_MESSAGE))
            return

        self._connections.subscribe(connection_id, code)
        roster = self._cache.merge_players(code, details.players)
        await self._connections.broadcast(code, session_update_message(details.session, roster))

        joined = self._cache.get_player(code, player_id)
        if joined is not None:
            await self._connections.broadcast(code, player_joined_message(joined), exclude=connection_id)
        log.info("realtime player joined", player_count=len(roster))

    async def start_picking(self, connection_id: str, code: str) -> None:
        code = normalize_code(code)
        if not await self._ensure_member(connection_id, code):
            return
        await self._connections.broadcast(code, picking_started_message(code))
        logger.info("picking started", session_code=code)

    async def progress(self, connection_id: str, code: str, player_id: str, progress: int) -> None:
        code = normalize_code(code)
        if not await self._ensure_member(connection_id, code):
            return
        self._cache.update_progress(code, player_id, progress)
        await self._connections.broadcast(code, player_progress_message(player_id, progress))

    async def done(self, connection_id: str, code: str, player_id: str) -> None:
        code = normalize_code(code)
        if not await self._ensure_member(connection_id, code):
            return
        self._cache.mark_done(code, player_id)
        await self._connections.broadcast(code, player_completed_message(player_id))

    async def end(self, connection_id: str, code: str) -> None:
        code = normalize_code(code)
        if not await self._ensure_member(connection_id, code):
            return
        await self.session_ended(code)

    async def session_ended(self, code: str) -> None:
        """Tell the channel the session is over and drop its cached roster.

        Called for the socket ``end-session`` event and by the REST end and
        cancel handlers; a repeated call just re-sends the notification.
        """
        code = normalize_code(code)
        await self._connections.broadcast(code, session_ended_message(code))
        if self._cache.evict(code):
            logger.info("roster evicted", session_code=code, reason="session_ended")

    def disconnect(self, connection_id: str) -> None:
        """Forget a socket. The player stays in the session and may rejoin."""
        code = self._connections.remove(connection_id)
        if code is not None:
            logger.debug("realtime connection left", session_code=code, connection_id=connection_id)

    def start_reaper(self) -> None:
        """Start the periodic idle-roster reaper task."""
        if self._reaper_task is not None:
            return
        self._reaper_task = asyncio.create_task(self._reaper_loop())

    async def stop_reaper(self) -> None:
        if self._reaper_task is not None:
            self._reaper_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reaper_task
            self._reaper_task = None

    async def _reaper_loop(self) -> None:  # pragma: no cover - long-running background loop
        while True:
            await asyncio.sleep(self._reap_interval_seconds)
            self.reap_idle_rosters()

    def reap_idle_rosters(self) -> list[str]:
        expired = self._cache.evict_expired()
        for code in expired:
            logger.info("roster evicted", session_code=code, reason="idle")
        return expired

    async def _ensure_member(self, connection_id: str, code: str) -> bool:
        if self._connections.channel_of(connection_id) == code:
            return True
        await self._connections.send_to(connection_id, error_message(NOT_JOINED_MESSAGE))
        return False
