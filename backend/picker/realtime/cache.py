"""Per-process roster cache keyed by session code.

Mirrors player status and progress so a joining socket gets the roster in
one message and progress events need no database round trip. The session
repository stays authoritative; the cache is refilled from it on each join.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from shared.dal.models import PlayerStatus

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from shared.dal.models import SessionPlayer

logger = structlog.get_logger()


@dataclass
class PlayerSnapshot:
    """Last known state of one player, as broadcast to clients."""

    id: str
    name: str
    is_host: bool
    status: PlayerStatus
    progress: int

    @classmethod
    def from_player(cls, player: SessionPlayer) -> PlayerSnapshot:
        return cls(
            id=player.id,
            name=player.name,
            is_host=player.is_host,
            status=player.status,
            progress=player.progress,
        )

    def to_wire(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "isHost": self.is_host,
            "status": self.status.value,
            "progress": self.progress,
        }


@dataclass
class _RosterEntry:
    players: dict[str, PlayerSnapshot] = field(default_factory=dict)  # player_id -> snapshot
    touched_at: float = 0.0


class RosterCache:
    """Bounded map of session code to player snapshots.

    Entries are evicted explicitly when a session ends or is cancelled,
    after ``ttl_seconds`` without any activity (see ``evict_expired``), or
    least-recently-used first once ``max_sessions`` is exceeded.

    Writers only add or update individual players; they never replace a
    session's whole map, so two joins racing across an await both survive.
    """

    def __init__(
        self,
        *,
        max_sessions: int = 1000,
        ttl_seconds: float = 6 * 60 * 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._entries: OrderedDict[str, _RosterEntry] = OrderedDict()
        self._max_sessions = max_sessions
        self._ttl_seconds = ttl_seconds
        self._clock = clock

    def __contains__(self, code: str) -> bool:
        return code in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def merge_players(self, code: str, players: Iterable[SessionPlayer]) -> list[PlayerSnapshot]:
        """Upsert snapshots from the store and return the session's roster."""
        entry = self._touch(code, create=True)
        for player in players:
            entry.players[player.id] = PlayerSnapshot.from_player(player)
        self._enforce_capacity()
        return list(entry.players.values())

    def roster(self, code: str) -> list[PlayerSnapshot]:
        entry = self._entries.get(code)
        return list(entry.players.values()) if entry else []

    def get_player(self, code: str, player_id: str) -> PlayerSnapshot | None:
        entry = self._entries.get(code)
        return entry.players.get(player_id) if entry else None

    def update_progress(self, code: str, player_id: str, progress: int) -> bool:
        """Record progress for a cached player. Returns False if the player is not cached."""
        entry = self._touch(code)
        player = entry.players.get(player_id) if entry else None
        if player is None:
            return False
        player.progress = progress
        return True

    def mark_done(self, code: str, player_id: str) -> bool:
        entry = self._touch(code)
        player = entry.players.get(player_id) if entry else None
        if player is None:
            return False
        player.status = PlayerStatus.DONE
        return True

    def evict(self, code: str) -> bool:
        return self._entries.pop(code, None) is not None

    def evict_expired(self) -> list[str]:
        """Drop sessions idle for longer than the TTL. Returns the evicted codes."""
        cutoff = self._clock() - self._ttl_seconds
        expired = [code for code, entry in self._entries.items() if entry.touched_at < cutoff]
        for code in expired:
            del self._entries[code]
        return expired

    def _touch(self, code: str, *, create: bool = False) -> _RosterEntry | None:
        entry = self._entries.get(code)
        if entry is None:
            if not create:
                return None
            entry = _RosterEntry()
            self._entries[code] = entry
        entry.touched_at = self._clock()
        self._entries.move_to_end(code)
        return entry

    def _enforce_capacity(self) -> None:
        while len(self._entries) > self._max_sessions:
            code, _ = self._entries.popitem(last=False)
            logger.info("roster cache full, evicted least recently used session", session_code=code)
