"""SQLite-backed pick session repository."""

from __future__ import annotations

import asyncio
import json
import sqlite3
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from shared.dal.models import (
    Decision,
    PersistedResults,
    PickSession,
    PlayerStatus,
    SessionPlayer,
    SessionStatus,
    SessionSummary,
    SessionType,
    SessionVote,
)
from shared.dal.session_repository import SessionRepository

if TYPE_CHECKING:
    from shared.db.connection import Database

logger = structlog.get_logger()

_SESSION_COLUMNS = (
    "s.id, s.code, s.type, s.host_name, s.status, s.filters_json, s.game_ids_json, "
    "s.created_at, s.completed_at, s.winner_game_id, s.final_results_json"
)
_PLAYER_COLUMNS = "id, session_id, name, is_host, status, progress, joined_at"


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _session_from_row(row: tuple) -> PickSession:
    (
        session_id,
        code,
        session_type,
        host_name,
        status,
        filters_json,
        game_ids_json,
        created_at,
        completed_at,
        winner_game_id,
        final_results_json,
    ) = row[:11]
    return PickSession(
        id=session_id,
        code=code,
        type=SessionType(session_type),
        host_name=host_name,
        status=SessionStatus(status),
        filters=json.loads(filters_json),
        game_ids=json.loads(game_ids_json),
        created_at=_parse_dt(created_at),
        completed_at=_parse_dt(completed_at),
        winner_game_id=winner_game_id,
        final_results=PersistedResults.model_validate_json(final_results_json) if final_results_json else None,
    )


def _player_from_row(row: tuple) -> SessionPlayer:
    player_id, session_id, name, is_host, status, progress, joined_at = row
    return SessionPlayer(
        id=player_id,
        session_id=session_id,
        name=name,
        is_host=bool(is_host),
        status=PlayerStatus(status),
        progress=progress,
        joined_at=_parse_dt(joined_at),
    )


def _filter_clause(session_type: SessionType | None, status: SessionStatus | None) -> tuple[str, list[str]]:
    conditions: list[str] = []
    params: list[str] = []
    if session_type is not None:
        conditions.append("s.type = ?")
        params.append(session_type.value)
    if status is not None:
        conditions.append("s.status = ?")
        params.append(status.value)
    where = f" WHERE {' AND '.join(conditions)}" if conditions else ""
    return where, params


class SqliteSessionRepository(SessionRepository):
    """SQLite implementation of SessionRepository.

    Writes are serialized with an asyncio lock so a commit or rollback on
    the shared connection never interleaves with another coroutine's write.
    Uniqueness (session code, one vote per session/player/game) is enforced
    by the schema.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def code_exists(self, code: str) -> bool:
        row = self._db.connection.execute("SELECT 1 FROM pick_sessions WHERE code = ?", (code,)).fetchone()
        return row is not None

    async def create_session(self, session: PickSession, host: SessionPlayer) -> None:
        """Insert the session and its host player atomically. Raises ValueError on a duplicate code."""
        async with self._lock:
            conn = self._db.connection
            try:
                conn.execute(
                    "INSERT INTO pick_sessions (id, code, type, host_name, status, filters_json, game_ids_json, "
                    "created_at, completed_at, winner_game_id, final_results_json) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        session.id,
                        session.code,
                        session.type.value,
                        session.host_name,
                        session.status.value,
                        json.dumps(session.filters),
                        json.dumps(session.game_ids),
                        session.created_at.isoformat(),
                        session.completed_at.isoformat() if session.completed_at else None,
                        session.winner_game_id,
                        session.final_results.model_dump_json(by_alias=True) if session.final_results else None,
                    ),
                )
                self._insert_player(conn, host)
                conn.commit()
            except sqlite3.IntegrityError as exc:
                conn.rollback()
                if "pick_sessions.code" in str(exc).lower():
                    raise ValueError(f"Session code '{session.code}' already exists") from exc
                raise ValueError(str(exc)) from exc

    async def get_session(self, code: str) -> PickSession | None:
        row = self._db.connection.execute(
            f"SELECT {_SESSION_COLUMNS} FROM pick_sessions s WHERE s.code = ?",  # noqa: S608
            (code,),
        ).fetchone()
        if row is None:
            return None
        return _session_from_row(row)

    async def get_players(self, session_id: str) -> list[SessionPlayer]:
        """Players of a session in join order."""
        rows = self._db.connection.execute(
            f"SELECT {_PLAYER_COLUMNS} FROM pick_session_players WHERE session_id = ? "  # noqa: S608
            "ORDER BY joined_at ASC, rowid ASC",
            (session_id,),
        ).fetchall()
        return [_player_from_row(row) for row in rows]

    async def add_player(self, player: SessionPlayer) -> None:
        async with self._lock:
            conn = self._db.connection
            try:
                self._insert_player(conn, player)
                conn.commit()
            except sqlite3.IntegrityError as exc:
                conn.rollback()
                raise ValueError(f"Could not add player '{player.name}': {exc}") from exc

    async def upsert_vote(self, vote: SessionVote) -> None:
        """Record a decision, replacing any earlier one for the same session, player and game."""
        async with self._lock:
            self._db.connection.execute(
                "INSERT INTO pick_session_votes (session_id, player_id, game_id, decision, created_at) "
                "VALUES (?, ?, ?, ?, ?) "
                "ON CONFLICT (session_id, player_id, game_id) DO UPDATE SET decision = excluded.decision",
                (
                    vote.session_id,
                    vote.player_id,
                    vote.game_id,
                    vote.decision.value,
                    datetime.now(tz=UTC).isoformat(),
                ),
            )
            self._db.connection.commit()

    async def get_votes(self, session_id: str) -> list[SessionVote]:
        rows = self._db.connection.execute(
            "SELECT session_id, player_id, game_id, decision FROM pick_session_votes "
            "WHERE session_id = ? ORDER BY id ASC",
            (session_id,),
        ).fetchall()
        return [
            SessionVote(session_id=sid, player_id=pid, game_id=gid, decision=Decision(decision))
            for sid, pid, gid, decision in rows
        ]

    async def raise_player_progress(self, player_id: str, progress: int) -> None:
        """Store progress unless the player already reported a higher value."""
        async with self._lock:
            self._db.connection.execute(
                "UPDATE pick_session_players SET progress = MAX(progress, ?) WHERE id = ?",
                (progress, player_id),
            )
            self._db.connection.commit()

    async def set_player_status(self, player_id: str, status: PlayerStatus) -> None:
        async with self._lock:
            self._db.connection.execute(
                "UPDATE pick_session_players SET status = ? WHERE id = ?",
                (status.value, player_id),
            )
            self._db.connection.commit()

    async def finish_session(
        self,
        session_id: str,
        status: SessionStatus,
        completed_at: datetime,
        final_results: PersistedResults | None = None,
        winner_game_id: str | None = None,
    ) -> bool:
        """Move an active session to a terminal status.

        Only sessions still marked active are updated, so the first caller
        wins and its results are the ones frozen. Returns False when the
        session was not active (or does not exist).
        """
        async with self._lock:
            cursor = self._db.connection.execute(
                "UPDATE pick_sessions SET "
                "status = ?, "
                "completed_at = ?, "
                "final_results_json = ?, "
                "winner_game_id = COALESCE(?, winner_game_id) "
                "WHERE id = ? AND status = ?",
                (
                    status.value,
                    completed_at.isoformat(),
                    final_results.model_dump_json(by_alias=True) if final_results else None,
                    winner_game_id,
                    session_id,
                    SessionStatus.ACTIVE.value,
                ),
            )
            self._db.connection.commit()
        if cursor.rowcount == 0:
            logger.warning("finish_session had no effect (not found or not active)", session_id=session_id)
            return False
        return True

    async def list_sessions(
        self,
        session_type: SessionType | None = None,
        status: SessionStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[SessionSummary]:
        """Sessions newest first, with player and vote counts."""
        where, params = _filter_clause(session_type, status)
        rows = self._db.connection.execute(
            f"SELECT {_SESSION_COLUMNS}, "  # noqa: S608
            "(SELECT COUNT(*) FROM pick_session_players p WHERE p.session_id = s.id), "
            "(SELECT COUNT(*) FROM pick_session_votes v WHERE v.session_id = s.id) "
            f"FROM pick_sessions s{where} "
            "ORDER BY s.created_at DESC, s.rowid DESC LIMIT ? OFFSET ?",
            (*params, limit, offset),
        ).fetchall()
        return [
            SessionSummary(session=_session_from_row(row), player_count=row[11], vote_count=row[12]) for row in rows
        ]

    async def count_sessions(
        self,
        session_type: SessionType | None = None,
        status: SessionStatus | None = None,
    ) -> int:
        where, params = _filter_clause(session_type, status)
        row = self._db.connection.execute(
            f"SELECT COUNT(*) FROM pick_sessions s{where}",  # noqa: S608
            params,
        ).fetchone()
        return row[0]

    async def delete_sessions(self, session_ids: list[str]) -> int:
        """Delete sessions by id; players and votes go with them. Returns the number deleted."""
        if not session_ids:
            return 0
        placeholders = ", ".join("?" for _ in session_ids)
        async with self._lock:
            cursor = self._db.connection.execute(
                f"DELETE FROM pick_sessions WHERE id IN ({placeholders})",  # noqa: S608
                session_ids,
            )
            self._db.connection.commit()
        logger.info("sessions deleted", requested=len(session_ids), deleted=cursor.rowcount)
        return cursor.rowcount

    @staticmethod
    def _insert_player(conn: sqlite3.Connection, player: SessionPlayer) -> None:
        conn.execute(
            f"INSERT INTO pick_session_players ({_PLAYER_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",  # noqa: S608
            (
                player.id,
                player.session_id,
                player.name,
                int(player.is_host),
                player.status.value,
                player.progress,
                player.joined_at.isoformat(),
            ),
        )
