"""SQLite database connection and schema management."""

import os
import sqlite3
from pathlib import Path

import structlog

logger = structlog.get_logger()

_DB_FILE_PERMISSIONS = 0o600

_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS games (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    year_published INTEGER,
    image TEXT,
    thumbnail TEXT,
    selected_thumbnail TEXT,
    description TEXT,
    min_players INTEGER,
    max_players INTEGER,
    min_playtime INTEGER,
    max_playtime INTEGER,
    rating REAL,
    min_age INTEGER,
    is_expansion INTEGER NOT NULL DEFAULT 0,
    categories TEXT,
    mechanics TEXT
);

CREATE TABLE IF NOT EXISTS pick_sessions (
    id TEXT PRIMARY KEY,
    code TEXT NOT NULL,
    type TEXT NOT NULL DEFAULT 'collaborative',
    host_name TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'active',
    filters_json TEXT NOT NULL,
    game_ids_json TEXT NOT NULL,
    created_at TEXT NOT NULL,
    completed_at TEXT,
    winner_game_id TEXT,
    final_results_json TEXT
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_pick_sessions_code ON pick_sessions (code);
CREATE INDEX IF NOT EXISTS idx_pick_sessions_status ON pick_sessions (status);

CREATE TABLE IF NOT EXISTS pick_session_players (
    id TEXT PRIMARY KEY,
    session_id TEXT NOT NULL REFERENCES pick_sessions (id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    is_host INTEGER NOT NULL DEFAULT 0,
    status TEXT NOT NULL DEFAULT 'picking',
    progress INTEGER NOT NULL DEFAULT 0,
    joined_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_pick_session_players_session ON pick_session_players (session_id);
CREATE UNIQUE INDEX IF NOT EXISTS idx_pick_session_players_name
    ON pick_session_players (session_id, name COLLATE NOCASE);

CREATE TABLE IF NOT EXISTS pick_session_votes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id TEXT NOT NULL REFERENCES pick_sessions (id) ON DELETE CASCADE,
    player_id TEXT NOT NULL REFERENCES pick_session_players (id) ON DELETE CASCADE,
    game_id TEXT NOT NULL,
    decision TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_pick_session_votes_unique
    ON pick_session_votes (session_id, player_id, game_id);
"""


class Database:
    """SQLite database wrapper owning the connection and the schema."""

    def __init__(self, path: str | Path) -> None:
        self._path = str(path)
        self._conn: sqlite3.Connection | None = None

    @property
    def path(self) -> str:
        return self._path

    @property
    def connection(self) -> sqlite3.Connection:
        """Return the active connection or raise if disconnected."""
        if self._conn is None:
            raise RuntimeError("Database is not connected")
        return self._conn

    def connect(self) -> None:
        """Open the database, apply pragmas, create the schema, and restrict file permissions."""
        if self._path != ":memory:":
            Path(self._path).parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(self._path, check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.execute("PRAGMA busy_timeout=5000")
        self._conn.executescript(_SCHEMA_SQL)
        logger.info("database connected", path=self._path)

        self._harden_permissions()

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _harden_permissions(self) -> None:
        """Make the database and its WAL/SHM siblings owner-only on POSIX (best effort)."""
        if os.name != "posix" or self._path == ":memory:":  # pragma: no cover
            return
        for suffix in ("", "-wal", "-shm"):
            p = Path(self._path + suffix)
            if p.exists():
                try:
                    p.chmod(_DB_FILE_PERMISSIONS)
                except OSError:
                    logger.warning("could not set file permissions", permissions=oct(_DB_FILE_PERMISSIONS), path=str(p))
