"""SQLite database layer: connection management and repository implementations."""

from shared.db.connection import Database
from shared.db.game_catalog import SqliteGameCatalog
from shared.db.session_repository import SqliteSessionRepository

__all__ = [
    "Database",
    "SqliteGameCatalog",
    "SqliteSessionRepository",
]
