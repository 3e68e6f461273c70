"""Data access layer: repository interfaces and shared persistence models."""

from shared.dal.game_catalog import GameCatalog
from shared.dal.models import (
    UNKNOWN_GAME_NAME,
    CatalogGame,
    Decision,
    GameMetadata,
    GameVoteResult,
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

__all__ = [
    "UNKNOWN_GAME_NAME",
    "CatalogGame",
    "Decision",
    "GameCatalog",
    "GameMetadata",
    "GameVoteResult",
    "PersistedResults",
    "PickSession",
    "PlayerStatus",
    "SessionPlayer",
    "SessionRepository",
    "SessionStatus",
    "SessionSummary",
    "SessionType",
    "SessionVote",
]
