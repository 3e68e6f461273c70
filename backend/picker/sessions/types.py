from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from shared.dal.models import (  # noqa: TC001 - pydantic needs these at runtime
    CatalogGame,
    Decision,
    GameMetadata,
    PersistedResults,
    PickSession,
    SessionPlayer,
    SessionSummary,
    SessionType,
)

MAX_NAME_LENGTH = 50
MAX_GAMES_PER_SESSION = 500


class _RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


class CreateSessionRequest(_RequestModel):
    host_name: str = Field(default="", max_length=MAX_NAME_LENGTH)
    type: SessionType = SessionType.COLLABORATIVE
    filters: dict[str, Any] = Field(default_factory=dict)
    game_ids: list[str] = Field(default_factory=list, max_length=MAX_GAMES_PER_SESSION)
    winner_game_id: str | None = None


class JoinSessionRequest(_RequestModel):
    player_name: str = Field(default="", max_length=MAX_NAME_LENGTH)


class VoteRequest(_RequestModel):
    player_id: str = ""
    game_id: str = ""
    decision: Decision
    progress: int = 0


class PlayerActionRequest(_RequestModel):
    player_id: str = ""


class DeleteSessionsRequest(_RequestModel):
    session_ids: list[str] = Field(default_factory=list)


@dataclass(frozen=True)
class CreatedSession:
    session: PickSession
    player_id: str
    total_games: int


@dataclass(frozen=True)
class JoinResult:
    player: SessionPlayer
    session: PickSession
    is_rejoining: bool


@dataclass(frozen=True)
class CompletionResult:
    all_players_done: bool
    players: list[SessionPlayer]


@dataclass(frozen=True)
class SessionDetails:
    session: PickSession
    players: list[SessionPlayer]
    games: list[CatalogGame]  # candidate order


@dataclass(frozen=True)
class SessionResults:
    session: PickSession
    players: list[SessionPlayer]
    results: PersistedResults
    metadata: dict[str, GameMetadata]
    frozen: bool  # True when read back from the completed session


@dataclass(frozen=True)
class SessionPage:
    sessions: list[SessionSummary]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.sessions) < self.total
