"""Persistence models for pick sessions and the game catalog.

Models serialize with camelCase aliases (``model_dump(by_alias=True)``) so
the same objects back both the JSON columns and the API payloads.
"""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SessionType(StrEnum):
    SOLO = "solo"
    COLLABORATIVE = "collaborative"


class SessionStatus(StrEnum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PlayerStatus(StrEnum):
    PICKING = "picking"
    DONE = "done"


class Decision(StrEnum):
    LIKE = "like"
    SKIP = "skip"
    PICK = "pick"


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class SessionPlayer(WireModel):
    """Participant scoped to a single session (not a user account)."""

    id: str
    session_id: str
    name: str
    is_host: bool = False
    status: PlayerStatus = PlayerStatus.PICKING
    progress: int = 0  # number of games swiped so far
    joined_at: datetime


class GameVoteResult(WireModel):
    """Vote facts for one candidate game. Carries no catalog metadata."""

    id: str
    likes: int = 0
    picks: int = 0
    skips: int = 0
    liked_by: list[str] = Field(default_factory=list)
    picked_by: list[str] = Field(default_factory=list)
    is_unanimous: bool = False


class PersistedResults(WireModel):
    """Frozen outcome stored on a session when the host ends it."""

    unanimous_matches: list[GameVoteResult] = Field(default_factory=list)
    ranked_results: list[GameVoteResult] = Field(default_factory=list)


class PickSession(WireModel):
    id: str
    code: str
    type: SessionType = SessionType.COLLABORATIVE
    host_name: str
    status: SessionStatus = SessionStatus.ACTIVE
    filters: dict[str, Any] = Field(default_factory=dict)  # opaque, echoed back to clients
    game_ids: list[str]  # candidate order, fixed at creation
    created_at: datetime
    completed_at: datetime | None = None
    winner_game_id: str | None = None
    final_results: PersistedResults | None = None


class SessionVote(WireModel):
    session_id: str
    player_id: str
    game_id: str
    decision: Decision


class SessionSummary(WireModel):
    """Session row plus aggregate counts, for listings."""

    session: PickSession
    player_count: int
    vote_count: int


class CatalogGame(WireModel):
    """Display metadata for a game, as imported from BoardGameGeek."""

    id: str
    name: str
    year_published: int | None = None
    image: str | None = None  # resolved box art: selected thumbnail, then image, then thumbnail
    description: str | None = None
    min_players: int | None = None
    max_players: int | None = None
    min_playtime: int | None = None
    max_playtime: int | None = None
    rating: float | None = None
    min_age: int | None = None
    is_expansion: bool = False
    categories: list[str] = Field(default_factory=list)
    mechanics: list[str] = Field(default_factory=list)


UNKNOWN_GAME_NAME = "Unknown Game"


class GameMetadata(WireModel):
    """The volatile part of a result row, re-resolved on every read."""

    id: str
    name: str = UNKNOWN_GAME_NAME
    image: str | None = None
    rating: float | None = None
