"""Abstract interface for pick session persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from shared.dal.models import (
        PersistedResults,
        PickSession,
        PlayerStatus,
        SessionPlayer,
        SessionStatus,
        SessionSummary,
        SessionType,
        SessionVote,
    )


class SessionRepository(ABC):
    """Durable store for sessions, their players and their votes.

    Every method touches at most one row or one session-scoped insert; no
    operation spans a vote and a progress update in one transaction.
    """

    @abstractmethod
    async def code_exists(self, code: str) -> bool: ...

    @abstractmethod
    async def create_session(self, session: PickSession, host: SessionPlayer) -> None: ...

    @abstractmethod
    async def get_session(self, code: str) -> PickSession | None: ...

    @abstractmethod
    async def get_players(self, session_id: str) -> list[SessionPlayer]: ...

    @abstractmethod
    async def add_player(self, player: SessionPlayer) -> None: ...

    @abstractmethod
    async def upsert_vote(self, vote: SessionVote) -> None: ...

    @abstractmethod
    async def get_votes(self, session_id: str) -> list[SessionVote]: ...

    @abstractmethod
    async def raise_player_progress(self, player_id: str, progress: int) -> None: ...

    @abstractmethod
    async def set_player_status(self, player_id: str, status: PlayerStatus) -> None: ...

    @abstractmethod
    async def finish_session(
        self,
        session_id: str,
        status: SessionStatus,
        completed_at: datetime,
        final_results: PersistedResults | None = None,
        winner_game_id: str | None = None,
    ) -> bool: ...

    @abstractmethod
    async def list_sessions(
        self,
        session_type: SessionType | None = None,
        status: SessionStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[SessionSummary]: ...

    @abstractmethod
    async def count_sessions(
        self,
        session_type: SessionType | None = None,
        status: SessionStatus | None = None,
    ) -> int: ...

    @abstractmethod
    async def delete_sessions(self, session_ids: list[str]) -> int: ...
