"""Pick session operations over the session repository and the game catalog."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog

from picker.sessions.aggregator import aggregate_votes, leading_game_id
from picker.sessions.codes import MAX_CODE_ATTEMPTS, claim_session_code, generate_session_code, normalize_code
from picker.sessions.errors import (
    InvalidSessionStateError,
    SessionNotFoundError,
    SessionValidationError,
)
from picker.sessions.lifecycle import (
    all_players_done,
    can_transition_player,
    ensure_active,
    ensure_host,
    ensure_transition,
    find_player,
)
from picker.sessions.types import (
    CompletionResult,
    CreatedSession,
    JoinResult,
    SessionDetails,
    SessionPage,
    SessionResults,
)
from shared.dal.models import (
    PickSession,
    PlayerStatus,
    SessionPlayer,
    SessionStatus,
    SessionType,
    SessionVote,
)

if TYPE_CHECKING:
    import random
    from collections.abc import Callable
    from typing import Any

    from shared.dal.game_catalog import GameCatalog
    from shared.dal.models import Decision, GameMetadata, SessionSummary
    from shared.dal.session_repository import SessionRepository

logger = structlog.get_logger()

ACTIVE_LISTING_LIMIT = 50
MAX_PAGE_SIZE = 200


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def _player_named(players: list[SessionPlayer], name: str) -> SessionPlayer | None:
    wanted = name.casefold()
    return next((p for p in players if p.name.casefold() == wanted), None)


class SessionService:
    """Create, join, vote on, complete and end pick sessions.

    The repository is the source of truth; nothing here is cached. Results
    of an active session are recomputed per call. Ending a session
    computes them one final time and stores them on the session.
    """

    def __init__(
        self,
        repo: SessionRepository,
        catalog: GameCatalog,
        *,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = _utcnow,
        max_code_attempts: int = MAX_CODE_ATTEMPTS,
        code_generator: Callable[[], str] = generate_session_code,
    ) -> None:
        self._repo = repo
        self._catalog = catalog
        self._rng = rng
        self._clock = clock
        self._max_code_attempts = max_code_attempts
        self._code_generator = code_generator

    async def create_session(
        self,
        host_name: str,
        session_type: SessionType,
        filters: dict[str, Any],
        game_ids: list[str],
        winner_game_id: str | None = None,
    ) -> CreatedSession:
        """Create a session with its host player.

        A solo session created with a known winner is completed on the
        spot: the host is marked done with every game swiped.
        """
        host_name = host_name.strip()
        if not host_name or not game_ids:
            raise SessionValidationError("Missing required fields: hostName, gameIds")
        if any(not game_id for game_id in game_ids):
            raise SessionValidationError("Game ids must not be empty")
        if winner_game_id is not None and winner_game_id not in game_ids:
            raise SessionValidationError("winnerGameId must be one of the session's games")

        now = self._clock()
        decided = session_type == SessionType.SOLO and winner_game_id is not None
        session_id = str(uuid4())
        host = SessionPlayer(
            id=str(uuid4()),
            session_id=session_id,
            name=host_name,
            is_host=True,
            status=PlayerStatus.DONE if decided else PlayerStatus.PICKING,
            progress=len(game_ids) if decided else 0,
            joined_at=now,
        )

        async def insert(code: str) -> PickSession:
            session = PickSession(
                id=session_id,
                code=code,
                type=session_type,
                host_name=host_name,
                status=SessionStatus.COMPLETED if decided else SessionStatus.ACTIVE,
                filters=filters,
                game_ids=list(game_ids),
                created_at=now,
                completed_at=now if decided else None,
                winner_game_id=winner_game_id,
            )
            await self._repo.create_session(session, host)
            return session

        session = await claim_session_code(
            self._repo.code_exists,
            insert,
            max_attempts=self._max_code_attempts,
            generate=self._code_generator,
        )

        logger.info(
            "session created",
            session_code=session.code,
            session_type=session_type,
            status=session.status,
            total_games=len(game_ids),
        )
        return CreatedSession(session=session, player_id=host.id, total_games=len(game_ids))

    async def join_session(self, code: str, player_name: str) -> JoinResult:
        """Join as a new player, or get back the existing player with the same name (any case)."""
        player_name = player_name.strip()
        if not player_name:
            raise SessionValidationError("Player name is required")

        session = await self._require_session(code)
        ensure_active(session)

        players = await self._repo.get_players(session.id)
        existing = _player_named(players, player_name)
        if existing is not None:
            logger.info("player rejoined", session_code=session.code, player_id=existing.id)
            return JoinResult(player=existing, session=session, is_rejoining=True)

        player = SessionPlayer(
            id=str(uuid4()),
            session_id=session.id,
            name=player_name,
            joined_at=self._clock(),
        )
        try:
            await self._repo.add_player(player)
        except ValueError:
            # A concurrent join took the name while this one waited on the store.
            existing = _player_named(await self._repo.get_players(session.id), player_name)
            if existing is None:
                raise
            logger.info("player rejoined", session_code=session.code, player_id=existing.id)
            return JoinResult(player=existing, session=session, is_rejoining=True)
        logger.info("player joined", session_code=session.code, player_id=player.id, player_count=len(players) + 1)
        return JoinResult(player=player, session=session, is_rejoining=False)

    async def cast_vote(
        self,
        code: str,
        player_id: str,
        game_id: str,
        decision: Decision,
        progress: int,
    ) -> None:
        """Record (or replace) a player's decision on a game and advance their progress.

        Progress is clamped to the candidate count and never decreases.
        The vote and the progress update are separate writes.
        """
        if not player_id or not game_id:
            raise SessionValidationError("Missing required fields: playerId, gameId, decision")

        session = await self._require_session(code)
        ensure_active(session)
        find_player(await self._repo.get_players(session.id), player_id)
        if game_id not in session.game_ids:
            raise SessionValidationError("Game is not part of this session")

        await self._repo.upsert_vote(
            SessionVote(session_id=session.id, player_id=player_id, game_id=game_id, decision=decision),
        )
        clamped = max(0, min(progress, len(session.game_ids)))
        await self._repo.raise_player_progress(player_id, clamped)
        logger.debug(
            "vote recorded",
            session_code=session.code,
            player_id=player_id,
            game_id=game_id,
            decision=decision,
            progress=clamped,
        )

    async def complete_player(self, code: str, player_id: str) -> CompletionResult:
        """Mark a player done. Reports whether every player in the session is now done.

        The session itself stays active; only the host ends it.
        """
        if not player_id:
            raise SessionValidationError("Missing required field: playerId")

        session = await self._require_session(code)
        ensure_active(session)
        player = find_player(await self._repo.get_players(session.id), player_id)
        if can_transition_player(player.status, PlayerStatus.DONE):
            await self._repo.set_player_status(player_id, PlayerStatus.DONE)

        players = await self._repo.get_players(session.id)
        done = all_players_done(players)
        logger.info("player finished picking", session_code=session.code, player_id=player_id, all_done=done)
        return CompletionResult(all_players_done=done, players=players)

    async def end_session(self, code: str, player_id: str) -> PickSession:
        """Host-only: complete the session and freeze its results.

        This is the single place final results are computed. The store only
        accepts the update while the session is still active, so a second
        concurrent end cannot overwrite the first one's results.
        """
        if not player_id:
            raise SessionValidationError("Missing required field: playerId")

        session = await self._require_session(code)
        players = await self._repo.get_players(session.id)
        ensure_host(players, player_id)
        ensure_transition(session, SessionStatus.COMPLETED)

        votes = await self._repo.get_votes(session.id)
        results = aggregate_votes(session.game_ids, players, votes, self._rng)
        winner = session.winner_game_id or leading_game_id(results)

        finished = await self._repo.finish_session(
            session.id,
            SessionStatus.COMPLETED,
            self._clock(),
            final_results=results,
            winner_game_id=winner,
        )
        if not finished:
            raise InvalidSessionStateError("Session is no longer active")

        logger.info(
            "session ended",
            session_code=session.code,
            unanimous=len(results.unanimous_matches),
            ranked=len(results.ranked_results),
            winner_game_id=winner,
        )
        return await self._require_session(session.code)

    async def cancel_session(self, code: str) -> PickSession:
        """Administrative cancel of an active session. No results are frozen."""
        session = await self._require_session(code)
        ensure_transition(session, SessionStatus.CANCELLED)
        if not await self._repo.finish_session(session.id, SessionStatus.CANCELLED, self._clock()):
            raise InvalidSessionStateError("Session is no longer active")
        logger.info("session cancelled", session_code=session.code)
        return await self._require_session(session.code)

    async def get_session(self, code: str) -> SessionDetails:
        session = await self._require_session(code)
        players = await self._repo.get_players(session.id)
        games = await self._catalog.get_games(session.game_ids)
        return SessionDetails(session=session, players=players, games=games)

    async def get_results(self, code: str) -> SessionResults:
        """Current standings, or the frozen standings once the session is completed.

        Catalog metadata is resolved on every call in both cases.
        """
        session = await self._require_session(code)
        players = await self._repo.get_players(session.id)

        frozen = session.status == SessionStatus.COMPLETED and session.final_results is not None
        if frozen:
            results = session.final_results
        else:
            votes = await self._repo.get_votes(session.id)
            results = aggregate_votes(session.game_ids, players, votes, self._rng)

        result_ids = [r.id for r in results.unanimous_matches] + [r.id for r in results.ranked_results]
        metadata = {game.id: game for game in await self._catalog.resolve_games(result_ids)}
        return SessionResults(session=session, players=players, results=results, metadata=metadata, frozen=frozen)

    async def list_active_sessions(self) -> list[SessionSummary]:
        return await self._repo.list_sessions(status=SessionStatus.ACTIVE, limit=ACTIVE_LISTING_LIMIT)

    async def list_sessions(
        self,
        session_type: SessionType | None = None,
        status: SessionStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> SessionPage:
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        offset = max(0, offset)
        total = await self._repo.count_sessions(session_type, status)
        sessions = await self._repo.list_sessions(session_type, status, limit, offset)
        return SessionPage(sessions=sessions, total=total, limit=limit, offset=offset)

    async def winner_games(self, sessions: list[SessionSummary]) -> dict[str, GameMetadata]:
        winner_ids = [s.session.winner_game_id for s in sessions if s.session.winner_game_id]
        return {game.id: game for game in await self._catalog.resolve_games(winner_ids)}

    async def delete_sessions(self, session_ids: list[str]) -> int:
        if not session_ids:
            raise SessionValidationError("Missing or invalid sessionIds array")
        return await self._repo.delete_sessions(session_ids)

    async def _require_session(self, code: str) -> PickSession:
        session = await self._repo.get_session(normalize_code(code))
        if session is None:
            raise SessionNotFoundError("Session not found")
        return session
