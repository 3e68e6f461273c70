"""Vote aggregation: tallies, unanimity and tie-shuffled ranking.

Results for an active session are recomputed on every request, so games
tied on score may swap places between calls. The host ending the session
runs ``aggregate_votes`` one last time and the output is stored; reads of a
completed session only re-attach catalog metadata to the stored tallies.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from shared.dal.models import UNKNOWN_GAME_NAME, Decision, GameVoteResult, PersistedResults

if TYPE_CHECKING:
    from collections.abc import Iterable

    from shared.dal.models import GameMetadata, SessionPlayer, SessionVote

UNKNOWN_VOTER_NAME = "Unknown"


@dataclass
class _Tally:
    likes: list[str] = field(default_factory=list)
    picks: list[str] = field(default_factory=list)
    skips: list[str] = field(default_factory=list)


def tally_votes(
    game_ids: list[str],
    players: list[SessionPlayer],
    votes: Iterable[SessionVote],
) -> list[GameVoteResult]:
    """Count decisions per candidate game, in candidate order.

    Every candidate gets an entry, including games nobody voted on. Votes
    for games outside the candidate list are ignored. A game is unanimous
    when every current player liked or picked it, and never when the
    session has no players.
    """
    tallies: dict[str, _Tally] = {game_id: _Tally() for game_id in game_ids}
    names = {player.id: player.name for player in players}
    total_players = len(players)

    for vote in votes:
        tally = tallies.get(vote.game_id)
        if tally is None:
            continue
        voter = names.get(vote.player_id, UNKNOWN_VOTER_NAME)
        if vote.decision == Decision.LIKE:
            tally.likes.append(voter)
        elif vote.decision == Decision.PICK:
            tally.picks.append(voter)
        elif vote.decision == Decision.SKIP:
            tally.skips.append(voter)

    results: list[GameVoteResult] = []
    for game_id, tally in tallies.items():
        positive = len(tally.likes) + len(tally.picks)
        results.append(
            GameVoteResult(
                id=game_id,
                likes=len(tally.likes),
                picks=len(tally.picks),
                skips=len(tally.skips),
                liked_by=tally.likes,
                picked_by=tally.picks,
                is_unanimous=total_players > 0 and positive == total_players,
            ),
        )
    return results


def rank_results(results: list[GameVoteResult], rng: random.Random | None = None) -> PersistedResults:
    """Order tallies and split them into unanimous matches and the ranked rest.

    The full list is shuffled before a stable sort (unanimous first, then
    likes descending) so equal-score games land in random relative order.
    Picks feed unanimity only; they are not part of the sort score. Games
    without any like or pick are dropped from the ranked list.
    """
    rng = rng or random.Random()
    ordered = list(results)
    rng.shuffle(ordered)
    ordered.sort(key=lambda r: (not r.is_unanimous, -r.likes))

    return PersistedResults(
        unanimous_matches=[r for r in ordered if r.is_unanimous],
        ranked_results=[r for r in ordered if not r.is_unanimous and (r.likes > 0 or r.picks > 0)],
    )


def aggregate_votes(
    game_ids: list[str],
    players: list[SessionPlayer],
    votes: Iterable[SessionVote],
    rng: random.Random | None = None,
) -> PersistedResults:
    return rank_results(tally_votes(game_ids, players, votes), rng)


def leading_game_id(results: PersistedResults) -> str | None:
    """The game at the top of frozen results, if any game got positive votes."""
    if results.unanimous_matches:
        return results.unanimous_matches[0].id
    if results.ranked_results:
        return results.ranked_results[0].id
    return None


def hydrate_results(
    vote_results: list[GameVoteResult],
    metadata: dict[str, GameMetadata],
) -> list[dict]:
    """Merge vote tallies with freshly resolved catalog metadata for the API."""
    hydrated: list[dict] = []
    for result in vote_results:
        game = metadata.get(result.id)
        entry = result.model_dump(by_alias=True)
        entry["name"] = game.name if game else UNKNOWN_GAME_NAME
        entry["image"] = game.image if game else None
        entry["rating"] = game.rating if game else None
        hydrated.append(entry)
    return hydrated
