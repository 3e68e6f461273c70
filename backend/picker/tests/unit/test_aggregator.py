"""Tests for vote tallying and ranking."""

import random

from picker.sessions.aggregator import (
    UNKNOWN_VOTER_NAME,
    aggregate_votes,
    hydrate_results,
    leading_game_id,
    rank_results,
    tally_votes,
)
from picker.tests.helpers.factories import make_player, make_vote
from shared.dal.models import UNKNOWN_GAME_NAME, Decision, GameMetadata, GameVoteResult, PersistedResults

ALICE = make_player("pa", "Alice", is_host=True)
BOB = make_player("pb", "Bob")


class TestTallyVotes:
    def test_counts_and_voter_names(self):
        votes = [
            make_vote("pa", "g1", Decision.LIKE),
            make_vote("pb", "g1", Decision.PICK),
            make_vote("pa", "g2", Decision.SKIP),
            make_vote("pb", "g2", Decision.LIKE),
        ]

        results = tally_votes(["g1", "g2", "g3"], [ALICE, BOB], votes)

        g1, g2, g3 = results
        assert (g1.likes, g1.picks, g1.skips) == (1, 1, 0)
        assert g1.liked_by == ["Alice"]
        assert g1.picked_by == ["Bob"]
        assert g1.is_unanimous is True
        assert (g2.likes, g2.skips) == (1, 1)
        assert g2.is_unanimous is False
        assert g3 == GameVoteResult(id="g3")

    def test_votes_outside_candidates_ignored(self):
        results = tally_votes(["g1"], [ALICE], [make_vote("pa", "other", Decision.LIKE)])
        assert [r.id for r in results] == ["g1"]
        assert results[0].likes == 0

    def test_unknown_voter_named_placeholder(self):
        results = tally_votes(["g1"], [ALICE], [make_vote("ghost", "g1", Decision.LIKE)])
        assert results[0].liked_by == [UNKNOWN_VOTER_NAME]

    def test_never_unanimous_without_players(self):
        results = tally_votes(["g1"], [], [])
        assert results[0].is_unanimous is False

    def test_picks_count_toward_unanimity(self):
        votes = [make_vote("pa", "g1", Decision.PICK), make_vote("pb", "g1", Decision.PICK)]
        assert tally_votes(["g1"], [ALICE, BOB], votes)[0].is_unanimous is True


class TestRankResults:
    def test_unanimous_first_then_likes_descending(self):
        results = [
            GameVoteResult(id="one-like", likes=1),
            GameVoteResult(id="unanimous", likes=2, is_unanimous=True),
            GameVoteResult(id="three-likes", likes=3),
            GameVoteResult(id="nothing"),
            GameVoteResult(id="pick-only", picks=1),
        ]

        ranked = rank_results(results, random.Random(1))

        assert [r.id for r in ranked.unanimous_matches] == ["unanimous"]
        ids = [r.id for r in ranked.ranked_results]
        assert ids[0] == "three-likes"
        assert set(ids) == {"three-likes", "one-like", "pick-only"}
        assert "nothing" not in ids

    def test_ties_are_shuffled(self):
        results = [GameVoteResult(id=f"g{i}", likes=1) for i in range(8)]
        orders = {tuple(r.id for r in rank_results(results, random.Random(seed)).ranked_results) for seed in range(20)}
        assert len(orders) > 1

    def test_picks_do_not_affect_sort_score(self):
        results = [GameVoteResult(id="picked", likes=1, picks=5), GameVoteResult(id="liked", likes=2)]
        for seed in range(10):
            ranked = rank_results(results, random.Random(seed))
            assert ranked.ranked_results[0].id == "liked"


class TestAggregateVotes:
    def test_alice_and_bob_share_one_favourite(self):
        votes = [
            make_vote("pa", "g1", Decision.LIKE),
            make_vote("pb", "g1", Decision.LIKE),
            make_vote("pa", "g2", Decision.LIKE),
            make_vote("pb", "g2", Decision.SKIP),
            make_vote("pa", "g3", Decision.SKIP),
            make_vote("pb", "g3", Decision.SKIP),
        ]

        results = aggregate_votes(["g1", "g2", "g3"], [ALICE, BOB], votes, random.Random(0))

        assert [r.id for r in results.unanimous_matches] == ["g1"]
        assert [r.id for r in results.ranked_results] == ["g2"]
        assert leading_game_id(results) == "g1"


class TestLeadingGameId:
    def test_falls_back_to_ranked(self):
        assert leading_game_id(PersistedResults(ranked_results=[GameVoteResult(id="g2", likes=1)])) == "g2"

    def test_none_without_positive_votes(self):
        assert leading_game_id(PersistedResults()) is None


class TestHydrateResults:
    def test_merges_metadata(self):
        metadata = {"g1": GameMetadata(id="g1", name="Azul", image="azul.jpg", rating=7.8)}
        rows = hydrate_results([GameVoteResult(id="g1", likes=2, liked_by=["Alice", "Bob"])], metadata)
        assert rows == [
            {
                "id": "g1",
                "likes": 2,
                "picks": 0,
                "skips": 0,
                "likedBy": ["Alice", "Bob"],
                "pickedBy": [],
                "isUnanimous": False,
                "name": "Azul",
                "image": "azul.jpg",
                "rating": 7.8,
            },
        ]

    def test_missing_metadata_uses_placeholder(self):
        rows = hydrate_results([GameVoteResult(id="gone", likes=1)], {})
        assert rows[0]["name"] == UNKNOWN_GAME_NAME
        assert rows[0]["image"] is None
        assert rows[0]["rating"] is None
