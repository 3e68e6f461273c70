"""Tests for DAL persistence models."""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from shared.dal.models import GameVoteResult, PersistedResults, PickSession, SessionPlayer


class TestWireAliases:
    def test_results_dump_in_camel_case(self):
        results = PersistedResults(
            unanimous_matches=[GameVoteResult(id="g1", likes=1, picks=1, picked_by=["Bob"], is_unanimous=True)],
        )
        dumped = results.model_dump(by_alias=True)
        assert set(dumped) == {"unanimousMatches", "rankedResults"}
        assert dumped["unanimousMatches"][0]["pickedBy"] == ["Bob"]
        assert dumped["unanimousMatches"][0]["isUnanimous"] is True

    def test_results_read_back_from_camel_case_json(self):
        raw = '{"unanimousMatches": [], "rankedResults": [{"id": "g2", "likes": 2, "likedBy": ["A", "B"]}]}'
        results = PersistedResults.model_validate_json(raw)
        assert results.ranked_results[0].liked_by == ["A", "B"]
        assert results.ranked_results[0].skips == 0

    def test_accepts_field_names_too(self):
        player = SessionPlayer(id="p1", session_id="s1", name="Alice", is_host=True, joined_at=datetime.now(tz=UTC))
        assert player.model_dump(by_alias=True)["isHost"] is True


class TestFrozen:
    def test_session_is_immutable(self):
        session = PickSession(
            id="s1",
            code="ABC234",
            host_name="Alice",
            game_ids=["g1"],
            created_at=datetime(2026, 1, 1, tzinfo=UTC),
        )
        with pytest.raises(ValidationError):
            session.status = "completed"
