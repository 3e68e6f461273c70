"""Integration tests for the participant session endpoints."""

from picker.tests.helpers.api import create_session, join, vote


class TestCreateSession:
    def test_create_returns_code_and_host(self, client):
        data = create_session(client, filters={"players": 2})

        assert set(data) == {"session", "playerId", "totalGames"}
        assert data["totalGames"] == 3
        session = data["session"]
        assert set(session) == {"id", "code", "type", "hostName", "status"}
        assert session["type"] == "collaborative"
        assert session["status"] == "active"
        assert len(session["code"]) == 6

    def test_missing_fields(self, client):
        response = client.post("/sessions", json={"hostName": "Alice"})
        assert response.status_code == 400
        assert response.json() == {"error": "Missing required fields: hostName, gameIds"}

    def test_invalid_json(self, client):
        response = client.post("/sessions", content=b"{nope", headers={"Content-Type": "application/json"})
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid JSON body"}

    def test_body_must_be_object(self, client):
        response = client.post("/sessions", json=["Alice"])
        assert response.status_code == 400
        assert response.json() == {"error": "Request body must be a JSON object"}

    def test_bad_type(self, client):
        response = client.post("/sessions", json={"hostName": "Alice", "gameIds": ["g1"], "type": "party"})
        assert response.status_code == 400
        assert response.json()["error"].startswith("type:")

    def test_solo_with_winner_is_completed(self, client):
        data = create_session(client, type="solo", winnerGameId="g2")
        assert data["session"]["status"] == "completed"

    def test_trailing_slash(self, client):
        response = client.post("/sessions/", json={"hostName": "Alice", "gameIds": ["g1"]})
        assert response.status_code == 201


class TestGetSession:
    def test_details(self, client):
        code = create_session(client, filters={"players": 2})["session"]["code"]
        join(client, code, "Bob")

        data = client.get(f"/sessions/{code.lower()}").json()

        assert data["session"]["code"] == code
        assert data["session"]["filters"] == {"players": 2}
        assert "gameIds" not in data["session"]
        assert [p["name"] for p in data["players"]] == ["Alice", "Bob"]
        assert "joinedAt" in data["players"][0]
        assert [g["id"] for g in data["games"]] == ["g1", "g2", "g3"]
        assert data["games"][1]["image"] == "brass-thumb.jpg"

    def test_unknown_code(self, client):
        response = client.get("/sessions/ZZZZZZ")
        assert response.status_code == 404
        assert response.json() == {"error": "Session not found"}

    def test_security_headers(self, client):
        response = client.get("/health")
        assert response.headers["x-content-type-options"] == "nosniff"


class TestJoin:
    def test_join_and_rejoin(self, client):
        code = create_session(client)["session"]["code"]

        first = join(client, code, "Bob")
        again = join(client, code, "bob")

        assert first["isRejoining"] is False
        assert first["session"] == {"code": code, "hostName": "Alice", "status": "active"}
        assert first["player"]["isHost"] is False
        assert again["isRejoining"] is True
        assert again["player"]["id"] == first["player"]["id"]

    def test_blank_name(self, client):
        code = create_session(client)["session"]["code"]
        response = client.post(f"/sessions/{code}/join", json={"playerName": "  "})
        assert response.status_code == 400
        assert response.json() == {"error": "Player name is required"}


class TestVoteAndComplete:
    def test_vote_validation(self, client):
        created = create_session(client)
        code = created["session"]["code"]

        bad_decision = client.post(
            f"/sessions/{code}/vote",
            json={"playerId": created["playerId"], "gameId": "g1", "decision": "maybe"},
        )
        assert bad_decision.status_code == 400

        wrong_game = client.post(
            f"/sessions/{code}/vote",
            json={"playerId": created["playerId"], "gameId": "g9", "decision": "like"},
        )
        assert wrong_game.status_code == 400

        unknown_player = client.post(
            f"/sessions/{code}/vote",
            json={"playerId": "ghost", "gameId": "g1", "decision": "like"},
        )
        assert unknown_player.status_code == 404

    def test_complete_reports_all_done(self, client):
        created = create_session(client)
        code = created["session"]["code"]
        bob = join(client, code, "Bob")["player"]

        first = client.post(f"/sessions/{code}/complete", json={"playerId": created["playerId"]}).json()
        second = client.post(f"/sessions/{code}/complete", json={"playerId": bob["id"]}).json()

        assert first["success"] is True
        assert first["allPlayersDone"] is False
        assert second["allPlayersDone"] is True
        assert {p["status"] for p in second["players"]} == {"done"}

    def test_complete_requires_player_id(self, client):
        code = create_session(client)["session"]["code"]
        response = client.post(f"/sessions/{code}/complete", json={})
        assert response.status_code == 400
        assert response.json() == {"error": "Missing required field: playerId"}


class TestFullFlow:
    def test_two_players_vote_and_host_ends(self, client):
        created = create_session(client)
        code = created["session"]["code"]
        alice = created["playerId"]
        bob = join(client, code, "Bob")["player"]["id"]

        for progress, (game_id, decision) in enumerate([("g1", "like"), ("g2", "like"), ("g3", "skip")], start=1):
            vote(client, code, alice, game_id, decision, progress)
        for progress, (game_id, decision) in enumerate([("g1", "pick"), ("g2", "skip"), ("g3", "skip")], start=1):
            vote(client, code, bob, game_id, decision, progress)

        live = client.get(f"/sessions/{code}/results").json()
        assert live["session"]["status"] == "active"
        assert live["session"]["totalPlayers"] == 2
        assert [g["id"] for g in live["unanimousMatches"]] == ["g1"]

        forbidden = client.post(f"/sessions/{code}/end", json={"playerId": bob})
        assert forbidden.status_code == 403
        assert forbidden.json() == {"error": "Only the host can end the session"}

        ended = client.post(f"/sessions/{code}/end", json={"playerId": alice})
        assert ended.json() == {"success": True}

        results = client.get(f"/sessions/{code}/results").json()
        assert results["session"]["status"] == "completed"
        assert results["hasUnanimousMatch"] is True
        g1 = results["unanimousMatches"][0]
        assert g1["name"] == "Azul"
        assert g1["image"] == "azul.jpg"
        assert g1["likedBy"] == ["Alice"]
        assert g1["pickedBy"] == ["Bob"]
        assert [g["id"] for g in results["rankedResults"]] == ["g2"]
        assert results == client.get(f"/sessions/{code}/results").json()

        late = client.post(f"/sessions/{code}/join", json={"playerName": "Carol"})
        assert late.status_code == 400

        again = client.post(f"/sessions/{code}/end", json={"playerId": alice})
        assert again.status_code == 400

    def test_active_listing(self, client):
        open_code = create_session(client)["session"]["code"]
        create_session(client, type="solo", winnerGameId="g1")

        sessions = client.get("/sessions").json()["sessions"]

        assert [s["code"] for s in sessions] == [open_code]
        assert sessions[0]["playerCount"] == 1
        assert sessions[0]["gameCount"] == 3
        assert sessions[0]["voteCount"] == 0


class TestHealth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok", "cachedSessions": 0, "connections": 0}
