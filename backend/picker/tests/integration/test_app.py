"""Integration tests for application wiring and lifecycle."""

from unittest.mock import AsyncMock

from starlette.testclient import TestClient

from picker.tests.helpers.api import make_app


class TestLifespan:
    def test_reaper_runs_while_serving(self, app):
        with TestClient(app):
            assert app.state.hub._reaper_task is not None
        assert app.state.hub._reaper_task is None

    def test_shutdown_closes_database(self, app):
        with TestClient(app):
            pass
        assert app.state.db._conn is None


class TestErrorHandling:
    def test_unexpected_error_is_500_json(self, tmp_path):
        app = make_app(tmp_path)
        app.state.session_service.list_active_sessions = AsyncMock(side_effect=OSError("disk gone"))
        try:
            response = TestClient(app, raise_server_exceptions=False).get("/sessions")
            assert response.status_code == 500
            assert response.json() == {"error": "Internal server error"}
        finally:
            app.state.db.close()

    def test_cors_preflight(self, tmp_path):
        app = make_app(tmp_path, cors_origins=["http://localhost:5173"])
        try:
            response = TestClient(app).options(
                "/sessions",
                headers={"Origin": "http://localhost:5173", "Access-Control-Request-Method": "POST"},
            )
            assert response.status_code == 200
            assert response.headers["access-control-allow-origin"] == "http://localhost:5173"
        finally:
            app.state.db.close()
