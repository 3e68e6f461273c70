"""Tests for picker server middleware."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.applications import Starlette
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute
from starlette.testclient import TestClient

from picker.server.middleware import SECURITY_HEADERS, SecurityHeadersMiddleware, SlashNormalizationMiddleware

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.websockets import WebSocket


async def _echo_path(request: Request) -> JSONResponse:
    return JSONResponse({"path": request.url.path})


async def _ws_echo(websocket: WebSocket) -> None:
    await websocket.accept()
    await websocket.send_text(await websocket.receive_text())
    await websocket.close()


def _app() -> Starlette:
    app = Starlette(routes=[Route("/items", _echo_path, methods=["GET", "POST"]), WebSocketRoute("/ws", _ws_echo)])
    app.add_middleware(SlashNormalizationMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    return app


class TestSlashNormalization:
    def test_trailing_slash_routed_without_redirect(self):
        client = TestClient(_app(), follow_redirects=False)
        response = client.post("/items/")
        assert response.status_code == 200
        assert response.json() == {"path": "/items"}

    def test_root_untouched(self):
        client = TestClient(_app())
        assert client.get("/").status_code == 404


class TestSecurityHeaders:
    def test_headers_on_every_response(self):
        client = TestClient(_app())
        for path in ("/items", "/missing"):
            response = client.get(path)
            for name, value in SECURITY_HEADERS:
                assert response.headers[name.decode()] == value.decode()

    def test_websocket_passes_through(self):
        client = TestClient(_app())
        with client.websocket_connect("/ws") as ws:
            ws.send_text("hello")
            assert ws.receive_text() == "hello"
