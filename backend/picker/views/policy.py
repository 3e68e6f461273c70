"""Route access policy helpers.

Each helper wraps an endpoint and sets the ``ACCESS_POLICY_ATTR`` marker so
that startup validation can verify every route declares who may call it.
Session participants are not authenticated: a session code plus a
``playerId`` obtained from join is all a participant route asks for.
"""

from __future__ import annotations

import functools
import secrets
from typing import TYPE_CHECKING

from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from starlette.requests import Request
    from starlette.responses import Response
    from starlette.routing import BaseRoute

ACCESS_POLICY_ATTR = "__access_policy__"
API_KEY_HEADER = "x-api-key"

type Endpoint = Callable[[Request], Awaitable[Response]]


def public_route(endpoint: Endpoint) -> Endpoint:
    """Mark an endpoint as callable by anyone holding a session code."""

    @functools.wraps(endpoint)
    async def wrapper(request: Request) -> Response:
        return await endpoint(request)

    setattr(wrapper, ACCESS_POLICY_ATTR, "public")
    return wrapper


def admin_api(endpoint: Endpoint) -> Endpoint:
    """Require the configured admin key in the ``X-API-Key`` header.

    Answers 403 when the key is missing or wrong, and also when the server
    has no admin key configured at all.
    """

    @functools.wraps(endpoint)
    async def wrapper(request: Request) -> Response:
        if not _has_admin_key(request):
            return JSONResponse({"error": "Admin access required"}, status_code=403)
        return await endpoint(request)

    setattr(wrapper, ACCESS_POLICY_ATTR, "admin")
    return wrapper


def _has_admin_key(request: Request) -> bool:
    expected = request.app.state.settings.admin_api_key
    if not expected:
        return False
    provided = request.headers.get(API_KEY_HEADER, "")
    return secrets.compare_digest(provided.encode(), expected.encode())


def validate_route_access_policy(routes: list[BaseRoute]) -> None:
    """Verify every HTTP route carries an access policy marker.

    WebSocket routes are exempt. Raises RuntimeError listing all unmarked routes.
    """
    unclassified: list[str] = []
    for route in routes:
        if isinstance(route, WebSocketRoute):
            continue
        if isinstance(route, Route) and not hasattr(route.endpoint, ACCESS_POLICY_ATTR):
            name = route.name or getattr(route.endpoint, "__name__", "unknown")
            unclassified.append(f"{route.path} ({name})")

    if unclassified:
        details = ", ".join(unclassified)
        msg = f"Unclassified routes missing access policy: {details}"
        raise RuntimeError(msg)
