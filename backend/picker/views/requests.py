"""Request body and query parsing shared by the JSON handlers."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from pydantic import BaseModel, ValidationError

from picker.sessions.errors import SessionValidationError
from shared.validators import describe_validation_error

if TYPE_CHECKING:
    from starlette.requests import Request

MAX_REQUEST_BODY_SIZE = 64 * 1024


async def parse_request_body[M: BaseModel](request: Request, model: type[M]) -> M:
    """Decode a JSON object body into ``model``.

    Raises SessionValidationError (400) for oversized, non-JSON or invalid bodies.
    """
    raw_body = await request.body()
    if len(raw_body) > MAX_REQUEST_BODY_SIZE:
        raise SessionValidationError("Request body too large")
    try:
        body = json.loads(raw_body) if raw_body.strip() else {}
    except ValueError:
        raise SessionValidationError("Invalid JSON body") from None
    if not isinstance(body, dict):
        raise SessionValidationError("Request body must be a JSON object")
    try:
        return model.model_validate(body)
    except ValidationError as e:
        raise SessionValidationError(describe_validation_error(e)) from None


def query_int(request: Request, name: str, default: int) -> int:
    raw = request.query_params.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise SessionValidationError(f"Query parameter {name} must be an integer") from None
