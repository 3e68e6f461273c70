"""Domain errors raised by the session layer.

Each error carries the HTTP status the REST layer answers with, so the
exception handler in ``picker.server.app`` needs no per-type mapping.
"""

from http import HTTPStatus


class SessionError(Exception):
    """Base class for failures surfaced to API clients."""

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class SessionValidationError(SessionError):
    """Missing or malformed input."""

    status_code = HTTPStatus.BAD_REQUEST


class SessionNotFoundError(SessionError):
    """Unknown session code or player."""

    status_code = HTTPStatus.NOT_FOUND


class InvalidSessionStateError(SessionError):
    """Action not allowed in the session's current status."""

    status_code = HTTPStatus.BAD_REQUEST


class ForbiddenActionError(SessionError):
    """Host-only action attempted by another player."""

    status_code = HTTPStatus.FORBIDDEN


class CodeGenerationExhaustedError(SessionError):
    """Every generated session code collided with an existing one."""

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR
