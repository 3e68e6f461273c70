"""Collaborative pick sessions: persistence-facing service, aggregation and lifecycle rules."""

from picker.sessions.errors import (
    CodeGenerationExhaustedError,
    ForbiddenActionError,
    InvalidSessionStateError,
    SessionError,
    SessionNotFoundError,
    SessionValidationError,
)
from picker.sessions.service import SessionService

__all__ = [
    "CodeGenerationExhaustedError",
    "ForbiddenActionError",
    "InvalidSessionStateError",
    "SessionError",
    "SessionNotFoundError",
    "SessionService",
    "SessionValidationError",
]
