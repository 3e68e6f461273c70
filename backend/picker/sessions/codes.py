"""Short human-entered session codes."""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING

import structlog

from picker.sessions.errors import CodeGenerationExhaustedError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = structlog.get_logger()

# Uppercase alphanumerics without the look-alikes 0/O and 1/I.
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 6
MAX_CODE_ATTEMPTS = 10


def generate_session_code() -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def normalize_code(code: str) -> str:
    """Codes are typed by people; accept any case and stray whitespace."""
    return code.strip().upper()


def is_valid_code(code: str) -> bool:
    return len(code) == CODE_LENGTH and all(c in CODE_ALPHABET for c in code)


async def claim_session_code[T](
    code_exists: Callable[[str], Awaitable[bool]],
    insert: Callable[[str], Awaitable[T]],
    *,
    max_attempts: int = MAX_CODE_ATTEMPTS,
    generate: Callable[[], str] = generate_session_code,
) -> T:
    """Draw codes and insert under the first free one, returning what ``insert`` returns.

    A draw that is already taken, and an insert that loses the race for a
    code between the check and the write (``insert`` raises ValueError),
    both count against the same ``max_attempts`` budget.
    """
    for _ in range(max_attempts):
        code = generate()
        if await code_exists(code):
            continue
        try:
            result = await insert(code)
        except ValueError:
            logger.warning("session code taken between check and insert", session_code=code)
            continue
        return result
    raise CodeGenerationExhaustedError(f"Failed to generate a unique session code after {max_attempts} attempts")
