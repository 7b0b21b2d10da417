"""
Swipematch — Engine error taxonomy.

Every failure the swipe / match / conversation engine reports is an
``EngineError`` carrying a machine-readable ``kind`` and a human-readable
``message``.  The HTTP layer maps kinds to status codes in one place
(``app.main``).
"""

from __future__ import annotations

import enum


class ErrorKind(str, enum.Enum):
    INVALID_ARGUMENT = "invalid_argument"
    NOT_FOUND = "not_found"
    STORE_FAILURE = "store_failure"
    CONFLICT = "conflict"


class EngineError(Exception):
    """Base class for structured engine failures."""

    kind: ErrorKind = ErrorKind.STORE_FAILURE

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message}

    def __repr__(self) -> str:
        return f"<{type(self).__name__} kind={self.kind.value!r} message={self.message!r}>"


class InvalidArgumentError(EngineError):
    """Malformed input detected before any store call."""

    kind = ErrorKind.INVALID_ARGUMENT


class NotFoundError(EngineError):
    kind = ErrorKind.NOT_FOUND


class StoreFailureError(EngineError):
    """Connectivity loss, constraint violation or timeout in the store."""

    kind = ErrorKind.STORE_FAILURE


class ConflictError(EngineError):
    """Sender or reader outside the match, or a duplicate username."""

    kind = ErrorKind.CONFLICT
