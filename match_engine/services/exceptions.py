"""Error taxonomy surfaced by the match engine services."""

from __future__ import annotations


class MatchEngineError(Exception):
    """Base exception carrying a stable ``kind`` and a human readable message."""

    kind = "match_engine_error"
    status_code = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.kind)
        self.message = message or self.kind

    def to_dict(self) -> dict[str, str]:
        return {"error": self.kind, "detail": self.message}


class InvalidInputError(MatchEngineError):
    """Raised for malformed arguments (self-swipe, empty text, bad enum value)."""

    kind = "invalid_input"
    status_code = 400


class NotFoundError(MatchEngineError):
    """Raised when a referenced user, match or message does not exist."""

    kind = "not_found"
    status_code = 404


class NotAMemberError(MatchEngineError):
    """Raised when the caller is not one of the two users of a match."""

    kind = "not_a_member"
    status_code = 403


class ForbiddenError(MatchEngineError):
    """Raised when the caller may not act on a message (wrong sender, wrong type)."""

    kind = "forbidden"
    status_code = 403


class MatchNotActiveError(MatchEngineError):
    """Raised when an action requires an active match."""

    kind = "match_not_active"
    status_code = 409


class PreconditionFailedError(MatchEngineError):
    """Raised when prerequisite state is missing (e.g. no location set)."""

    kind = "precondition_failed"
    status_code = 412


class ConflictError(MatchEngineError):
    """Raised when a concurrent write could not be reconciled."""

    kind = "conflict"
    status_code = 409


class StorageUnavailableError(MatchEngineError):
    """Raised when the document store cannot be reached."""

    kind = "storage_unavailable"
    status_code = 503


__all__ = [
    "ConflictError",
    "ForbiddenError",
    "InvalidInputError",
    "MatchEngineError",
    "MatchNotActiveError",
    "NotAMemberError",
    "NotFoundError",
    "PreconditionFailedError",
    "StorageUnavailableError",
]
