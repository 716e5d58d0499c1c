"""Service layer for candidate discovery, swipes, matches and messaging."""

from .exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    MatchEngineError,
    MatchNotActiveError,
    NotAMemberError,
    NotFoundError,
    PreconditionFailedError,
    StorageUnavailableError,
)

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
