"""MongoDB collection names used by the match engine."""

from __future__ import annotations

USERS_COLLECTION = "users"
MATCHES_COLLECTION = "matches"
MESSAGES_COLLECTION = "messages"

__all__ = [
    "USERS_COLLECTION",
    "MATCHES_COLLECTION",
    "MESSAGES_COLLECTION",
]
