"""Repository layer to abstract MongoDB access patterns."""

from .match import MatchRepository
from .message import MessageRepository
from .user import UserRepository

__all__ = ["MatchRepository", "MessageRepository", "UserRepository"]
