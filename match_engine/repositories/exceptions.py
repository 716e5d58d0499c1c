"""Exceptions raised by the repository layer."""

from __future__ import annotations

from typing import Optional


class RepositoryError(RuntimeError):
    """Base exception raised when a repository operation fails."""


class DuplicateKeyRepositoryError(RepositoryError):
    """Raised when a write collides with a unique index."""

    def __init__(self, message: str, *, key: Optional[str] = None) -> None:
        super().__init__(message)
        self.key = key


class NotFoundRepositoryError(RepositoryError):
    """Raised when an expected document is missing."""


__all__ = [
    "DuplicateKeyRepositoryError",
    "NotFoundRepositoryError",
    "RepositoryError",
]
