from __future__ import annotations

import logging
import time

from ..db import get_db
from ..models.swipes import SwipeResult
from ..models.user import (
    POSITIVE_DECISIONS,
    SWIPE_DECISIONS,
    SwipeHistory,
    is_usable_user_key,
    swipe_history,
)
from ..redis_bus import publish as redis_publish
from ..repositories.match import MatchRepository
from ..repositories.user import UserRepository
from .exceptions import InvalidInputError, NotFoundError
from .match_service import MatchService

LOGGER = logging.getLogger("uvicorn.error")


def _clean_id(value: object) -> str:
    return value.strip() if isinstance(value, str) else ""


class SwipeService:
    """Records swipe decisions and turns mutual interest into matches."""

    def __init__(self, user_repo: UserRepository, match_service: MatchService) -> None:
        self._user_repo = user_repo
        self._match_service = match_service

    @staticmethod
    def _now_ms() -> int:
        return int(time.time() * 1000)

    async def record_swipe(self, source_id: str, target_id: str, decision: str) -> SwipeResult:
        source = _clean_id(source_id)
        target = _clean_id(target_id)
        if decision not in SWIPE_DECISIONS:
            raise InvalidInputError(f"decision must be one of {', '.join(SWIPE_DECISIONS)}")
        if not source or not target:
            raise InvalidInputError("source and target are required")
        if source == target:
            raise InvalidInputError("cannot swipe on yourself")
        if not is_usable_user_key(source) or not is_usable_user_key(target):
            raise InvalidInputError("invalid user id")
        if not await self._user_repo.exists(target):
            raise NotFoundError("target user not found")

        now_ms = self._now_ms()
        written = await self._user_repo.record_swipe(
            source_id=source,
            target_id=target,
            decision=decision,
            swiped_at=now_ms,
        )
        if not written:
            raise NotFoundError("user not found")

        if decision == "pass":
            return SwipeResult(decision=decision, matched=False)

        if decision == "superLike":
            await redis_publish(
                "swipes",
                {"type": "swipe.super_like", "from": source, "to": target, "at": now_ms},
            )

        reverse = await self._user_repo.get_decision(target, source)
        if reverse not in POSITIVE_DECISIONS:
            return SwipeResult(decision=decision, matched=False)

        if await self._match_service.is_blocked_pair(source, target):
            LOGGER.info("Mutual like between %s and %s ignored: pair is blocked", source, target)
            return SwipeResult(decision=decision, matched=False)

        if decision == "superLike":
            super_liked_by = source
        elif reverse == "superLike":
            super_liked_by = target
        else:
            super_liked_by = None

        match, _created = await self._match_service.create_or_get_match(
            source, target, super_liked_by=super_liked_by
        )
        if match.status != "active":
            LOGGER.info("Mutual like between %s and %s ignored: match %s is %s", source, target, match.id, match.status)
            return SwipeResult(decision=decision, matched=False)
        return SwipeResult(decision=decision, matched=True, match_id=str(match.id))

    async def get_swipe_history(self, user_id: str) -> SwipeHistory:
        user = await self._user_repo.get_by_user_id(_clean_id(user_id))
        if user is None:
            raise NotFoundError("user not found")
        return swipe_history(user)


def get_swipe_service() -> SwipeService:
    db = get_db()
    return SwipeService(
        UserRepository(db),
        MatchService(MatchRepository(db)),
    )


__all__ = ["SwipeService", "get_swipe_service"]
