from __future__ import annotations

import logging
import time
from typing import Dict, List, Optional, Tuple, Union

from bson import ObjectId

from ..config import get_settings
from ..db import get_db
from ..models.identifiers import parse_object_id
from ..models.match import (
    LastMessage,
    MatchDocument,
    MatchListResponse,
    MatchPartner,
    MatchView,
    includes_user,
    other_user,
    pair_key,
    to_view,
)
from ..models.user import UserDocument, primary_photo
from ..redis_bus import publish as redis_publish
from ..repositories.exceptions import DuplicateKeyRepositoryError
from ..repositories.match import MatchRepository
from ..repositories.user import UserRepository
from .exceptions import ConflictError, InvalidInputError, NotAMemberError, NotFoundError

LOGGER = logging.getLogger("uvicorn.error")

MatchId = Union[str, ObjectId]


class MatchService:
    """Match lifecycle: exactly-once creation, status transitions and counters."""

    def __init__(
        self,
        repository: MatchRepository,
        *,
        user_repo: Optional[UserRepository] = None,
        max_page_size: int = 50,
    ) -> None:
        self._repository = repository
        self._user_repo = user_repo
        self._max_page_size = max_page_size

    @staticmethod
    def _now_ms() -> int:
        return int(time.time() * 1000)

    @staticmethod
    def _object_id(match_id: MatchId) -> Optional[ObjectId]:
        return parse_object_id(match_id)

    async def _load(self, match_id: MatchId) -> MatchDocument:
        oid = self._object_id(match_id)
        match = await self._repository.get_by_id(oid) if oid is not None else None
        if match is None:
            raise NotFoundError("match not found")
        return match

    async def require_member(self, user_id: str, match_id: MatchId) -> MatchDocument:
        match = await self._load(match_id)
        if not includes_user(match, user_id):
            raise NotAMemberError("user is not part of this match")
        return match

    async def create_or_get_match(
        self,
        user_a: str,
        user_b: str,
        *,
        super_liked_by: Optional[str] = None,
    ) -> Tuple[MatchDocument, bool]:
        """Return the active match for the pair, creating it when absent.

        ``user_a`` is recorded as the user who completed the mutual like. The
        second element of the result tells whether this call created the match.
        Concurrent callers race on the pair's unique index; losers re-read the
        winner's document instead of failing. When the winner was closed before
        the re-read the pair key is free again and the insert is retried once; a
        pair blocked in the meantime yields the blocked match with ``created``
        False.
        """

        if not user_a or not user_b or user_a == user_b:
            raise InvalidInputError("a match needs two distinct users")

        key = pair_key(user_a, user_b)
        now_ms = self._now_ms()
        doc = {
            "users": [user_a, user_b],
            "pairKey": key,
            "activePairKey": key,
            "status": "active",
            "matchedBy": user_a,
            "isSuperLike": super_liked_by is not None,
            "superLikedBy": super_liked_by,
            "messageCount": 0,
            "lastSeq": 0,
            "unreadCount": {user_a: 0, user_b: 0},
            "isConversationStarted": False,
            "lastActivityAt": now_ms,
            "createdAt": now_ms,
            "updatedAt": now_ms,
        }
        for attempt in range(2):
            try:
                match = await self._repository.insert_active({**doc, "_id": ObjectId()})
                break
            except DuplicateKeyRepositoryError:
                existing = await self._repository.get_active_by_pair(key)
                if existing is not None:
                    return existing, False
                blocked = await self._repository.get_latest_by_pair(key, status="blocked")
                if blocked is not None:
                    return blocked, False
                LOGGER.info("Active match for pair=%s closed before re-read (attempt %s)", key, attempt + 1)
        else:
            raise ConflictError("match for this pair changed concurrently")

        LOGGER.info("Match created id=%s pair=%s", match.id, key)
        await redis_publish(
            "matches",
            {
                "type": "match.created",
                "matchId": str(match.id),
                "users": match.users,
                "matchedBy": match.matched_by,
                "isSuperLike": match.is_super_like,
                "at": now_ms,
            },
        )
        return match, True

    async def is_blocked_pair(self, user_a: str, user_b: str) -> bool:
        return await self._repository.count_by_pair(pair_key(user_a, user_b), status="blocked") > 0

    async def get_match(self, user_id: str, match_id: MatchId) -> MatchDocument:
        return await self.require_member(user_id, match_id)

    async def get_match_view(self, user_id: str, match_id: MatchId) -> MatchView:
        return await self.build_view(user_id, await self.require_member(user_id, match_id))

    async def list_matches(self, user_id: str, page: int = 1, page_size: int = 20) -> MatchListResponse:
        if page < 1 or page_size < 1:
            raise InvalidInputError("page and pageSize must be positive")
        size = min(page_size, self._max_page_size)
        docs = await self._repository.list_active_for_user(
            user_id, skip=(page - 1) * size, limit=size + 1
        )
        has_more = len(docs) > size
        return MatchListResponse(
            matches=await self.build_views(user_id, docs[:size]),
            page=page,
            page_size=size,
            has_more=has_more,
        )

    async def build_views(self, viewer_id: str, matches: List[MatchDocument]) -> List[MatchView]:
        """Render matches for ``viewer_id`` with the other member's public summary."""

        partners: Dict[str, UserDocument] = {}
        if self._user_repo is not None:
            other_ids = [uid for uid in (other_user(m, viewer_id) for m in matches) if uid]
            partners = await self._user_repo.get_many(other_ids)
        views = []
        for match in matches:
            partner = partners.get(other_user(match, viewer_id) or "")
            summary = None
            if partner is not None:
                summary = MatchPartner(
                    user_id=partner.user_id,
                    name=partner.name,
                    age=partner.age,
                    bio=partner.bio,
                    primary_photo=primary_photo(partner),
                    last_active=partner.last_active,
                )
            views.append(to_view(match, viewer_id, summary))
        return views

    async def build_view(self, viewer_id: str, match: MatchDocument) -> MatchView:
        return (await self.build_views(viewer_id, [match]))[0]

    async def unmatch(self, match_id: MatchId, requesting_user: str) -> MatchDocument:
        match = await self.require_member(requesting_user, match_id)
        if match.status != "active":
            return match
        now_ms = self._now_ms()
        updated = await self._repository.transition_status(
            match.id,
            from_statuses=("active",),
            updates={
                "status": "unmatched",
                "unmatchedBy": requesting_user,
                "unmatchedAt": now_ms,
                "updatedAt": now_ms,
            },
        )
        if updated is None:
            # Another caller already moved it out of active
            return await self._load(match.id)
        LOGGER.info("Match %s unmatched by %s", match.id, requesting_user)
        return updated

    async def block(self, match_id: MatchId, requesting_user: str) -> MatchDocument:
        match = await self.require_member(requesting_user, match_id)
        if match.status == "blocked":
            return match
        now_ms = self._now_ms()
        updated = await self._repository.transition_status(
            match.id,
            from_statuses=("active", "unmatched"),
            updates={
                "status": "blocked",
                "blockedBy": requesting_user,
                "blockedAt": now_ms,
                "updatedAt": now_ms,
            },
        )
        if updated is None:
            return await self._load(match.id)
        LOGGER.info("Match %s blocked by %s", match.id, requesting_user)
        return updated

    async def allocate_sequence(self, match_id: MatchId, sender_id: str) -> Optional[int]:
        oid = self._object_id(match_id)
        if oid is None:
            return None
        return await self._repository.allocate_sequence(oid, sender_id)

    async def record_message_sent(self, match_id: MatchId, receiver_id: str, *, now_ms: int) -> None:
        oid = self._object_id(match_id)
        if oid is None or not await self._repository.record_message_sent(
            oid, receiver_id=receiver_id, now_ms=now_ms
        ):
            LOGGER.warning("record_message_sent skipped: %s is not in match %s", receiver_id, match_id)

    async def increment_unread(self, match_id: MatchId, recipient_id: str) -> bool:
        oid = self._object_id(match_id)
        if oid is None or not await self._repository.increment_unread(oid, recipient_id):
            LOGGER.warning("increment_unread ignored: %s is not in match %s", recipient_id, match_id)
            return False
        return True

    async def decrement_unread(self, match_id: MatchId, recipient_id: str) -> bool:
        oid = self._object_id(match_id)
        if oid is None:
            return False
        return await self._repository.decrement_unread(oid, recipient_id)

    async def reset_unread(self, match_id: MatchId, recipient_id: str) -> bool:
        oid = self._object_id(match_id)
        if oid is None or not await self._repository.reset_unread(oid, recipient_id):
            LOGGER.warning("reset_unread ignored: %s is not in match %s", recipient_id, match_id)
            return False
        return True

    async def record_last_message(self, match_id: MatchId, summary: LastMessage) -> bool:
        """Overwrite the lastMessage snapshot unless a newer message is stored."""

        oid = self._object_id(match_id)
        if oid is None:
            return False
        applied = await self._repository.set_last_message(oid, summary.model_dump(by_alias=True))
        if not applied:
            LOGGER.debug("Stale lastMessage seq=%s ignored for match %s", summary.seq, match_id)
        return applied

    async def refresh_last_message_text(self, match_id: MatchId, message_id: str, text: str) -> bool:
        oid = self._object_id(match_id)
        if oid is None:
            return False
        return await self._repository.update_last_message_text(oid, message_id, text)


def get_match_service() -> MatchService:
    settings = get_settings()
    db = get_db()
    return MatchService(
        MatchRepository(db),
        user_repo=UserRepository(db),
        max_page_size=settings.matches_max_page_size,
    )


__all__ = ["MatchService", "get_match_service"]
