"""Repository helpers for match persistence."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from ..db.collections import MATCHES_COLLECTION
from ..models.match import MatchDocument
from .exceptions import DuplicateKeyRepositoryError

LOGGER = logging.getLogger("uvicorn.error")


class MatchRepository:
    """MongoDB access layer for match documents."""

    def __init__(self, database: AsyncIOMotorDatabase) -> None:
        self._database = database
        self._collection: AsyncIOMotorCollection = database[MATCHES_COLLECTION]

    @property
    def collection(self) -> AsyncIOMotorCollection:
        return self._collection

    async def insert_active(self, doc: Dict[str, Any]) -> MatchDocument:
        """Insert a new active match; the pair's unique index rejects a second one."""

        try:
            await self._collection.insert_one(doc)
        except DuplicateKeyError as exc:
            LOGGER.debug("Active match already exists for pair=%s", doc.get("activePairKey"))
            raise DuplicateKeyRepositoryError(
                "active match already exists", key=doc.get("activePairKey")
            ) from exc
        return MatchDocument(**doc)

    async def get_by_id(self, match_id: ObjectId) -> Optional[MatchDocument]:
        doc = await self._collection.find_one({"_id": match_id})
        return MatchDocument(**doc) if doc else None

    async def get_active_by_pair(self, pair_key: str) -> Optional[MatchDocument]:
        doc = await self._collection.find_one({"activePairKey": pair_key})
        return MatchDocument(**doc) if doc else None

    async def get_latest_by_pair(self, pair_key: str, *, status: Optional[str] = None) -> Optional[MatchDocument]:
        query: Dict[str, Any] = {"pairKey": pair_key}
        if status:
            query["status"] = status
        cursor = self._collection.find(query).sort([("createdAt", DESCENDING), ("_id", DESCENDING)]).limit(1)
        async for doc in cursor:
            return MatchDocument(**doc)
        return None

    async def count_by_pair(self, pair_key: str, *, status: Optional[str] = None) -> int:
        query: Dict[str, Any] = {"pairKey": pair_key}
        if status:
            query["status"] = status
        return await self._collection.count_documents(query)

    async def transition_status(
        self,
        match_id: ObjectId,
        *,
        from_statuses: Iterable[str],
        updates: Dict[str, Any],
    ) -> Optional[MatchDocument]:
        """Move a match out of one of ``from_statuses``; releases the pair key."""

        doc = await self._collection.find_one_and_update(
            {"_id": match_id, "status": {"$in": list(from_statuses)}},
            {"$set": updates, "$unset": {"activePairKey": ""}},
            return_document=ReturnDocument.AFTER,
        )
        return MatchDocument(**doc) if doc else None

    async def allocate_sequence(self, match_id: ObjectId, sender_id: str) -> Optional[int]:
        """Reserve the next message sequence number of an active match."""

        doc = await self._collection.find_one_and_update(
            {"_id": match_id, "status": "active", "users": sender_id},
            {"$inc": {"lastSeq": 1}},
            projection={"lastSeq": 1},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            return None
        return int(doc.get("lastSeq") or 0)

    async def record_message_sent(self, match_id: ObjectId, *, receiver_id: str, now_ms: int) -> bool:
        result = await self._collection.update_one(
            {"_id": match_id, "users": receiver_id},
            {
                "$inc": {"messageCount": 1, f"unreadCount.{receiver_id}": 1},
                "$set": {
                    "isConversationStarted": True,
                    "lastActivityAt": now_ms,
                    "updatedAt": now_ms,
                },
            },
        )
        return bool(result.matched_count)

    async def set_last_message(self, match_id: ObjectId, summary: Dict[str, Any]) -> bool:
        """Store ``summary`` unless a newer message (higher seq) is already recorded."""

        seq = int(summary.get("seq") or 0)
        result = await self._collection.update_one(
            {
                "_id": match_id,
                "$or": [
                    {"lastMessage": None},
                    {"lastMessage.seq": {"$lt": seq}},
                ],
            },
            {"$set": {"lastMessage": summary}},
        )
        return bool(result.modified_count)

    async def update_last_message_text(self, match_id: ObjectId, message_id: str, text: str) -> bool:
        result = await self._collection.update_one(
            {"_id": match_id, "lastMessage.messageId": message_id},
            {"$set": {"lastMessage.text": text}},
        )
        return bool(result.modified_count)

    async def increment_unread(self, match_id: ObjectId, user_id: str) -> bool:
        result = await self._collection.update_one(
            {"_id": match_id, "users": user_id},
            {"$inc": {f"unreadCount.{user_id}": 1}},
        )
        return bool(result.matched_count)

    async def decrement_unread(self, match_id: ObjectId, user_id: str) -> bool:
        result = await self._collection.update_one(
            {"_id": match_id, "users": user_id, f"unreadCount.{user_id}": {"$gt": 0}},
            {"$inc": {f"unreadCount.{user_id}": -1}},
        )
        return bool(result.matched_count)

    async def reset_unread(self, match_id: ObjectId, user_id: str) -> bool:
        result = await self._collection.update_one(
            {"_id": match_id, "users": user_id},
            {"$set": {f"unreadCount.{user_id}": 0}},
        )
        return bool(result.matched_count)

    async def list_active_for_user(self, user_id: str, *, skip: int, limit: int) -> List[MatchDocument]:
        cursor = (
            self._collection.find({"users": user_id, "status": "active"})
            .sort([("lastActivityAt", DESCENDING), ("_id", DESCENDING)])
            .skip(skip)
            .limit(limit)
        )
        return [MatchDocument(**doc) async for doc in cursor]


__all__ = ["MatchRepository"]
