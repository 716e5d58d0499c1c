"""Repository helpers for match messages."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument

from ..db.collections import MESSAGES_COLLECTION
from ..models.message import MessageDocument

LOGGER = logging.getLogger("uvicorn.error")

UNREAD_STATUSES = ("sent", "delivered")


class MessageRepository:
    """MongoDB access layer for message documents."""

    def __init__(self, database: AsyncIOMotorDatabase) -> None:
        self._database = database
        self._collection: AsyncIOMotorCollection = database[MESSAGES_COLLECTION]

    @property
    def collection(self) -> AsyncIOMotorCollection:
        return self._collection

    async def insert(self, doc: Dict[str, Any]) -> MessageDocument:
        await self._collection.insert_one(doc)
        return MessageDocument(**doc)

    async def get_by_id(self, message_id: ObjectId) -> Optional[MessageDocument]:
        doc = await self._collection.find_one({"_id": message_id})
        return MessageDocument(**doc) if doc else None

    async def exists_in_match(self, match_id: str, message_id: ObjectId) -> bool:
        doc = await self._collection.find_one(
            {"_id": message_id, "matchId": match_id},
            projection={"_id": 1},
        )
        return doc is not None

    async def advance_status(
        self,
        message_id: ObjectId,
        *,
        from_statuses: Iterable[str],
        status: str,
        timestamp_field: str,
        now_ms: int,
    ) -> Optional[MessageDocument]:
        """Conditionally move a message to ``status``; None when no transition applied."""

        doc = await self._collection.find_one_and_update(
            {"_id": message_id, "status": {"$in": list(from_statuses)}},
            {"$set": {"status": status, timestamp_field: now_ms}},
            return_document=ReturnDocument.AFTER,
        )
        return MessageDocument(**doc) if doc else None

    async def mark_all_read(self, match_id: str, reader_id: str, *, now_ms: int) -> int:
        result = await self._collection.update_many(
            {
                "matchId": match_id,
                "receiverId": reader_id,
                "status": {"$in": list(UNREAD_STATUSES)},
            },
            {"$set": {"status": "read", "readAt": now_ms}},
        )
        return int(result.modified_count)

    async def update_text(
        self,
        message_id: ObjectId,
        *,
        new_text: str,
        edited_at: int,
        original_text: Optional[str] = None,
    ) -> Optional[MessageDocument]:
        updates: Dict[str, Any] = {
            "content.text": new_text,
            "isEdited": True,
            "editedAt": edited_at,
        }
        if original_text is not None:
            updates["originalText"] = original_text
        doc = await self._collection.find_one_and_update(
            {"_id": message_id},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
        )
        return MessageDocument(**doc) if doc else None

    async def set_reaction(
        self,
        message_id: ObjectId,
        user_id: str,
        *,
        emoji: str,
        reacted_at: int,
    ) -> Optional[MessageDocument]:
        doc = await self._collection.find_one_and_update(
            {"_id": message_id},
            {"$set": {f"reactions.{user_id}": {"emoji": emoji, "reactedAt": reacted_at}}},
            return_document=ReturnDocument.AFTER,
        )
        return MessageDocument(**doc) if doc else None

    async def remove_reaction(self, message_id: ObjectId, user_id: str) -> Optional[MessageDocument]:
        doc = await self._collection.find_one_and_update(
            {"_id": message_id},
            {"$unset": {f"reactions.{user_id}": ""}},
            return_document=ReturnDocument.AFTER,
        )
        return MessageDocument(**doc) if doc else None

    async def list_for_match(self, match_id: str, *, skip: int, limit: int) -> List[MessageDocument]:
        cursor = (
            self._collection.find({"matchId": match_id})
            .sort("seq", DESCENDING)
            .skip(skip)
            .limit(limit)
        )
        return [MessageDocument(**doc) async for doc in cursor]

    async def count_unread_for_user(self, user_id: str) -> int:
        return await self._collection.count_documents(
            {"receiverId": user_id, "status": {"$in": list(UNREAD_STATUSES)}}
        )


__all__ = ["MessageRepository", "UNREAD_STATUSES"]
