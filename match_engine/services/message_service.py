from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse

from bson import ObjectId

from ..config import get_settings
from ..db import get_db
from ..models.identifiers import parse_object_id
from ..models.match import LastMessage, other_user
from ..models.message import (
    MAX_CAPTION_LENGTH,
    MAX_TEXT_LENGTH,
    MESSAGE_TYPES,
    REACTION_EMOJIS,
    MessageCreateRequest,
    MessageDocument,
    MessageListResponse,
    ReadReceipt,
    can_advance,
    preview_text,
)
from ..redis_bus import publish as redis_publish
from ..repositories.match import MatchRepository
from ..repositories.message import MessageRepository
from .exceptions import (
    ForbiddenError,
    InvalidInputError,
    MatchNotActiveError,
    NotFoundError,
)
from .match_service import MatchId, MatchService

LOGGER = logging.getLogger("uvicorn.error")


def _clean_url(value: Any, max_len: int = 512) -> Optional[str]:
    if not isinstance(value, str):
        return None
    url_text = value.strip()
    if not url_text or len(url_text) > max_len:
        return None
    parsed = urlparse(url_text)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        return None
    return url_text


def validate_text(raw: Any) -> str:
    text = raw.strip() if isinstance(raw, str) else ""
    if not text:
        raise InvalidInputError("text message must have text content")
    if len(text) > MAX_TEXT_LENGTH:
        raise InvalidInputError(f"message cannot exceed {MAX_TEXT_LENGTH} characters")
    return text


def validate_content(payload: MessageCreateRequest) -> Tuple[str, Dict[str, Any]]:
    """Return (messageType, content document) or raise InvalidInputError."""

    message_type = payload.message_type
    if message_type not in MESSAGE_TYPES:
        raise InvalidInputError(f"messageType must be one of {', '.join(MESSAGE_TYPES)}")

    if message_type == "text":
        return message_type, {"text": validate_text(payload.text)}

    if message_type == "image":
        image = payload.image
        url = _clean_url(image.url if image else None)
        if not url:
            raise InvalidInputError("image message must have an image URL")
        caption = image.caption.strip() if isinstance(image.caption, str) else None
        if caption and len(caption) > MAX_CAPTION_LENGTH:
            raise InvalidInputError(f"caption cannot exceed {MAX_CAPTION_LENGTH} characters")
        image_doc: Dict[str, Any] = {"url": url}
        if image.public_id:
            image_doc["publicId"] = image.public_id
        if caption:
            image_doc["caption"] = caption
        return message_type, {"image": image_doc}

    gif = payload.gif
    url = _clean_url(gif.url if gif else None)
    if not url:
        raise InvalidInputError("GIF message must have a GIF URL")
    gif_doc: Dict[str, Any] = {"url": url}
    if isinstance(gif.title, str) and gif.title.strip():
        gif_doc["title"] = gif.title.strip()[:200]
    return message_type, {"gif": gif_doc}


class MessageService:
    """Message creation, delivery state, edits and reactions within a match."""

    def __init__(
        self,
        message_repo: MessageRepository,
        match_service: MatchService,
        *,
        max_page_size: int = 50,
    ) -> None:
        self._repository = message_repo
        self._matches = match_service
        self._max_page_size = max_page_size

    @staticmethod
    def _now_ms() -> int:
        return int(time.time() * 1000)

    async def _load(self, message_id: str) -> MessageDocument:
        oid = parse_object_id(message_id)
        message = await self._repository.get_by_id(oid) if oid is not None else None
        if message is None:
            raise NotFoundError("message not found")
        return message

    async def send(
        self,
        user_id: str,
        match_id: MatchId,
        payload: MessageCreateRequest,
    ) -> MessageDocument:
        match = await self._matches.require_member(user_id, match_id)
        if match.status != "active":
            raise MatchNotActiveError(f"match is {match.status}")

        message_type, content = validate_content(payload)
        match_key = str(match.id)

        reply_to: Optional[str] = None
        if payload.reply_to:
            reply_oid = parse_object_id(payload.reply_to)
            if reply_oid is None or not await self._repository.exists_in_match(match_key, reply_oid):
                raise InvalidInputError("replyTo must reference a message in this match")
            reply_to = str(reply_oid)

        seq = await self._matches.allocate_sequence(match.id, user_id)
        if seq is None:
            current = await self._matches.require_member(user_id, match.id)
            raise MatchNotActiveError(f"match is {current.status}")

        receiver_id = other_user(match, user_id)
        now_ms = self._now_ms()
        doc = {
            "_id": ObjectId(),
            "matchId": match_key,
            "senderId": user_id,
            "receiverId": receiver_id,
            "messageType": message_type,
            "content": content,
            "status": "sent",
            "seq": seq,
            "sentAt": now_ms,
            "isEdited": False,
            "replyTo": reply_to,
            "reactions": {},
            "tempId": payload.temp_id,
            "createdAt": now_ms,
        }
        message = await self._repository.insert(doc)
        LOGGER.debug("Message %s stored in match %s seq=%s", message.id, match_key, seq)

        await self._matches.record_message_sent(match.id, receiver_id, now_ms=now_ms)
        await self._matches.record_last_message(
            match.id,
            LastMessage(
                message_id=str(message.id),
                text=preview_text(message),
                sender=user_id,
                timestamp=now_ms,
                message_type=message_type,
                seq=seq,
            ),
        )
        await redis_publish(
            "messages",
            {
                "type": "message.sent",
                "matchId": match_key,
                "messageId": str(message.id),
                "senderId": user_id,
                "receiverId": receiver_id,
                "seq": seq,
                "at": now_ms,
            },
        )
        return message

    async def mark_delivered(self, user_id: str, message_id: str) -> MessageDocument:
        message = await self._load(message_id)
        if message.receiver_id != user_id:
            raise ForbiddenError("only the receiver can acknowledge delivery")
        if not can_advance(message.status, "delivered"):
            return message
        updated = await self._repository.advance_status(
            message.id,
            from_statuses=("sent",),
            status="delivered",
            timestamp_field="deliveredAt",
            now_ms=self._now_ms(),
        )
        return updated or await self._load(message_id)

    async def mark_failed(self, user_id: str, message_id: str) -> MessageDocument:
        message = await self._load(message_id)
        if message.sender_id != user_id:
            raise ForbiddenError("only the sender can report a failed delivery")
        if not can_advance(message.status, "failed"):
            return message
        updated = await self._repository.advance_status(
            message.id,
            from_statuses=("sent",),
            status="failed",
            timestamp_field="failedAt",
            now_ms=self._now_ms(),
        )
        return updated or await self._load(message_id)

    async def mark_read(self, user_id: str, message_id: str) -> MessageDocument:
        message = await self._load(message_id)
        if message.receiver_id != user_id:
            raise ForbiddenError("only the receiver can mark a message read")
        if not can_advance(message.status, "read"):
            return message
        updated = await self._repository.advance_status(
            message.id,
            from_statuses=("sent", "delivered"),
            status="read",
            timestamp_field="readAt",
            now_ms=self._now_ms(),
        )
        if updated is None:
            return await self._load(message_id)
        await self._matches.decrement_unread(message.match_id, user_id)
        return updated

    async def mark_all_read_for_match(self, user_id: str, match_id: MatchId) -> ReadReceipt:
        match = await self._matches.require_member(user_id, match_id)
        match_key = str(match.id)
        updated = await self._repository.mark_all_read(match_key, user_id, now_ms=self._now_ms())
        await self._matches.reset_unread(match.id, user_id)
        return ReadReceipt(match_id=match_key, updated=updated, unread_count=0)

    async def edit(self, user_id: str, message_id: str, new_text: str) -> MessageDocument:
        message = await self._load(message_id)
        if message.sender_id != user_id:
            raise ForbiddenError("only the sender can edit a message")
        if message.message_type != "text":
            raise ForbiddenError("only text messages can be edited")
        match = await self._matches.require_member(user_id, message.match_id)
        if match.status != "active":
            raise MatchNotActiveError(f"match is {match.status}")

        text = validate_text(new_text)
        original = message.content.text if message.original_text is None else None
        updated = await self._repository.update_text(
            message.id,
            new_text=text,
            edited_at=self._now_ms(),
            original_text=original,
        )
        if updated is None:
            raise NotFoundError("message not found")
        await self._matches.refresh_last_message_text(match.id, str(message.id), text)
        return updated

    async def react(self, user_id: str, message_id: str, emoji: str) -> MessageDocument:
        if emoji not in REACTION_EMOJIS:
            raise InvalidInputError(f"emoji must be one of {' '.join(REACTION_EMOJIS)}")
        message = await self._load(message_id)
        match = await self._matches.require_member(user_id, message.match_id)
        if match.status != "active":
            raise MatchNotActiveError(f"match is {match.status}")
        updated = await self._repository.set_reaction(
            message.id, user_id, emoji=emoji, reacted_at=self._now_ms()
        )
        if updated is None:
            raise NotFoundError("message not found")
        return updated

    async def unreact(self, user_id: str, message_id: str) -> MessageDocument:
        message = await self._load(message_id)
        await self._matches.require_member(user_id, message.match_id)
        updated = await self._repository.remove_reaction(message.id, user_id)
        if updated is None:
            raise NotFoundError("message not found")
        return updated

    async def list_messages(
        self,
        user_id: str,
        match_id: MatchId,
        page: int = 1,
        page_size: int = 50,
    ) -> MessageListResponse:
        if page < 1 or page_size < 1:
            raise InvalidInputError("page and pageSize must be positive")
        match = await self._matches.require_member(user_id, match_id)
        size = min(page_size, self._max_page_size)
        docs = await self._repository.list_for_match(
            str(match.id), skip=(page - 1) * size, limit=size + 1
        )
        return MessageListResponse(
            messages=docs[:size],
            page=page,
            page_size=size,
            has_more=len(docs) > size,
        )

    async def count_unread_messages(self, user_id: str) -> int:
        return await self._repository.count_unread_for_user(user_id)


def get_message_service() -> MessageService:
    settings = get_settings()
    db = get_db()
    return MessageService(
        MessageRepository(db),
        MatchService(MatchRepository(db), max_page_size=settings.matches_max_page_size),
        max_page_size=settings.messages_max_page_size,
    )


__all__ = [
    "MessageService",
    "get_message_service",
    "validate_content",
    "validate_text",
]
