from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .identifiers import PyObjectId

MessageType = Literal["text", "image", "gif"]
MessageStatus = Literal["sent", "delivered", "read", "failed"]

MESSAGE_TYPES: Tuple[str, ...] = ("text", "image", "gif")
MAX_TEXT_LENGTH = 1000
MAX_CAPTION_LENGTH = 200
REACTION_EMOJIS: Tuple[str, ...] = ("❤️", "😂", "😮", "😢", "😡", "👍", "👎")

# Forward-only progression; "failed" branches off "sent" and is terminal
STATUS_RANK: Dict[str, int] = {"sent": 0, "delivered": 1, "read": 2}


class ImageContent(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    url: Optional[str] = None
    public_id: Optional[str] = Field(default=None, alias="publicId")
    caption: Optional[str] = None


class GifContent(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    url: Optional[str] = None
    title: Optional[str] = None


class MessageContent(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    text: Optional[str] = None
    image: Optional[ImageContent] = None
    gif: Optional[GifContent] = None


class Reaction(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    emoji: str
    reacted_at: int = Field(alias="reactedAt")


class MessageDocument(BaseModel):
    """Canonical message document stored in MongoDB."""

    model_config = ConfigDict(populate_by_name=True, extra="allow", arbitrary_types_allowed=True)

    id: PyObjectId = Field(alias="_id")
    match_id: str = Field(alias="matchId")
    sender_id: str = Field(alias="senderId")
    receiver_id: str = Field(alias="receiverId")
    message_type: MessageType = Field(default="text", alias="messageType")
    content: MessageContent = Field(default_factory=MessageContent)
    status: MessageStatus = "sent"
    seq: int
    sent_at: int = Field(alias="sentAt")
    delivered_at: Optional[int] = Field(default=None, alias="deliveredAt")
    read_at: Optional[int] = Field(default=None, alias="readAt")
    failed_at: Optional[int] = Field(default=None, alias="failedAt")
    is_edited: bool = Field(default=False, alias="isEdited")
    edited_at: Optional[int] = Field(default=None, alias="editedAt")
    original_text: Optional[str] = Field(default=None, alias="originalText")
    reply_to: Optional[str] = Field(default=None, alias="replyTo")
    reactions: Dict[str, Reaction] = Field(default_factory=dict)
    temp_id: Optional[str] = Field(default=None, alias="tempId")
    created_at: int = Field(alias="createdAt")


class MessageCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    message_type: str = Field(default="text", alias="messageType")
    text: Optional[str] = None
    image: Optional[ImageContent] = None
    gif: Optional[GifContent] = None
    reply_to: Optional[str] = Field(default=None, alias="replyTo")
    temp_id: Optional[str] = Field(default=None, alias="tempId")


class MessageEditRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    new_text: str = Field(..., alias="newText")


class MessageReactionRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    emoji: str


class MessageListResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    messages: List[MessageDocument] = Field(default_factory=list)
    page: int
    page_size: int = Field(alias="pageSize")
    has_more: bool = Field(default=False, alias="hasMore")


class ReadReceipt(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    match_id: str = Field(alias="matchId")
    updated: int = 0
    unread_count: int = Field(default=0, alias="unreadCount")


class UnreadTotal(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    unread: int = 0


def preview_text(message: MessageDocument) -> Optional[str]:
    """Text shown in match list views for this message."""
    content = message.content
    if message.message_type == "text":
        return content.text
    if message.message_type == "image":
        return (content.image.caption if content.image else None) or None
    if message.message_type == "gif":
        return (content.gif.title if content.gif else None) or None
    return None


def can_advance(current: str, target: str) -> bool:
    if current == "failed":
        return False
    if target == "failed":
        return current == "sent"
    return STATUS_RANK.get(target, -1) > STATUS_RANK.get(current, -1)


__all__ = [
    "GifContent",
    "ImageContent",
    "MAX_CAPTION_LENGTH",
    "MAX_TEXT_LENGTH",
    "MESSAGE_TYPES",
    "MessageContent",
    "MessageCreateRequest",
    "MessageDocument",
    "MessageEditRequest",
    "MessageListResponse",
    "MessageReactionRequest",
    "MessageStatus",
    "MessageType",
    "REACTION_EMOJIS",
    "Reaction",
    "ReadReceipt",
    "STATUS_RANK",
    "UnreadTotal",
    "can_advance",
    "preview_text",
]
