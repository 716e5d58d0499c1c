from __future__ import annotations

from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .identifiers import PyObjectId

MatchStatus = Literal["active", "unmatched", "blocked"]


class LastMessage(BaseModel):
    """Denormalized snapshot of the newest message, kept for list views."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    message_id: Optional[str] = Field(default=None, alias="messageId")
    text: Optional[str] = None
    sender: str
    timestamp: int
    message_type: str = Field(default="text", alias="messageType")
    seq: int = 0


class MatchDocument(BaseModel):
    """Canonical match document stored in MongoDB."""

    model_config = ConfigDict(populate_by_name=True, extra="allow", arbitrary_types_allowed=True)

    id: PyObjectId = Field(alias="_id")
    users: List[str]
    pair_key: str = Field(alias="pairKey")
    active_pair_key: Optional[str] = Field(default=None, alias="activePairKey")
    status: MatchStatus = "active"
    matched_by: str = Field(alias="matchedBy")
    is_super_like: bool = Field(default=False, alias="isSuperLike")
    super_liked_by: Optional[str] = Field(default=None, alias="superLikedBy")
    last_message: Optional[LastMessage] = Field(default=None, alias="lastMessage")
    message_count: int = Field(default=0, ge=0, alias="messageCount")
    last_seq: int = Field(default=0, ge=0, alias="lastSeq")
    unread_count: Dict[str, int] = Field(default_factory=dict, alias="unreadCount")
    is_conversation_started: bool = Field(default=False, alias="isConversationStarted")
    unmatched_by: Optional[str] = Field(default=None, alias="unmatchedBy")
    unmatched_at: Optional[int] = Field(default=None, alias="unmatchedAt")
    blocked_by: Optional[str] = Field(default=None, alias="blockedBy")
    blocked_at: Optional[int] = Field(default=None, alias="blockedAt")
    last_activity_at: Optional[int] = Field(default=None, alias="lastActivityAt")
    created_at: int = Field(alias="createdAt")
    updated_at: int = Field(alias="updatedAt")


class MatchPartner(BaseModel):
    """Public summary of the other member, embedded in match views."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")
    name: Optional[str] = None
    age: Optional[int] = None
    bio: Optional[str] = None
    primary_photo: Optional[str] = Field(default=None, alias="primaryPhoto")
    last_active: Optional[int] = Field(default=None, alias="lastActive")


class MatchView(BaseModel):
    """Match as seen by one of its members."""

    model_config = ConfigDict(populate_by_name=True)

    match_id: str = Field(alias="matchId")
    users: List[str]
    other_user_id: Optional[str] = Field(default=None, alias="otherUserId")
    other_user: Optional[MatchPartner] = Field(default=None, alias="otherUser")
    status: MatchStatus
    matched_by: str = Field(alias="matchedBy")
    is_super_like: bool = Field(default=False, alias="isSuperLike")
    last_message: Optional[LastMessage] = Field(default=None, alias="lastMessage")
    message_count: int = Field(default=0, alias="messageCount")
    unread_count: int = Field(default=0, alias="unreadCount")
    is_conversation_started: bool = Field(default=False, alias="isConversationStarted")
    created_at: int = Field(alias="createdAt")


class MatchListResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    matches: List[MatchView] = Field(default_factory=list)
    page: int
    page_size: int = Field(alias="pageSize")
    has_more: bool = Field(default=False, alias="hasMore")


def canonical_pair(user_a: str, user_b: str) -> Tuple[str, str]:
    return (user_a, user_b) if user_a <= user_b else (user_b, user_a)


def pair_key(user_a: str, user_b: str) -> str:
    lo, hi = canonical_pair(user_a, user_b)
    return f"{lo}|{hi}"


def includes_user(match: MatchDocument, user_id: str) -> bool:
    return user_id in match.users


def other_user(match: MatchDocument, user_id: str) -> Optional[str]:
    if not includes_user(match, user_id):
        return None
    return next((uid for uid in match.users if uid != user_id), None)


def unread_count_for(match: MatchDocument, user_id: str) -> int:
    return int(match.unread_count.get(user_id, 0))


def to_view(match: MatchDocument, viewer_id: str, partner: Optional[MatchPartner] = None) -> MatchView:
    return MatchView(
        match_id=str(match.id),
        users=list(match.users),
        other_user_id=other_user(match, viewer_id),
        other_user=partner,
        status=match.status,
        matched_by=match.matched_by,
        is_super_like=match.is_super_like,
        last_message=match.last_message,
        message_count=match.message_count,
        unread_count=unread_count_for(match, viewer_id),
        is_conversation_started=match.is_conversation_started,
        created_at=match.created_at,
    )


__all__ = [
    "LastMessage",
    "MatchDocument",
    "MatchListResponse",
    "MatchPartner",
    "MatchStatus",
    "MatchView",
    "canonical_pair",
    "includes_user",
    "other_user",
    "pair_key",
    "to_view",
    "unread_count_for",
]
