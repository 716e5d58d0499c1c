from __future__ import annotations

import pytest
import pytest_asyncio
from bson import ObjectId

from match_engine.db.collections import MATCHES_COLLECTION, MESSAGES_COLLECTION
from match_engine.models.message import MessageCreateRequest
from match_engine.repositories.match import MatchRepository
from match_engine.repositories.message import MessageRepository
from match_engine.services.exceptions import (
    ForbiddenError,
    InvalidInputError,
    MatchNotActiveError,
    NotAMemberError,
    NotFoundError,
)
from match_engine.services.match_service import MatchService
from match_engine.services.message_service import MessageService


def _text(text: str, **extra) -> MessageCreateRequest:
    return MessageCreateRequest(messageType="text", text=text, **extra)


@pytest.fixture
def matches(db) -> MatchService:
    return MatchService(MatchRepository(db))


@pytest.fixture
def messages(db, matches) -> MessageService:
    return MessageService(MessageRepository(db), matches)


@pytest_asyncio.fixture
async def match_id(matches) -> str:
    match, _ = await matches.create_or_get_match("alice", "bob")
    return str(match.id)


async def _stored_match(db, match_id: str) -> dict:
    return await db[MATCHES_COLLECTION].find_one({"_id": ObjectId(match_id)})


@pytest.mark.asyncio
async def test_send_updates_match_counters(db, messages, match_id) -> None:
    first = await messages.send("alice", match_id, _text("  hey there  "))
    second = await messages.send("alice", match_id, _text("you up?"))

    assert first.content.text == "hey there"
    assert first.status == "sent"
    assert first.receiver_id == "bob"
    assert (first.seq, second.seq) == (1, 2)

    match = await _stored_match(db, match_id)
    assert match["messageCount"] == 2
    assert match["unreadCount"] == {"alice": 0, "bob": 2}
    assert match["isConversationStarted"] is True
    assert match["lastMessage"]["text"] == "you up?"
    assert match["lastMessage"]["seq"] == 2
    assert match["lastMessage"]["sender"] == "alice"


@pytest.mark.asyncio
async def test_text_length_boundary(db, messages, match_id) -> None:
    ok = await messages.send("alice", match_id, _text("x" * 1000))
    assert len(ok.content.text) == 1000

    with pytest.raises(InvalidInputError):
        await messages.send("alice", match_id, _text("x" * 1001))
    with pytest.raises(InvalidInputError):
        await messages.send("alice", match_id, _text("   "))

    assert await db[MESSAGES_COLLECTION].count_documents({}) == 1


@pytest.mark.asyncio
async def test_non_member_send_has_no_side_effects(db, messages, match_id) -> None:
    with pytest.raises(NotAMemberError):
        await messages.send("mallory", match_id, _text("hi"))

    assert await db[MESSAGES_COLLECTION].count_documents({}) == 0
    match = await _stored_match(db, match_id)
    assert match["messageCount"] == 0
    assert match["lastSeq"] == 0
    assert match.get("lastMessage") is None


@pytest.mark.asyncio
async def test_send_requires_active_match(messages, matches, match_id) -> None:
    await matches.unmatch(match_id, "bob")

    with pytest.raises(MatchNotActiveError):
        await messages.send("alice", match_id, _text("still there?"))
    with pytest.raises(NotFoundError):
        await messages.send("alice", "0123456789abcdef01234567", _text("hello"))


@pytest.mark.asyncio
async def test_image_and_gif_content(db, messages, match_id) -> None:
    with pytest.raises(InvalidInputError):
        await messages.send("alice", match_id, MessageCreateRequest(messageType="image", image={}))
    with pytest.raises(InvalidInputError):
        await messages.send(
            "alice",
            match_id,
            MessageCreateRequest(
                messageType="image",
                image={"url": "https://img.example/a.jpg", "caption": "c" * 201},
            ),
        )
    with pytest.raises(InvalidInputError):
        await messages.send("alice", match_id, MessageCreateRequest(messageType="video", text="x"))

    image = await messages.send(
        "alice",
        match_id,
        MessageCreateRequest(
            messageType="image",
            image={"url": "https://img.example/a.jpg", "caption": "sunset"},
        ),
    )
    gif = await messages.send(
        "bob", match_id, MessageCreateRequest(messageType="gif", gif={"url": "https://gif.example/x.gif"})
    )

    assert image.content.image.caption == "sunset"
    assert gif.content.gif.url == "https://gif.example/x.gif"
    match = await _stored_match(db, match_id)
    assert match["lastMessage"]["messageType"] == "gif"
    assert match["lastMessage"]["seq"] == 2


@pytest.mark.asyncio
async def test_reply_must_reference_same_match(messages, matches, match_id) -> None:
    other, _ = await matches.create_or_get_match("alice", "carol")
    elsewhere = await messages.send("alice", other.id, _text("hi carol"))
    original = await messages.send("bob", match_id, _text("hi alice"))

    reply = await messages.send("alice", match_id, _text("hi bob", replyTo=str(original.id)))
    assert reply.reply_to == str(original.id)

    with pytest.raises(InvalidInputError):
        await messages.send("alice", match_id, _text("wrong thread", replyTo=str(elsewhere.id)))


@pytest.mark.asyncio
async def test_status_only_moves_forward(messages, match_id) -> None:
    message = await messages.send("alice", match_id, _text("hello"))

    with pytest.raises(ForbiddenError):
        await messages.mark_delivered("alice", str(message.id))

    delivered = await messages.mark_delivered("bob", str(message.id))
    assert delivered.status == "delivered"
    assert delivered.delivered_at is not None

    read = await messages.mark_read("bob", str(message.id))
    assert read.status == "read"

    again = await messages.mark_delivered("bob", str(message.id))
    assert again.status == "read"

    failed = await messages.mark_failed("alice", str(message.id))
    assert failed.status == "read"


@pytest.mark.asyncio
async def test_failed_only_from_sent(messages, match_id) -> None:
    message = await messages.send("alice", match_id, _text("hello"))

    with pytest.raises(ForbiddenError):
        await messages.mark_failed("bob", str(message.id))

    failed = await messages.mark_failed("alice", str(message.id))
    assert failed.status == "failed"
    assert failed.failed_at is not None

    after = await messages.mark_read("bob", str(message.id))
    assert after.status == "failed"


@pytest.mark.asyncio
async def test_mark_read_decrements_unread_once(db, messages, match_id) -> None:
    first = await messages.send("alice", match_id, _text("one"))
    await messages.send("alice", match_id, _text("two"))

    await messages.mark_read("bob", str(first.id))
    await messages.mark_read("bob", str(first.id))

    match = await _stored_match(db, match_id)
    assert match["unreadCount"]["bob"] == 1


@pytest.mark.asyncio
async def test_mark_all_read_zeroes_only_the_reader(db, messages, match_id) -> None:
    await messages.send("alice", match_id, _text("one"))
    await messages.send("alice", match_id, _text("two"))
    await messages.send("bob", match_id, _text("three"))

    receipt = await messages.mark_all_read_for_match("bob", match_id)

    assert receipt.updated == 2
    assert receipt.unread_count == 0
    match = await _stored_match(db, match_id)
    assert match["unreadCount"] == {"alice": 1, "bob": 0}
    assert await messages.count_unread_messages("bob") == 0
    assert await messages.count_unread_messages("alice") == 1

    with pytest.raises(NotAMemberError):
        await messages.mark_all_read_for_match("mallory", match_id)


@pytest.mark.asyncio
async def test_edit_keeps_first_original_text(db, messages, match_id) -> None:
    message = await messages.send("alice", match_id, _text("helo"))

    await messages.edit("alice", str(message.id), "hello")
    edited = await messages.edit("alice", str(message.id), "hello!")

    assert edited.content.text == "hello!"
    assert edited.original_text == "helo"
    assert edited.is_edited is True
    assert edited.edited_at is not None
    match = await _stored_match(db, match_id)
    assert match["lastMessage"]["text"] == "hello!"

    with pytest.raises(ForbiddenError):
        await messages.edit("bob", str(message.id), "hijack")
    with pytest.raises(InvalidInputError):
        await messages.edit("alice", str(message.id), "x" * 1001)


@pytest.mark.asyncio
async def test_only_text_messages_are_editable(messages, match_id) -> None:
    image = await messages.send(
        "alice",
        match_id,
        MessageCreateRequest(messageType="image", image={"url": "https://img.example/a.jpg"}),
    )

    with pytest.raises(ForbiddenError):
        await messages.edit("alice", str(image.id), "caption")


@pytest.mark.asyncio
async def test_reactions_overwrite_per_user(messages, match_id) -> None:
    message = await messages.send("alice", match_id, _text("hello"))

    await messages.react("bob", str(message.id), "😂")
    reacted = await messages.react("bob", str(message.id), "❤️")
    reacted = await messages.react("alice", str(message.id), "👍")

    assert {uid: r.emoji for uid, r in reacted.reactions.items()} == {"bob": "❤️", "alice": "👍"}

    cleared = await messages.unreact("bob", str(message.id))
    assert set(cleared.reactions) == {"alice"}

    with pytest.raises(InvalidInputError):
        await messages.react("bob", str(message.id), "🦄")
    with pytest.raises(NotAMemberError):
        await messages.react("mallory", str(message.id), "👍")


@pytest.mark.asyncio
async def test_list_messages_newest_first(messages, match_id) -> None:
    for idx in range(5):
        await messages.send("alice" if idx % 2 else "bob", match_id, _text(f"msg {idx}"))

    first = await messages.list_messages("alice", match_id, page=1, page_size=2)
    last = await messages.list_messages("bob", match_id, page=3, page_size=2)

    assert [m.seq for m in first.messages] == [5, 4]
    assert first.has_more is True
    assert [m.seq for m in last.messages] == [1]
    assert last.has_more is False

    with pytest.raises(NotAMemberError):
        await messages.list_messages("mallory", match_id)
