from __future__ import annotations

import asyncio

import pytest

from match_engine.db.collections import MATCHES_COLLECTION
from match_engine.models.user import decision_toward
from match_engine.repositories.match import MatchRepository
from match_engine.repositories.user import UserRepository
from match_engine.services.exceptions import InvalidInputError, NotFoundError
from match_engine.services.match_service import MatchService
from match_engine.services.swipe_service import SwipeService


def _service(db) -> SwipeService:
    return SwipeService(UserRepository(db), MatchService(MatchRepository(db)))


@pytest.mark.asyncio
async def test_one_sided_like_does_not_match(db, make_user) -> None:
    await make_user("alice")
    await make_user("bob")

    result = await _service(db).record_swipe("alice", "bob", "like")

    assert result.matched is False
    assert result.match_id is None
    assert await db[MATCHES_COLLECTION].count_documents({}) == 0


@pytest.mark.asyncio
async def test_mutual_like_creates_single_match(db, make_user) -> None:
    await make_user("alice")
    await make_user("bob")
    service = _service(db)

    await service.record_swipe("alice", "bob", "like")
    result = await service.record_swipe("bob", "alice", "like")

    assert result.matched is True
    match = await db[MATCHES_COLLECTION].find_one({})
    assert str(match["_id"]) == result.match_id
    assert match["matchedBy"] == "bob"
    assert sorted(match["users"]) == ["alice", "bob"]
    assert match["status"] == "active"
    assert match["isSuperLike"] is False

    again = await service.record_swipe("bob", "alice", "like")
    assert again.match_id == result.match_id
    assert await db[MATCHES_COLLECTION].count_documents({}) == 1


@pytest.mark.asyncio
async def test_reswipe_overwrites_previous_decision(db, make_user) -> None:
    await make_user("alice")
    await make_user("bob")
    service = _service(db)

    await service.record_swipe("alice", "bob", "like")
    await service.record_swipe("alice", "bob", "pass")

    history = await service.get_swipe_history("alice")
    assert history.liked == []
    assert [target for target, _ in history.passed] == ["bob"]
    assert history.super_liked == []

    user = await UserRepository(db).get_by_user_id("alice")
    assert decision_toward(user, "bob") == "pass"


@pytest.mark.asyncio
async def test_pass_never_matches(db, make_user) -> None:
    await make_user("alice")
    await make_user("bob")
    service = _service(db)

    await service.record_swipe("bob", "alice", "like")
    result = await service.record_swipe("alice", "bob", "pass")

    assert result.matched is False
    assert await db[MATCHES_COLLECTION].count_documents({}) == 0


@pytest.mark.asyncio
async def test_super_like_flags_the_match(db, make_user) -> None:
    await make_user("alice")
    await make_user("bob")
    service = _service(db)

    await service.record_swipe("alice", "bob", "superLike")
    result = await service.record_swipe("bob", "alice", "like")

    match = await db[MATCHES_COLLECTION].find_one({})
    assert result.matched is True
    assert match["isSuperLike"] is True
    assert match["superLikedBy"] == "alice"


@pytest.mark.asyncio
async def test_concurrent_mutual_likes_produce_one_match(db, make_user) -> None:
    await make_user("alice")
    await make_user("bob")
    service = _service(db)

    results = await asyncio.gather(
        service.record_swipe("alice", "bob", "like"),
        service.record_swipe("bob", "alice", "like"),
    )

    assert any(r.matched for r in results)
    assert len({r.match_id for r in results if r.matched}) == 1
    assert await db[MATCHES_COLLECTION].count_documents({}) == 1


@pytest.mark.asyncio
async def test_blocked_pair_does_not_rematch(db, make_user) -> None:
    await make_user("alice")
    await make_user("bob")
    service = _service(db)
    matches = MatchService(MatchRepository(db))

    await service.record_swipe("alice", "bob", "like")
    first = await service.record_swipe("bob", "alice", "like")
    await matches.block(first.match_id, "alice")

    again = await service.record_swipe("bob", "alice", "like")

    assert again.matched is False
    assert await db[MATCHES_COLLECTION].count_documents({"status": "active"}) == 0


@pytest.mark.asyncio
async def test_swipe_validation(db, make_user) -> None:
    await make_user("alice")
    service = _service(db)

    with pytest.raises(InvalidInputError):
        await service.record_swipe("alice", "alice", "like")
    with pytest.raises(InvalidInputError):
        await service.record_swipe("alice", "bob", "love")
    with pytest.raises(NotFoundError):
        await service.record_swipe("alice", "ghost", "like")
    with pytest.raises(NotFoundError):
        await service.record_swipe("ghost", "alice", "like")

    user = await UserRepository(db).get_by_user_id("alice")
    assert user.swipes == {}


@pytest.mark.asyncio
async def test_mutual_like_racing_a_block_reports_no_match(db, make_user, monkeypatch) -> None:
    await make_user("alice")
    await make_user("bob")
    repo = MatchRepository(db)
    matches = MatchService(repo)
    service = SwipeService(UserRepository(db), matches)
    await service.record_swipe("alice", "bob", "like")
    first = await service.record_swipe("bob", "alice", "like")
    reread = repo.get_active_by_pair

    async def _block_then_reread(key: str):
        await matches.block(first.match_id, "alice")
        return await reread(key)

    monkeypatch.setattr(repo, "get_active_by_pair", _block_then_reread)

    again = await service.record_swipe("alice", "bob", "superLike")

    assert again.matched is False
    assert again.match_id is None


@pytest.mark.asyncio
async def test_ids_unusable_as_field_names_are_rejected(db, make_user) -> None:
    await make_user("alice")
    service = _service(db)

    with pytest.raises(InvalidInputError):
        await service.record_swipe("a.b", "alice", "like")
    with pytest.raises(InvalidInputError):
        await service.record_swipe("alice", "$bob", "like")
