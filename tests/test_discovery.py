from __future__ import annotations

import pytest

from match_engine.repositories.user import UserRepository
from match_engine.services.discovery_service import DiscoveryService
from match_engine.services.exceptions import (
    InvalidInputError,
    NotFoundError,
    PreconditionFailedError,
)

# Roughly 10 km north of the default Berlin point
NEAR_LAT = 52.61
FAR_LAT = 53.42


@pytest.mark.asyncio
async def test_candidates_are_filtered_and_sorted_by_distance(db, make_user) -> None:
    await make_user("alice", gender="female", age_range=(20, 35), max_distance_km=50)
    await make_user("bob", gender="male", age=30)
    await make_user("carl", gender="male", age=25, lat=NEAR_LAT)
    await make_user("dave", gender="male", age=29, lat=FAR_LAT)
    await make_user("eve", gender="female", age=28, isActive=False)
    await make_user("frank", gender="male", age=50)
    await make_user("gina", gender="female", age=24)

    repo = UserRepository(db)
    await repo.record_swipe(source_id="alice", target_id="gina", decision="pass", swiped_at=1)

    page = await DiscoveryService(repo).list_candidates("alice")

    assert [c.user_id for c in page.items] == ["bob", "carl"]
    assert page.items[0].distance_km == 0.0
    assert 9.0 < page.items[1].distance_km < 11.0
    assert page.has_more is False


@pytest.mark.asyncio
async def test_show_me_limits_candidate_gender(db, make_user) -> None:
    await make_user("alice", show_me="male")
    await make_user("bob", gender="male")
    await make_user("cora", gender="female")
    await make_user("nico", gender="non-binary")

    page = await DiscoveryService(UserRepository(db)).list_candidates("alice")

    assert [c.user_id for c in page.items] == ["bob"]


@pytest.mark.asyncio
async def test_swiped_users_never_reappear(db, make_user) -> None:
    await make_user("alice")
    for uid in ("u1", "u2", "u3"):
        await make_user(uid)
    repo = UserRepository(db)
    await repo.record_swipe(source_id="alice", target_id="u1", decision="like", swiped_at=1)
    await repo.record_swipe(source_id="alice", target_id="u2", decision="superLike", swiped_at=2)

    page = await DiscoveryService(repo).list_candidates("alice")

    assert [c.user_id for c in page.items] == ["u3"]


@pytest.mark.asyncio
async def test_equal_distances_paginate_by_user_id(db, make_user) -> None:
    await make_user("alice")
    for uid in ("c", "a1", "b"):
        await make_user(uid)
    service = DiscoveryService(UserRepository(db))

    first = await service.list_candidates("alice", page=1, page_size=2)
    second = await service.list_candidates("alice", page=2, page_size=2)

    assert [c.user_id for c in first.items] == ["a1", "b"]
    assert first.has_more is True
    assert [c.user_id for c in second.items] == ["c"]
    assert second.has_more is False


@pytest.mark.asyncio
async def test_page_size_is_capped(db, make_user) -> None:
    await make_user("alice")
    for idx in range(4):
        await make_user(f"user-{idx}")

    page = await DiscoveryService(UserRepository(db), max_page_size=3).list_candidates(
        "alice", page=1, page_size=100
    )

    assert page.page_size == 3
    assert len(page.items) == 3
    assert page.has_more is True


@pytest.mark.asyncio
async def test_candidates_across_the_antimeridian(db, make_user) -> None:
    await make_user("alice", lat=0.0, lon=179.95)
    await make_user("west", lat=0.0, lon=-179.95)
    await make_user("east", lat=0.0, lon=179.90)

    page = await DiscoveryService(UserRepository(db)).list_candidates("alice")

    assert [c.user_id for c in page.items] == ["east", "west"]
    assert page.items[1].distance_km < 12


@pytest.mark.asyncio
async def test_symmetric_discovery_requires_mutual_acceptance(db, make_user) -> None:
    await make_user("alice", gender="female", age=30)
    await make_user("bob", gender="male", show_me="female")
    await make_user("carl", gender="male", show_me="male")
    await make_user("dan", gender="male", age_range=(18, 25))

    repo = UserRepository(db)
    relaxed = await DiscoveryService(repo).list_candidates("alice")
    strict = await DiscoveryService(repo, symmetric=True).list_candidates("alice")

    assert [c.user_id for c in relaxed.items] == ["bob", "carl", "dan"]
    assert [c.user_id for c in strict.items] == ["bob"]


@pytest.mark.asyncio
async def test_primary_photo_is_exposed(db, make_user) -> None:
    await make_user("alice")
    await make_user(
        "bob",
        photos=[
            {"url": "https://img.example/1.jpg"},
            {"url": "https://img.example/2.jpg", "isPrimary": True},
        ],
    )

    page = await DiscoveryService(UserRepository(db)).list_candidates("alice")

    assert page.items[0].primary_photo == "https://img.example/2.jpg"


@pytest.mark.asyncio
async def test_discovery_errors(db, make_user) -> None:
    await make_user("nomad", lat=None, lon=None)
    service = DiscoveryService(UserRepository(db))

    with pytest.raises(PreconditionFailedError):
        await service.list_candidates("nomad")
    with pytest.raises(NotFoundError):
        await service.list_candidates("ghost")
    with pytest.raises(InvalidInputError):
        await service.list_candidates("nomad", page=0)
    with pytest.raises(InvalidInputError):
        await service.list_candidates("nomad", page_size=0)
