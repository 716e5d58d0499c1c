from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from .collections import MATCHES_COLLECTION, MESSAGES_COLLECTION, USERS_COLLECTION


async def ensure_user_indexes(db: AsyncIOMotorDatabase) -> None:
    collection = db[USERS_COLLECTION]
    await collection.create_index("userId", name="users_user_id_unique", unique=True)
    await collection.create_index(
        [("location.lat", ASCENDING), ("location.lon", ASCENDING)],
        name="users_location_box_idx",
    )
    await collection.create_index(
        [("isActive", ASCENDING), ("age", ASCENDING), ("gender", ASCENDING)],
        name="users_discovery_idx",
    )


async def ensure_match_indexes(db: AsyncIOMotorDatabase) -> None:
    collection = db[MATCHES_COLLECTION]
    # Present only while the match is active, so one active match per pair
    await collection.create_index(
        "activePairKey",
        name="matches_active_pair_unique",
        unique=True,
        sparse=True,
    )
    await collection.create_index("pairKey", name="matches_pair_key_idx")
    await collection.create_index(
        [("users", ASCENDING), ("status", ASCENDING)],
        name="matches_users_status_idx",
    )
    await collection.create_index(
        [("lastMessage.timestamp", DESCENDING)],
        name="matches_last_message_idx",
    )


async def ensure_message_indexes(db: AsyncIOMotorDatabase) -> None:
    collection = db[MESSAGES_COLLECTION]
    await collection.create_index(
        [("matchId", ASCENDING), ("seq", DESCENDING)],
        name="messages_match_seq_idx",
    )
    await collection.create_index(
        [("matchId", ASCENDING), ("receiverId", ASCENDING), ("status", ASCENDING)],
        name="messages_match_receiver_status_idx",
    )
    await collection.create_index(
        [("receiverId", ASCENDING), ("status", ASCENDING)],
        name="messages_receiver_status_idx",
    )


__all__ = ["ensure_user_indexes", "ensure_match_indexes", "ensure_message_indexes"]
