"""Profile store access: user documents, swipe history and geographic lookups."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ReturnDocument

from ..db.collections import USERS_COLLECTION
from ..models.user import UserDocument, coordinates_of
from ..utils.geo import bounding_box_filter, build_geojson_point, haversine_distance_m
from .exceptions import NotFoundRepositoryError

LOGGER = logging.getLogger("uvicorn.error")


class UserRepository:
    """MongoDB access layer for user documents."""

    def __init__(self, database: AsyncIOMotorDatabase) -> None:
        self._database = database
        self._collection: AsyncIOMotorCollection = database[USERS_COLLECTION]

    @property
    def collection(self) -> AsyncIOMotorCollection:
        return self._collection

    async def get_by_user_id(self, user_id: str) -> Optional[UserDocument]:
        doc = await self._collection.find_one({"userId": user_id})
        return UserDocument(**doc) if doc else None

    async def get_many(self, user_ids: List[str]) -> Dict[str, UserDocument]:
        """Fetch several users in one query, keyed by ``userId``; swipe maps are left out."""

        if not user_ids:
            return {}
        cursor = self._collection.find({"userId": {"$in": sorted(set(user_ids))}}, projection={"swipes": 0})
        return {doc["userId"]: UserDocument(**doc) async for doc in cursor}

    async def exists(self, user_id: str) -> bool:
        doc = await self._collection.find_one({"userId": user_id}, projection={"_id": 1})
        return doc is not None

    async def save(self, user: UserDocument, *, now_ms: int) -> UserDocument:
        """Create or replace the profile fields of a user.

        Swipe history is only written on insert; afterwards it belongs to the
        swipe processor.
        """

        fields = user.model_dump(by_alias=True, exclude_none=True, exclude={"id", "swipes"})
        coords = coordinates_of(user)
        if coords is not None:
            lat, lon = coords
            location = dict(fields.get("location") or {})
            location.update({"lat": lat, "lon": lon, "coordinates": build_geojson_point(lat, lon)})
            fields["location"] = location
        fields["updatedAt"] = now_ms
        fields.pop("createdAt", None)

        doc = await self._collection.find_one_and_update(
            {"userId": user.user_id},
            {
                "$set": fields,
                "$setOnInsert": {
                    "_id": ObjectId(),
                    "createdAt": user.created_at or now_ms,
                    "swipes": {
                        target: entry.model_dump(by_alias=True)
                        for target, entry in user.swipes.items()
                    },
                },
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        if not doc:  # pragma: no cover - Motor returns the document on upsert
            raise NotFoundRepositoryError("user upsert failed")
        return UserDocument(**doc)

    async def record_swipe(
        self,
        *,
        source_id: str,
        target_id: str,
        decision: str,
        swiped_at: int,
    ) -> bool:
        """Overwrite the source's decision toward target in a single write."""

        result = await self._collection.update_one(
            {"userId": source_id},
            {
                "$set": {
                    f"swipes.{target_id}": {"decision": decision, "swipedAt": swiped_at},
                    "lastActive": swiped_at,
                }
            },
        )
        return bool(result.matched_count)

    async def get_decision(self, user_id: str, target_id: str) -> Optional[str]:
        """Return the decision ``user_id`` recorded toward ``target_id``, if any."""

        doc = await self._collection.find_one(
            {"userId": user_id},
            projection={"_id": 0, f"swipes.{target_id}": 1},
        )
        entry = ((doc or {}).get("swipes") or {}).get(target_id)
        if isinstance(entry, dict):
            return entry.get("decision")
        return None

    async def near(
        self,
        lat: float,
        lon: float,
        max_distance_m: float,
        *,
        extra_filter: Optional[Dict[str, Any]] = None,
    ) -> List[Tuple[UserDocument, float]]:
        """Return users within ``max_distance_m`` of the point, nearest first.

        Ties on distance are broken by ``userId`` so pages are stable.
        """

        clauses: List[Dict[str, Any]] = [bounding_box_filter(lat, lon, max_distance_m)]
        if extra_filter:
            clauses.append(extra_filter)
        query = {"$and": clauses} if len(clauses) > 1 else clauses[0]

        results: List[Tuple[UserDocument, float]] = []
        async for raw in self._collection.find(query, projection={"swipes": 0}):
            user = UserDocument(**raw)
            coords = coordinates_of(user)
            if coords is None:
                continue
            distance = haversine_distance_m(lat, lon, coords[0], coords[1])
            if distance is None or distance > max_distance_m:
                continue
            results.append((user, distance))

        results.sort(key=lambda item: (item[1], item[0].user_id))
        LOGGER.debug("near(%s, %s, %sm) -> %s users", lat, lon, int(max_distance_m), len(results))
        return results


__all__ = ["UserRepository"]
