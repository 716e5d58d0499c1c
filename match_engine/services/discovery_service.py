from __future__ import annotations

import logging
from typing import Any, Dict, List, Tuple

from ..config import get_settings
from ..db import get_db
from ..models.candidates import Candidate, CandidatePage
from ..models.user import (
    UserDocument,
    accepts_age,
    accepts_gender,
    coordinates_of,
    max_distance_m,
    primary_photo,
    shown_gender,
    swiped_user_ids,
)
from ..repositories.user import UserRepository
from .exceptions import InvalidInputError, NotFoundError, PreconditionFailedError

LOGGER = logging.getLogger("uvicorn.error")


class DiscoveryService:
    """Builds the candidate pool a user can swipe on."""

    def __init__(
        self,
        user_repo: UserRepository,
        *,
        max_page_size: int = 20,
        symmetric: bool = False,
    ) -> None:
        self._user_repo = user_repo
        self._max_page_size = max_page_size
        self._symmetric = symmetric

    @staticmethod
    def _preference_filter(requester: UserDocument) -> Dict[str, Any]:
        """Preference, exclusion and active-only stages pushed down to the store."""

        age_range = requester.preferences.age_range
        lo, hi = sorted((age_range.min, age_range.max))
        query: Dict[str, Any] = {
            "age": {"$gte": lo, "$lte": hi},
            "userId": {"$nin": [requester.user_id, *swiped_user_ids(requester)]},
            "isActive": {"$ne": False},
        }
        wanted = shown_gender(requester)
        if wanted != "everyone":
            query["gender"] = wanted
        return query

    @staticmethod
    def _accepts_requester(candidate: UserDocument, requester: UserDocument, distance_m: float) -> bool:
        return (
            accepts_gender(candidate, requester.gender)
            and accepts_age(candidate, requester.age)
            and distance_m <= max_distance_m(candidate)
        )

    async def list_candidates(
        self,
        requester_id: str,
        page: int = 1,
        page_size: int = 20,
    ) -> CandidatePage:
        if page < 1 or page_size < 1:
            raise InvalidInputError("page and pageSize must be positive")
        size = min(page_size, self._max_page_size)

        requester = await self._user_repo.get_by_user_id(requester_id)
        if requester is None:
            raise NotFoundError("user not found")
        coords = coordinates_of(requester)
        if coords is None:
            raise PreconditionFailedError("location must be set before discovering candidates")

        lat, lon = coords
        pool: List[Tuple[UserDocument, float]] = await self._user_repo.near(
            lat,
            lon,
            max_distance_m(requester),
            extra_filter=self._preference_filter(requester),
        )
        if self._symmetric:
            pool = [(user, dist) for user, dist in pool if self._accepts_requester(user, requester, dist)]

        start = (page - 1) * size
        window = pool[start:start + size]
        LOGGER.debug(
            "Discovery for %s: pool=%s page=%s size=%s", requester_id, len(pool), page, size
        )
        return CandidatePage(
            items=[
                Candidate(
                    user_id=user.user_id,
                    name=user.name,
                    age=user.age,
                    gender=user.gender,
                    bio=user.bio,
                    primary_photo=primary_photo(user),
                    distance_km=round(dist / 1000.0, 2),
                )
                for user, dist in window
            ],
            page=page,
            page_size=size,
            has_more=len(pool) > start + size,
        )


def get_discovery_service() -> DiscoveryService:
    settings = get_settings()
    return DiscoveryService(
        UserRepository(get_db()),
        max_page_size=settings.discovery_max_page_size,
        symmetric=settings.discovery_symmetric,
    )


__all__ = ["DiscoveryService", "get_discovery_service"]
