from __future__ import annotations

from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ..utils.geo import coerce_float
from .identifiers import PyObjectId

Gender = Literal["male", "female", "non-binary", "other"]
GenderPreference = Literal["male", "female", "non-binary", "everyone"]
SwipeDecision = Literal["like", "pass", "superLike"]

SWIPE_DECISIONS: Tuple[str, ...] = ("like", "pass", "superLike")
POSITIVE_DECISIONS: Tuple[str, ...] = ("like", "superLike")

DEFAULT_MIN_AGE = 18
DEFAULT_MAX_AGE = 35
DEFAULT_MAX_DISTANCE_KM = 50.0


class AgeRange(BaseModel):
    min: int = Field(default=DEFAULT_MIN_AGE, ge=18, le=100)
    max: int = Field(default=DEFAULT_MAX_AGE, ge=18, le=100)


class Preferences(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    age_range: AgeRange = Field(default_factory=AgeRange, alias="ageRange")
    # Kilometers
    max_distance: float = Field(default=DEFAULT_MAX_DISTANCE_KM, ge=1, le=500, alias="maxDistance")
    show_me: Optional[GenderPreference] = Field(default=None, alias="showMe")


class Location(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    lat: Optional[float] = None
    lon: Optional[float] = None
    coordinates: Optional[Dict[str, object]] = None
    address: Optional[str] = None


class Photo(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    url: str
    is_primary: bool = Field(default=False, alias="isPrimary")


class SwipeEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    decision: SwipeDecision
    swiped_at: int = Field(alias="swipedAt")


class UserDocument(BaseModel):
    """User document as held by the profile store."""

    model_config = ConfigDict(populate_by_name=True, extra="allow", arbitrary_types_allowed=True)

    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    user_id: str = Field(alias="userId", min_length=1)
    name: Optional[str] = None
    bio: Optional[str] = None
    age: Optional[int] = Field(default=None, ge=18, le=100)
    gender: Optional[Gender] = None
    interested_in: GenderPreference = Field(default="everyone", alias="interestedIn")
    location: Optional[Location] = None
    preferences: Preferences = Field(default_factory=Preferences)
    photos: List[Photo] = Field(default_factory=list)
    is_active: bool = Field(default=True, alias="isActive")
    last_active: Optional[int] = Field(default=None, alias="lastActive")
    # Keyed by target user id; one entry per target keeps the lists disjoint
    swipes: Dict[str, SwipeEntry] = Field(default_factory=dict)
    created_at: Optional[int] = Field(default=None, alias="createdAt")
    updated_at: Optional[int] = Field(default=None, alias="updatedAt")


class SwipeHistory(BaseModel):
    """The three logical swipe lists as (target id, swipedAt) pairs, oldest first."""

    model_config = ConfigDict(populate_by_name=True)

    liked: List[Tuple[str, int]] = Field(default_factory=list)
    passed: List[Tuple[str, int]] = Field(default_factory=list)
    super_liked: List[Tuple[str, int]] = Field(default_factory=list, alias="superLiked")


def swipe_history(user: UserDocument) -> SwipeHistory:
    buckets: Dict[str, List[Tuple[str, int]]] = {"like": [], "pass": [], "superLike": []}
    for target_id, entry in user.swipes.items():
        buckets[entry.decision].append((target_id, entry.swiped_at))
    for entries in buckets.values():
        entries.sort(key=lambda item: (item[1], item[0]))
    return SwipeHistory(liked=buckets["like"], passed=buckets["pass"], super_liked=buckets["superLike"])


def is_usable_user_key(user_id: str) -> bool:
    """User ids become field names in swipe, unread and reaction maps."""
    return bool(user_id) and "." not in user_id and not user_id.startswith("$")


def swiped_user_ids(user: UserDocument) -> List[str]:
    return list(user.swipes.keys())


def decision_toward(user: UserDocument, target_id: str) -> Optional[str]:
    entry = user.swipes.get(target_id)
    return entry.decision if entry else None


def coordinates_of(user: UserDocument) -> Optional[Tuple[float, float]]:
    """Return (lat, lon) when the user has a valid location."""
    loc = user.location
    if loc is None:
        return None
    lat = coerce_float(loc.lat, min_val=-90.0, max_val=90.0)
    lon = coerce_float(loc.lon, min_val=-180.0, max_val=180.0)
    if (lat is None or lon is None) and isinstance(loc.coordinates, dict):
        coords = loc.coordinates.get("coordinates")
        if isinstance(coords, (list, tuple)) and len(coords) >= 2:
            lon = coerce_float(coords[0], min_val=-180.0, max_val=180.0)
            lat = coerce_float(coords[1], min_val=-90.0, max_val=90.0)
    if lat is None or lon is None:
        return None
    return lat, lon


def shown_gender(user: UserDocument) -> str:
    return user.preferences.show_me or user.interested_in


def accepts_gender(user: UserDocument, gender: Optional[str]) -> bool:
    wanted = shown_gender(user)
    if wanted == "everyone":
        return True
    return gender == wanted


def accepts_age(user: UserDocument, age: Optional[int]) -> bool:
    if age is None:
        return False
    age_range = user.preferences.age_range
    lo, hi = sorted((age_range.min, age_range.max))
    return lo <= age <= hi


def max_distance_m(user: UserDocument) -> float:
    return float(user.preferences.max_distance) * 1000.0


def primary_photo(user: UserDocument) -> Optional[str]:
    for photo in user.photos:
        if photo.is_primary and photo.url:
            return photo.url
    return user.photos[0].url if user.photos else None


__all__ = [
    "AgeRange",
    "Location",
    "Photo",
    "Preferences",
    "SwipeEntry",
    "SwipeHistory",
    "UserDocument",
    "SWIPE_DECISIONS",
    "POSITIVE_DECISIONS",
    "accepts_age",
    "accepts_gender",
    "coordinates_of",
    "decision_toward",
    "is_usable_user_key",
    "max_distance_m",
    "primary_photo",
    "shown_gender",
    "swipe_history",
    "swiped_user_ids",
]
