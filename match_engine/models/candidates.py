from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Candidate(BaseModel):
    """Public card shown to a requester during discovery."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")
    name: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    bio: Optional[str] = None
    primary_photo: Optional[str] = Field(default=None, alias="primaryPhoto")
    distance_km: float = Field(alias="distanceKm")


class CandidatePage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: List[Candidate] = Field(default_factory=list)
    page: int
    page_size: int = Field(alias="pageSize")
    has_more: bool = Field(default=False, alias="hasMore")


__all__ = ["Candidate", "CandidatePage"]
