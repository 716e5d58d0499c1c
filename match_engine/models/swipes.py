from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class SwipeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    target_id: str = Field(alias="targetId", min_length=1)
    # Validated by the swipe service so bad values map to invalid_input
    decision: str


class SwipeResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: Literal["ok"] = "ok"
    decision: str
    matched: bool = False
    match_id: Optional[str] = Field(default=None, alias="matchId")


class SwipeHistoryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    liked: List[str] = Field(default_factory=list)
    passed: List[str] = Field(default_factory=list)
    super_liked: List[str] = Field(default_factory=list, alias="superLiked")


__all__ = ["SwipeHistoryResponse", "SwipeRequest", "SwipeResult"]
