from fastapi import APIRouter, Depends, Query

from ..models.match import MatchListResponse, MatchView
from ..services.match_service import MatchService, get_match_service
from .auth import require_current_user_id

router = APIRouter()


@router.get("/matches", response_model=MatchListResponse)
async def list_matches(
    page: int = Query(1),
    page_size: int = Query(20, alias="pageSize"),
    user_id: str = Depends(require_current_user_id),
    service: MatchService = Depends(get_match_service),
):
    return await service.list_matches(user_id, page=page, page_size=page_size)


@router.get("/matches/{match_id}", response_model=MatchView)
async def get_match(
    match_id: str,
    user_id: str = Depends(require_current_user_id),
    service: MatchService = Depends(get_match_service),
):
    return await service.get_match_view(user_id, match_id)


@router.post("/matches/{match_id}/unmatch", response_model=MatchView)
async def unmatch(
    match_id: str,
    user_id: str = Depends(require_current_user_id),
    service: MatchService = Depends(get_match_service),
):
    match = await service.unmatch(match_id, user_id)
    return await service.build_view(user_id, match)


@router.post("/matches/{match_id}/block", response_model=MatchView)
async def block(
    match_id: str,
    user_id: str = Depends(require_current_user_id),
    service: MatchService = Depends(get_match_service),
):
    match = await service.block(match_id, user_id)
    return await service.build_view(user_id, match)
