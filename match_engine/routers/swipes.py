from fastapi import APIRouter, Depends

from ..models.swipes import SwipeHistoryResponse, SwipeRequest, SwipeResult
from ..services.swipe_service import SwipeService, get_swipe_service
from .auth import require_current_user_id

router = APIRouter()


@router.post("/swipes", response_model=SwipeResult)
async def create_swipe(
    body: SwipeRequest,
    user_id: str = Depends(require_current_user_id),
    service: SwipeService = Depends(get_swipe_service),
):
    return await service.record_swipe(user_id, body.target_id, body.decision)


@router.get("/swipes/history", response_model=SwipeHistoryResponse)
async def swipe_history(
    user_id: str = Depends(require_current_user_id),
    service: SwipeService = Depends(get_swipe_service),
):
    history = await service.get_swipe_history(user_id)
    return SwipeHistoryResponse(
        liked=[target for target, _ in history.liked],
        passed=[target for target, _ in history.passed],
        super_liked=[target for target, _ in history.super_liked],
    )
