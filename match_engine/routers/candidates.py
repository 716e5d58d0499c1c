from fastapi import APIRouter, Depends, Query

from ..models.candidates import CandidatePage
from ..services.discovery_service import DiscoveryService, get_discovery_service
from .auth import require_current_user_id

router = APIRouter()


@router.get("/candidates", response_model=CandidatePage)
async def list_candidates(
    page: int = Query(1),
    page_size: int = Query(20, alias="pageSize"),
    user_id: str = Depends(require_current_user_id),
    service: DiscoveryService = Depends(get_discovery_service),
):
    return await service.list_candidates(user_id, page=page, page_size=page_size)
