from fastapi import APIRouter, Depends, Query, status

from ..models.message import (
    MessageCreateRequest,
    MessageDocument,
    MessageEditRequest,
    MessageListResponse,
    MessageReactionRequest,
    ReadReceipt,
    UnreadTotal,
)
from ..services.message_service import MessageService, get_message_service
from .auth import require_current_user_id

router = APIRouter()


@router.post(
    "/matches/{match_id}/messages",
    response_model=MessageDocument,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    match_id: str,
    body: MessageCreateRequest,
    user_id: str = Depends(require_current_user_id),
    service: MessageService = Depends(get_message_service),
):
    return await service.send(user_id, match_id, body)


@router.get("/matches/{match_id}/messages", response_model=MessageListResponse)
async def list_messages(
    match_id: str,
    page: int = Query(1),
    page_size: int = Query(50, alias="pageSize"),
    user_id: str = Depends(require_current_user_id),
    service: MessageService = Depends(get_message_service),
):
    return await service.list_messages(user_id, match_id, page=page, page_size=page_size)


@router.post("/matches/{match_id}/read", response_model=ReadReceipt)
async def mark_match_read(
    match_id: str,
    user_id: str = Depends(require_current_user_id),
    service: MessageService = Depends(get_message_service),
):
    return await service.mark_all_read_for_match(user_id, match_id)


@router.get("/messages/unread-count", response_model=UnreadTotal)
async def unread_count(
    user_id: str = Depends(require_current_user_id),
    service: MessageService = Depends(get_message_service),
):
    return UnreadTotal(unread=await service.count_unread_messages(user_id))


@router.post("/messages/{message_id}/delivered", response_model=MessageDocument)
async def mark_delivered(
    message_id: str,
    user_id: str = Depends(require_current_user_id),
    service: MessageService = Depends(get_message_service),
):
    return await service.mark_delivered(user_id, message_id)


@router.post("/messages/{message_id}/read", response_model=MessageDocument)
async def mark_read(
    message_id: str,
    user_id: str = Depends(require_current_user_id),
    service: MessageService = Depends(get_message_service),
):
    return await service.mark_read(user_id, message_id)


@router.post("/messages/{message_id}/failed", response_model=MessageDocument)
async def mark_failed(
    message_id: str,
    user_id: str = Depends(require_current_user_id),
    service: MessageService = Depends(get_message_service),
):
    return await service.mark_failed(user_id, message_id)


@router.patch("/messages/{message_id}", response_model=MessageDocument)
async def edit_message(
    message_id: str,
    body: MessageEditRequest,
    user_id: str = Depends(require_current_user_id),
    service: MessageService = Depends(get_message_service),
):
    return await service.edit(user_id, message_id, body.new_text)


@router.put("/messages/{message_id}/reaction", response_model=MessageDocument)
async def react(
    message_id: str,
    body: MessageReactionRequest,
    user_id: str = Depends(require_current_user_id),
    service: MessageService = Depends(get_message_service),
):
    return await service.react(user_id, message_id, body.emoji)


@router.delete("/messages/{message_id}/reaction", response_model=MessageDocument)
async def unreact(
    message_id: str,
    user_id: str = Depends(require_current_user_id),
    service: MessageService = Depends(get_message_service),
):
    return await service.unreact(user_id, message_id)
