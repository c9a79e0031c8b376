"""Message API endpoints."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from .. import tasks
from ..database import User, get_session
from ..dependencies import get_current_user, get_message_service
from ..realtime import manager
from ..schemas.message import (
    MessageCreate,
    MessageListResponse,
    MessageResponse,
    MessageUpdate,
)
from ..services import MessageService
from ..services.message_service import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE


router = APIRouter(tags=["Messages"])


@router.get("/chats/{chat_id}/messages", response_model=MessageListResponse)
async def list_messages(
    chat_id: UUID,
    cursor: Optional[UUID] = Query(None, description="Return messages older than this message"),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    message_service: MessageService = Depends(get_message_service),
):
    """
    Get a page of chat history.

    Messages come oldest first. Pass ``next_cursor`` back as ``cursor`` to
    load the page before this one.
    """
    return await message_service.list_messages(chat_id, current_user, cursor=cursor, limit=limit)


@router.post(
    "/chats/{chat_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    chat_id: UUID,
    request: MessageCreate,
    current_user: User = Depends(get_current_user),
    message_service: MessageService = Depends(get_message_service),
    session: AsyncSession = Depends(get_session),
):
    """
    Send a message to a chat.

    Image messages get their picture through the upload presign/confirm flow.
    """
    message = await message_service.send_message(
        chat_id,
        current_user,
        message_type=request.type,
        content=request.content,
        reply_to_id=request.reply_to_id,
    )
    await session.commit()

    response = MessageResponse.model_validate(message)
    await manager.emit_to_room(chat_id, "receive-message", response)
    return response


@router.get("/messages/{message_id}", response_model=MessageResponse)
async def get_message(
    message_id: UUID,
    current_user: User = Depends(get_current_user),
    message_service: MessageService = Depends(get_message_service),
):
    """Get a single message."""
    message = await message_service.get_message(message_id, current_user)
    return MessageResponse.model_validate(message)


@router.put("/messages/{message_id}", response_model=MessageResponse)
async def edit_message(
    message_id: UUID,
    request: MessageUpdate,
    current_user: User = Depends(get_current_user),
    message_service: MessageService = Depends(get_message_service),
    session: AsyncSession = Depends(get_session),
):
    """Edit the text of your own message."""
    message = await message_service.edit_message(message_id, current_user, request.content)
    await session.commit()

    response = MessageResponse.model_validate(message)
    await manager.emit_to_room(message.chat_id, "message-updated", response)
    return response


@router.delete("/messages/{message_id}", response_model=MessageResponse)
async def delete_message(
    message_id: UUID,
    current_user: User = Depends(get_current_user),
    message_service: MessageService = Depends(get_message_service),
    session: AsyncSession = Depends(get_session),
):
    """
    Delete your own message.

    The message stays in the history with placeholder content.
    """
    message, removed_keys = await message_service.delete_message(message_id, current_user)
    await session.commit()
    tasks.schedule_object_deletion(removed_keys)

    response = MessageResponse.model_validate(message)
    await manager.emit_to_room(message.chat_id, "message-deleted", response)
    return response
