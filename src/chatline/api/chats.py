"""Chat management API endpoints."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from .. import tasks
from ..database import User, UserChat, get_session
from ..dependencies import get_chat_service, get_current_user
from ..schemas.auth import StatusMessage
from ..schemas.chat import (
    AddParticipantsRequest,
    ChatCreate,
    ChatResponse,
    ChatUpdate,
    MembershipResponse,
    MuteRequest,
    PinRequest,
    SeenRequest,
    UserChatResponse,
)
from ..services import ChatService
from ..services.chat_service import is_muted


router = APIRouter(prefix="/chats", tags=["Chats"])
user_chats_router = APIRouter(prefix="/user-chats", tags=["Chats"])


def _membership_response(membership: UserChat) -> MembershipResponse:
    response = MembershipResponse.model_validate(membership)
    response.is_muted = is_muted(membership)
    return response


@router.post("", response_model=ChatResponse, status_code=status.HTTP_201_CREATED)
async def create_chat(
    request: ChatCreate,
    response: Response,
    current_user: User = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
):
    """
    Create a private or group chat.

    The creator becomes admin. Asking for a private chat that already exists
    returns it with status 200.
    """
    chat, created = await chat_service.create_chat(
        creator=current_user,
        chat_type=request.chat_type,
        participant_ids=request.participant_ids,
        group_name=request.group_name,
        group_avatar=request.group_avatar,
    )
    if not created:
        response.status_code = status.HTTP_200_OK
    return ChatResponse.model_validate(chat)


@router.get("/{chat_id}", response_model=ChatResponse)
async def get_chat(
    chat_id: UUID,
    current_user: User = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
):
    """Get chat details including participants."""
    chat = await chat_service.get_chat(chat_id, current_user)
    return ChatResponse.model_validate(chat)


@router.patch("/{chat_id}", response_model=ChatResponse)
async def rename_chat(
    chat_id: UUID,
    request: ChatUpdate,
    current_user: User = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
):
    """Rename a group. Admins only."""
    chat = await chat_service.rename_group(chat_id, current_user, request.group_name)
    return ChatResponse.model_validate(chat)


@router.post("/{chat_id}/participants", response_model=ChatResponse)
async def add_participants(
    chat_id: UUID,
    request: AddParticipantsRequest,
    current_user: User = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
):
    """Add users to a group. Admins only."""
    chat = await chat_service.add_participants(chat_id, current_user, request.user_ids)
    return ChatResponse.model_validate(chat)


@router.delete("/{chat_id}/participants/{user_id}", response_model=ChatResponse)
async def remove_participant(
    chat_id: UUID,
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
):
    """Remove a member from a group. Admins only."""
    chat = await chat_service.remove_participant(chat_id, current_user, user_id)
    return ChatResponse.model_validate(chat)


@router.delete("/{chat_id}/leave", response_model=StatusMessage)
async def leave_chat(
    chat_id: UUID,
    current_user: User = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
    session: AsyncSession = Depends(get_session),
):
    """Leave a group chat. The chat is deleted when its last member leaves."""
    removed_keys = await chat_service.leave_chat(chat_id, current_user)
    await session.commit()
    tasks.schedule_object_deletion(removed_keys)
    return StatusMessage(message="Successfully left chat")


# ============================================================================
# Per-user chat list and flags
# ============================================================================

@user_chats_router.get("", response_model=List[UserChatResponse])
async def list_user_chats(
    current_user: User = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
):
    """
    List the current user's chats.

    Pinned chats come first, then the most recently active.
    """
    memberships = await chat_service.list_user_chats(current_user)

    responses = []
    for membership in memberships:
        item = UserChatResponse.model_validate(membership)
        item.is_muted = is_muted(membership)
        responses.append(item)
    return responses


@user_chats_router.put("/{chat_id}/seen", response_model=MembershipResponse)
async def set_seen(
    chat_id: UUID,
    request: Optional[SeenRequest] = None,
    current_user: User = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
):
    """Mark a chat seen or unseen; toggles when no value is given."""
    membership = await chat_service.set_seen(
        chat_id, current_user, request.is_seen if request else None
    )
    return _membership_response(membership)


@user_chats_router.put("/{chat_id}/pin", response_model=MembershipResponse)
async def set_pinned(
    chat_id: UUID,
    request: Optional[PinRequest] = None,
    current_user: User = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
):
    """Pin or unpin a chat; toggles when no value is given."""
    membership = await chat_service.set_pinned(
        chat_id, current_user, request.pinned if request else None
    )
    return _membership_response(membership)


@user_chats_router.put("/{chat_id}/mute", response_model=MembershipResponse)
async def set_muted(
    chat_id: UUID,
    request: Optional[MuteRequest] = None,
    current_user: User = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
):
    """
    Mute a chat.

    ``mute_duration`` is in seconds; 0 unmutes and no value mutes indefinitely.
    """
    membership = await chat_service.set_muted(
        chat_id, current_user, request.mute_duration if request else None
    )
    return _membership_response(membership)
