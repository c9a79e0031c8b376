"""User management API endpoints."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from .. import tasks
from ..database import User, get_session
from ..dependencies import get_current_user, get_user_service
from ..realtime import manager
from ..schemas.auth import StatusMessage
from ..schemas.user import BlockRequest, UserPublicResponse, UserResponse, UserUpdate
from ..services import UserService


router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=List[UserPublicResponse])
async def search_users(
    search: Optional[str] = Query(None, max_length=100),
    limit: int = Query(50, ge=1, le=50),
    current_user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
):
    """
    Search users by name or email.

    The caller is never part of the results.
    """
    users = await user_service.search(current_user, search, limit=limit)
    return [UserPublicResponse.model_validate(u) for u in users]


@router.post("/block", response_model=StatusMessage)
async def block_user(
    request: BlockRequest,
    current_user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
    session: AsyncSession = Depends(get_session),
):
    """Block a user. Both users are notified."""
    await user_service.block_user(current_user, request.user_id)
    await session.commit()

    await manager.emit_to_users(
        [current_user.id, request.user_id],
        "user-blocked",
        {"blocker_id": current_user.id, "blocked_id": request.user_id},
    )
    return StatusMessage(message="User blocked")


@router.post("/unblock", response_model=StatusMessage)
async def unblock_user(
    request: BlockRequest,
    current_user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
    session: AsyncSession = Depends(get_session),
):
    """Unblock a user. Both users are notified."""
    await user_service.unblock_user(current_user, request.user_id)
    await session.commit()

    await manager.emit_to_users(
        [current_user.id, request.user_id],
        "user-unblocked",
        {"blocker_id": current_user.id, "blocked_id": request.user_id},
    )
    return StatusMessage(message="User unblocked")


@router.get("/{user_id}", response_model=UserPublicResponse)
async def get_user(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
):
    """Get a user's public profile."""
    user = await user_service.get_user(user_id)
    return UserPublicResponse.model_validate(user)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: UUID,
    request: UserUpdate,
    current_user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
):
    """Update your own profile."""
    user = await user_service.update_user(
        current_user, user_id, **request.model_dump(exclude_unset=True)
    )
    return UserResponse.model_validate(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
    session: AsyncSession = Depends(get_session),
):
    """Delete your own account."""
    keys = await user_service.delete_user(current_user, user_id)
    await session.commit()
    tasks.schedule_object_deletion(keys)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
