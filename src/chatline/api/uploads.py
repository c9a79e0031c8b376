"""Presigned upload API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from .. import tasks
from ..database import User, get_session
from ..dependencies import (
    get_current_user,
    get_message_repository,
    get_presigned_url_service,
)
from ..realtime import manager
from ..repositories import MessageRepository
from ..schemas.message import MessageResponse
from ..schemas.upload import (
    ConfirmUploadRequest,
    ConfirmUploadResponse,
    ImageResponse,
    PresignRequest,
    PresignResponse,
)
from ..services import PresignedUrlService


router = APIRouter(tags=["Uploads"])


@router.post("/avatar/presign", response_model=PresignResponse)
async def presign_avatar(
    request: PresignRequest,
    current_user: User = Depends(get_current_user),
    presign_service: PresignedUrlService = Depends(get_presigned_url_service),
):
    """
    Get an upload URL for your avatar.

    PUT the file to ``presigned_url`` with the same Content-Type, then call
    /upload/confirm with ``file_key`` before the grant expires.
    """
    return await presign_service.create_grant(
        "user", current_user.id, current_user, request.content_type, request.file_size
    )


@router.post("/chats/{chat_id}/avatar/presign", response_model=PresignResponse)
async def presign_chat_avatar(
    chat_id: UUID,
    request: PresignRequest,
    current_user: User = Depends(get_current_user),
    presign_service: PresignedUrlService = Depends(get_presigned_url_service),
):
    """Get an upload URL for a group avatar. Admins only."""
    return await presign_service.create_grant(
        "chat", chat_id, current_user, request.content_type, request.file_size
    )


@router.post("/chats/{chat_id}/message/presign", response_model=PresignResponse)
async def presign_message_image(
    chat_id: UUID,
    request: PresignRequest,
    current_user: User = Depends(get_current_user),
    presign_service: PresignedUrlService = Depends(get_presigned_url_service),
):
    """Get an upload URL for an image to attach to one of your messages in a chat."""
    return await presign_service.create_grant(
        "message", chat_id, current_user, request.content_type, request.file_size
    )


@router.post("/upload/confirm", response_model=ConfirmUploadResponse)
async def confirm_upload(
    request: ConfirmUploadRequest,
    current_user: User = Depends(get_current_user),
    presign_service: PresignedUrlService = Depends(get_presigned_url_service),
    message_repo: MessageRepository = Depends(get_message_repository),
    session: AsyncSession = Depends(get_session),
):
    """
    Confirm an upload and attach the image to its target.

    The previous image of the target is replaced; its object is deleted in
    the background once the swap is committed.
    """
    image, replaced_keys = await presign_service.confirm_upload(
        current_user, request.file_key, request.type, request.message_id
    )
    await session.commit()
    tasks.schedule_object_deletion(replaced_keys)
    logger.info(f"Confirmed {request.type} upload {image.key}")

    if request.type == "message":
        message = await message_repo.get_with_sender(image.message_id)
        await manager.emit_to_room(
            message.chat_id, "message-updated", MessageResponse.model_validate(message)
        )

    return ConfirmUploadResponse(
        success=True,
        cloudfront_url=image.url,
        image=ImageResponse.model_validate(image),
    )
