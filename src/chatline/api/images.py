"""Direct image upload and image management endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, File, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from .. import tasks
from ..config import settings
from ..database import User, get_session
from ..dependencies import get_current_user, get_image_service, get_storage_dep
from ..schemas.upload import ImageResponse
from ..services import ImageService
from ..storage import S3Storage


router = APIRouter(prefix="/images", tags=["Images"])


async def _upload(
    target_type: str,
    reference_id: UUID,
    image: UploadFile,
    current_user: User,
    image_service: ImageService,
    storage: S3Storage,
    session: AsyncSession,
) -> ImageResponse:
    # Read one byte past the limit so oversized files are caught without reading them whole
    data = await image.read(settings.MAX_UPLOAD_BYTES + 1)
    stored, replaced_keys = await image_service.store_upload(
        storage,
        target_type,
        reference_id,
        current_user,
        data,
        image.content_type or "",
    )
    await session.commit()
    tasks.schedule_object_deletion(replaced_keys)
    return ImageResponse.model_validate(stored)


async def _remove(
    target_type: str,
    reference_id: UUID,
    image_service: ImageService,
    session: AsyncSession,
) -> Response:
    key = await image_service.remove_image(target_type, reference_id)
    await session.commit()
    tasks.schedule_object_deletion([key])
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Uploads
# ============================================================================

@router.post("/user/avatar", response_model=ImageResponse, status_code=status.HTTP_201_CREATED)
async def upload_user_avatar(
    image: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    image_service: ImageService = Depends(get_image_service),
    storage: S3Storage = Depends(get_storage_dep),
    session: AsyncSession = Depends(get_session),
):
    """Upload your avatar through the API."""
    return await _upload(
        "user", current_user.id, image, current_user, image_service, storage, session
    )


@router.post(
    "/chat/{chat_id}/avatar",
    response_model=ImageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_chat_avatar(
    chat_id: UUID,
    image: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    image_service: ImageService = Depends(get_image_service),
    storage: S3Storage = Depends(get_storage_dep),
    session: AsyncSession = Depends(get_session),
):
    """Upload a group avatar through the API. Admins only."""
    return await _upload(
        "chat", chat_id, image, current_user, image_service, storage, session
    )


@router.post(
    "/message/{message_id}/image",
    response_model=ImageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_message_image(
    message_id: UUID,
    image: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    image_service: ImageService = Depends(get_image_service),
    storage: S3Storage = Depends(get_storage_dep),
    session: AsyncSession = Depends(get_session),
):
    """Attach an image to one of your messages through the API."""
    return await _upload(
        "message", message_id, image, current_user, image_service, storage, session
    )


# ============================================================================
# Reads
# ============================================================================

@router.get("/user/{user_id}/avatar", response_model=ImageResponse)
async def get_user_avatar(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    image_service: ImageService = Depends(get_image_service),
):
    """Get a user's avatar metadata."""
    await image_service.authorize_read("user", user_id, current_user)
    return ImageResponse.model_validate(await image_service.get_image("user", user_id))


@router.get("/chat/{chat_id}/avatar", response_model=ImageResponse)
async def get_chat_avatar(
    chat_id: UUID,
    current_user: User = Depends(get_current_user),
    image_service: ImageService = Depends(get_image_service),
):
    """Get a chat's avatar metadata. Participants only."""
    await image_service.authorize_read("chat", chat_id, current_user)
    return ImageResponse.model_validate(await image_service.get_image("chat", chat_id))


@router.get("/message/{message_id}/image", response_model=ImageResponse)
async def get_message_image(
    message_id: UUID,
    current_user: User = Depends(get_current_user),
    image_service: ImageService = Depends(get_image_service),
):
    """Get a message's image metadata. Participants only."""
    await image_service.authorize_read("message", message_id, current_user)
    return ImageResponse.model_validate(await image_service.get_image("message", message_id))


# ============================================================================
# Deletes
# ============================================================================

@router.delete("/user/avatar", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user_avatar(
    current_user: User = Depends(get_current_user),
    image_service: ImageService = Depends(get_image_service),
    session: AsyncSession = Depends(get_session),
):
    """Remove your avatar."""
    return await _remove("user", current_user.id, image_service, session)


@router.delete("/chat/{chat_id}/avatar", status_code=status.HTTP_204_NO_CONTENT)
async def delete_chat_avatar(
    chat_id: UUID,
    current_user: User = Depends(get_current_user),
    image_service: ImageService = Depends(get_image_service),
    session: AsyncSession = Depends(get_session),
):
    """Remove a group avatar. Admins only."""
    await image_service.authorize_write("chat", chat_id, current_user)
    return await _remove("chat", chat_id, image_service, session)


@router.delete("/message/{message_id}/image", status_code=status.HTTP_204_NO_CONTENT)
async def delete_message_image(
    message_id: UUID,
    current_user: User = Depends(get_current_user),
    image_service: ImageService = Depends(get_image_service),
    session: AsyncSession = Depends(get_session),
):
    """Remove the image from one of your messages."""
    await image_service.authorize_write("message", message_id, current_user)
    return await _remove("message", message_id, image_service, session)
