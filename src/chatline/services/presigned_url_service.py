"""
Presigned uploads: grant, write-through, confirm-or-expire.

1. A grant reserves a storage key for one target (user avatar, group avatar
   or an image for a message in a chat) and hands out a short-lived signed
   PUT URL for it.
2. The client uploads the bytes straight to the object store.
3. Confirming the grant swaps the target's image row in one transaction.
   Grants nobody confirms expire and are swept periodically.
"""

from datetime import timedelta
from typing import List, Optional, Tuple
from uuid import UUID

from loguru import logger

from ..config import settings
from ..core.exceptions import (
    ResourceAccessDeniedError,
    ResourceNotFoundError,
    UploadNotFoundError,
    ValidationError,
)
from ..database import Image, User, utcnow
from ..repositories.chat_repository import ChatRepository
from ..repositories.image_repository import ImageRepository
from ..repositories.message_repository import MessageRepository
from ..repositories.pending_upload_repository import PendingUploadRepository
from ..schemas.upload import PresignResponse
from ..storage import S3Storage
from .image_service import ImageService, build_object_key, validate_image_upload


class PresignedUrlService:
    """Issues and confirms upload grants."""

    def __init__(
        self,
        pending_repo: PendingUploadRepository,
        image_repo: ImageRepository,
        chat_repo: ChatRepository,
        message_repo: MessageRepository,
        image_service: ImageService,
        storage: Optional[S3Storage],
    ):
        self.pending_repo = pending_repo
        self.image_repo = image_repo
        self.chat_repo = chat_repo
        self.message_repo = message_repo
        self.image_service = image_service
        self.storage = storage

    async def _authorize_grant(self, target_type: str, reference_id: UUID, user: User) -> None:
        if target_type == "message":
            # Message images are granted per chat; the message is named at confirm
            await self.chat_repo.get_or_raise(reference_id)
            if not await self.chat_repo.is_participant(reference_id, user.id):
                raise ResourceAccessDeniedError("Access denied")
        else:
            await self.image_service.authorize_write(target_type, reference_id, user)

    async def create_grant(
        self,
        target_type: str,
        reference_id: UUID,
        user: User,
        content_type: str,
        file_size: Optional[int] = None,
    ) -> PresignResponse:
        """
        Reserve a key for a target and sign an upload URL for it.

        Args:
            target_type: "user", "chat" or "message"
            reference_id: User id, chat id, or (for message images) chat id
            user: Requester
            content_type: MIME type the client will upload
            file_size: Size the client announces, checked against the limit
        """
        validate_image_upload(content_type, file_size)
        await self._authorize_grant(target_type, reference_id, user)

        key = build_object_key(target_type, reference_id, content_type)
        ttl = settings.UPLOAD_URL_TTL_SECONDS
        presigned_url = await self.storage.agenerate_presigned_put(key, content_type, ttl)

        previous_key = None
        if target_type in ("user", "chat"):
            current = await self.image_repo.get_by_target(target_type, reference_id)
            previous_key = current.key if current is not None else None

        pending = await self.pending_repo.create(
            key=key,
            type=target_type,
            reference_id=reference_id,
            user_id=user.id,
            previous_key=previous_key,
            content_type=content_type,
            expires_at=utcnow() + timedelta(seconds=ttl),
        )
        logger.info(f"Issued {target_type} upload grant {key} to user {user.id}")

        return PresignResponse(
            presigned_url=presigned_url,
            file_key=key,
            cloudfront_url=self.storage.public_url(key),
            expires_at=pending.expires_at,
        )

    async def confirm_upload(
        self,
        user: User,
        file_key: str,
        upload_type: str,
        message_id: Optional[UUID] = None,
    ) -> Tuple[Image, List[str]]:
        """
        Confirm a grant and attach the uploaded object to its target.

        Returns:
            (the new image, storage keys of the images it replaced)

        Raises:
            UploadNotFoundError: No live grant for this key and type
            ResourceAccessDeniedError: The grant belongs to someone else
        """
        pending = await self.pending_repo.get_live(file_key, upload_type)
        if pending is None:
            raise UploadNotFoundError()
        if pending.user_id != user.id:
            raise ResourceAccessDeniedError("This upload was granted to another user")

        if upload_type == "message":
            if message_id is None:
                raise ValidationError("message_id is required for message images")
            message = await self.message_repo.get(message_id)
            if (
                message is None
                or message.chat_id != pending.reference_id
                or message.sender_id != user.id
                or message.deleted_at is not None
            ):
                raise ResourceNotFoundError("Message", str(message_id))
            reference_id = message.id
        else:
            reference_id = pending.reference_id

        return await self.image_service.replace_image(
            upload_type,
            reference_id,
            key=pending.key,
            url=self.storage.public_url(pending.key),
            pending=pending,
        )

    async def cleanup_expired_uploads(self, delete_objects: bool = True) -> List[str]:
        """
        Delete grants past their expiry.

        Objects that may have been uploaded for them are removed best-effort;
        a storage failure does not undo the sweep.

        Returns:
            Keys of the expired grants
        """
        keys = await self.pending_repo.delete_expired()
        if keys:
            logger.info(f"Removed {len(keys)} expired upload grants")
        if keys and delete_objects:
            try:
                await self.storage.adelete_objects(keys)
            except Exception as exc:
                logger.warning(f"Could not delete objects of expired uploads: {exc}")
        return keys
