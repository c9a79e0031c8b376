"""Image attachment: authorizing targets and swapping their image rows."""

from typing import List, Optional, Tuple
from uuid import UUID, uuid4

from loguru import logger

from ..config import settings
from ..core.exceptions import (
    ResourceAccessDeniedError,
    ResourceNotFoundError,
    ValidationError,
)
from ..database import Image, PendingUpload, User
from ..repositories.chat_repository import ChatRepository
from ..repositories.image_repository import ImageRepository
from ..repositories.message_repository import MessageRepository
from ..repositories.pending_upload_repository import PendingUploadRepository
from ..repositories.user_repository import UserRepository
from ..storage import S3Storage

TARGET_TYPES = ("user", "chat", "message")

CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/svg+xml": ".svg",
}


def validate_image_upload(content_type: str, file_size: Optional[int] = None) -> None:
    """Only images, and only up to MAX_UPLOAD_BYTES."""
    if not content_type or not content_type.lower().startswith("image/"):
        raise ValidationError("Only image files are allowed")
    if file_size is not None and file_size > settings.MAX_UPLOAD_BYTES:
        max_mb = settings.MAX_UPLOAD_BYTES // (1024 * 1024)
        raise ValidationError(f"File too large. Maximum size is {max_mb}MB")


def build_object_key(target_type: str, reference_id: UUID, content_type: str) -> str:
    """
    Mint a unique storage key namespaced by target.

    user     -> avatars/{user_id}/{uuid}{ext}
    chat     -> chats/{chat_id}/avatar/{uuid}{ext}
    message  -> chats/{chat_id}/messages/{uuid}{ext}
    """
    extension = CONTENT_TYPE_EXTENSIONS.get(content_type.lower(), "")
    name = f"{uuid4()}{extension}"

    if target_type == "user":
        return f"avatars/{reference_id}/{name}"
    if target_type == "chat":
        return f"chats/{reference_id}/avatar/{name}"
    if target_type == "message":
        return f"chats/{reference_id}/messages/{name}"
    raise ValidationError(f"Unknown upload type {target_type}")


class ImageService:
    """Owns the invariant that each user, chat and message has at most one image."""

    def __init__(
        self,
        image_repo: ImageRepository,
        user_repo: UserRepository,
        chat_repo: ChatRepository,
        message_repo: MessageRepository,
        pending_repo: PendingUploadRepository,
    ):
        self.image_repo = image_repo
        self.user_repo = user_repo
        self.chat_repo = chat_repo
        self.message_repo = message_repo
        self.pending_repo = pending_repo

    # ------------------------------------------------------------------
    # Authorization
    # ------------------------------------------------------------------

    async def authorize_write(self, target_type: str, reference_id: UUID, user: User) -> None:
        """
        Check that ``user`` may change the image of a target.

        Users change their own avatar, group admins change the group avatar,
        and senders change the image on their own live messages.
        """
        if target_type == "user":
            if reference_id != user.id:
                raise ResourceAccessDeniedError("You can only change your own avatar")
            return

        if target_type == "chat":
            chat = await self.chat_repo.get_or_raise(reference_id)
            if chat.chat_type != "group":
                raise ValidationError("Only group chats have an avatar")
            membership = await self.chat_repo.get_membership(chat.id, user.id)
            if membership is None or membership.role != "admin":
                raise ResourceAccessDeniedError("Only group admins can change the group avatar")
            return

        if target_type == "message":
            message = await self.message_repo.get(reference_id)
            if message is None or message.deleted_at is not None or message.sender_id != user.id:
                raise ResourceNotFoundError("Message", str(reference_id))
            return

        raise ValidationError(f"Unknown image target {target_type}")

    async def authorize_read(self, target_type: str, reference_id: UUID, user: User) -> None:
        """Avatars are public; chat and message images are for participants."""
        if target_type == "user":
            await self.user_repo.get_or_raise(reference_id)
            return

        if target_type == "chat":
            chat_id = reference_id
        else:
            message = await self.message_repo.get_or_raise(reference_id)
            chat_id = message.chat_id

        if not await self.chat_repo.is_participant(chat_id, user.id):
            raise ResourceAccessDeniedError("Access denied")

    # ------------------------------------------------------------------
    # Image rows
    # ------------------------------------------------------------------

    async def get_image(self, target_type: str, reference_id: UUID) -> Image:
        image = await self.image_repo.get_by_target(target_type, reference_id)
        if image is None:
            raise ResourceNotFoundError("Image", f"{target_type}:{reference_id}")
        return image

    async def replace_image(
        self,
        target_type: str,
        reference_id: UUID,
        key: str,
        url: str,
        pending: Optional[PendingUpload] = None,
    ) -> Tuple[Image, List[str]]:
        """
        Attach a stored object to a target, replacing what was there.

        Deletes the target's current image rows, creates the new row, links
        it from the target and, when given, deletes the pending upload that
        reserved the key. All writes share the caller's transaction.

        Returns:
            (the new image, storage keys of the replaced images)
        """
        replaced = await self.image_repo.delete_by_target(target_type, reference_id)

        image = await self.image_repo.create(
            url=url,
            key=key,
            **{f"{target_type}_id": reference_id},
        )
        await self._link(target_type, reference_id, image)

        if pending is not None:
            await self.pending_repo.delete(pending)

        logger.info(f"Attached image {image.id} to {target_type} {reference_id}")
        return image, [k for k in replaced if k != key]

    async def store_upload(
        self,
        storage: S3Storage,
        target_type: str,
        reference_id: UUID,
        user: User,
        data: bytes,
        content_type: str,
    ) -> Tuple[Image, List[str]]:
        """
        Upload bytes through the API and attach them to a target.

        Returns:
            (the new image, storage keys of the replaced images)
        """
        validate_image_upload(content_type, len(data))
        await self.authorize_write(target_type, reference_id, user)

        key_scope = reference_id
        if target_type == "message":
            message = await self.message_repo.get_or_raise(reference_id)
            key_scope = message.chat_id

        key = build_object_key(target_type, key_scope, content_type)
        await storage.aput_object(key, data, content_type)
        return await self.replace_image(target_type, reference_id, key, storage.public_url(key))

    async def remove_image(self, target_type: str, reference_id: UUID) -> str:
        """
        Detach and delete a target's image.

        Returns:
            Storage key of the removed image
        """
        image = await self.get_image(target_type, reference_id)
        await self.image_repo.delete(image)
        await self._link(target_type, reference_id, None)
        return image.key

    async def _link(self, target_type: str, reference_id: UUID, image: Optional[Image]) -> None:
        url = image.url if image is not None else None

        if target_type == "user":
            user = await self.user_repo.get_or_raise(reference_id)
            await self.user_repo.update(user, avatar_url=url)
        elif target_type == "chat":
            chat = await self.chat_repo.get_or_raise(reference_id)
            await self.chat_repo.update(chat, group_avatar=url)
        else:
            message = await self.message_repo.get_or_raise(reference_id)
            await self.message_repo.update(
                message,
                image_id=image.id if image is not None else None,
                image_url=url,
                type="image" if image is not None else message.type,
            )
