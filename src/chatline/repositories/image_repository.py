"""Image metadata repository."""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, or_, select

from .base import BaseRepository
from ..database import Image, Message

# Upload target kind -> the Image column that links to it
TARGET_COLUMNS = {
    "user": Image.user_id,
    "chat": Image.chat_id,
    "message": Image.message_id,
}


class ImageRepository(BaseRepository[Image]):
    """Repository for Image operations."""

    resource_name = "Image"

    async def get_by_target(self, target_type: str, reference_id: UUID) -> Optional[Image]:
        """Get the image attached to a user, chat or message."""
        column = TARGET_COLUMNS[target_type]
        result = await self.session.execute(
            select(Image).where(column == reference_id)
        )
        return result.scalar_one_or_none()

    async def keys_owned_by_user(self, user_id: UUID) -> List[str]:
        """Keys of the user's avatar and of images on messages they sent."""
        sent_messages = select(Message.id).where(Message.sender_id == user_id)
        result = await self.session.execute(
            select(Image.key).where(
                or_(
                    Image.user_id == user_id,
                    Image.message_id.in_(sent_messages),
                )
            )
        )
        return list(result.scalars().all())

    async def keys_in_chat(self, chat_id: UUID) -> List[str]:
        """Keys of a chat's avatar and of images on its messages."""
        chat_messages = select(Message.id).where(Message.chat_id == chat_id)
        result = await self.session.execute(
            select(Image.key).where(
                or_(
                    Image.chat_id == chat_id,
                    Image.message_id.in_(chat_messages),
                )
            )
        )
        return list(result.scalars().all())

    async def delete_by_target(self, target_type: str, reference_id: UUID) -> List[str]:
        """Delete every image attached to a target. Returns their storage keys."""
        column = TARGET_COLUMNS[target_type]
        result = await self.session.execute(
            select(Image.key).where(column == reference_id)
        )
        keys = list(result.scalars().all())
        if keys:
            await self.session.execute(
                delete(Image)
                .where(column == reference_id)
                .execution_options(synchronize_session="fetch")
            )
        return keys
