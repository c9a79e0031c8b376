"""Message repository with cursor pagination."""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import selectinload

from .base import BaseRepository
from ..database import Message


class MessageRepository(BaseRepository[Message]):
    """Repository for Message operations."""

    resource_name = "Message"

    async def get_with_sender(self, message_id: UUID) -> Optional[Message]:
        """Get message with its sender loaded."""
        result = await self.session.execute(
            select(Message)
            .where(Message.id == message_id)
            .options(selectinload(Message.sender))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_page(
        self,
        chat_id: UUID,
        limit: int,
        before: Optional[Message] = None,
    ) -> List[Message]:
        """
        Get up to ``limit`` messages of a chat, newest first.

        Args:
            chat_id: Chat to read
            limit: Maximum rows to return
            before: Only return messages older than this one

        Returns:
            Messages ordered by (created_at, id) descending
        """
        query = (
            select(Message)
            .where(Message.chat_id == chat_id)
            .options(selectinload(Message.sender))
        )

        if before is not None:
            query = query.where(
                or_(
                    Message.created_at < before.created_at,
                    and_(
                        Message.created_at == before.created_at,
                        Message.id < before.id,
                    ),
                )
            )

        query = (
            query.order_by(Message.created_at.desc(), Message.id.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_latest_live(self, chat_id: UUID) -> Optional[Message]:
        """Newest message of a chat that has not been deleted."""
        result = await self.session.execute(
            select(Message)
            .where(
                and_(
                    Message.chat_id == chat_id,
                    Message.deleted_at.is_(None),
                )
            )
            .order_by(Message.created_at.desc(), Message.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()
