"""Chat and membership repository."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import and_, func, select, update
from sqlalchemy.orm import selectinload

from .base import BaseRepository
from ..database import Chat, UserChat


class ChatRepository(BaseRepository[Chat]):
    """Repository for Chat and UserChat operations."""

    resource_name = "Chat"

    async def get_with_participants(self, chat_id: UUID) -> Optional[Chat]:
        """Get chat with its memberships and their users loaded."""
        result = await self.session.execute(
            select(Chat)
            .where(Chat.id == chat_id)
            .options(selectinload(Chat.participants).selectinload(UserChat.user))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_private_chat(self, user_a: UUID, user_b: UUID) -> Optional[Chat]:
        """Find the private chat between two users, if any."""
        chats_of_a = select(UserChat.chat_id).where(UserChat.user_id == user_a)
        result = await self.session.execute(
            select(Chat)
            .join(UserChat, UserChat.chat_id == Chat.id)
            .where(
                and_(
                    Chat.chat_type == "private",
                    Chat.id.in_(chats_of_a),
                    UserChat.user_id == user_b,
                )
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_membership(self, chat_id: UUID, user_id: UUID) -> Optional[UserChat]:
        """Get a user's membership row in a chat."""
        result = await self.session.execute(
            select(UserChat).where(
                and_(
                    UserChat.chat_id == chat_id,
                    UserChat.user_id == user_id,
                )
            )
        )
        return result.scalar_one_or_none()

    async def is_participant(self, chat_id: UUID, user_id: UUID) -> bool:
        """Check if user is a participant in chat."""
        return await self.get_membership(chat_id, user_id) is not None

    async def add_participant(
        self,
        chat_id: UUID,
        user_id: UUID,
        role: str = "member",
        is_seen: bool = False,
    ) -> UserChat:
        """Add user to chat."""
        membership = UserChat(
            chat_id=chat_id,
            user_id=user_id,
            role=role,
            is_seen=is_seen,
        )
        self.session.add(membership)
        await self.session.flush()
        return membership

    async def get_participant_ids(self, chat_id: UUID) -> List[UUID]:
        """Ids of every member of a chat."""
        result = await self.session.execute(
            select(UserChat.user_id).where(UserChat.chat_id == chat_id)
        )
        return list(result.scalars().all())

    async def get_user_chats(self, user_id: UUID) -> List[UserChat]:
        """Memberships of a user, pinned first, then most recently active."""
        result = await self.session.execute(
            select(UserChat)
            .where(UserChat.user_id == user_id)
            .options(
                selectinload(UserChat.chat)
                .selectinload(Chat.participants)
                .selectinload(UserChat.user)
            )
            .order_by(UserChat.pinned.desc(), UserChat.updated_at.desc())
        )
        return list(result.scalars().all())

    async def mark_others_unseen(
        self,
        chat_id: UUID,
        sender_id: UUID,
        now: datetime,
    ) -> int:
        """Flag the chat unseen for everyone but the sender. Returns rows touched."""
        result = await self.session.execute(
            update(UserChat)
            .where(
                and_(
                    UserChat.chat_id == chat_id,
                    UserChat.user_id != sender_id,
                )
            )
            .values(is_seen=False, updated_at=now)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    async def count_members(self, chat_id: UUID, role: Optional[str] = None) -> int:
        """Count members of a chat, optionally only those with ``role``."""
        query = select(func.count(UserChat.id)).where(UserChat.chat_id == chat_id)
        if role is not None:
            query = query.where(UserChat.role == role)
        result = await self.session.execute(query)
        return result.scalar_one()

    async def get_longest_standing_member(self, chat_id: UUID) -> Optional[UserChat]:
        """The member who joined the chat first."""
        result = await self.session.execute(
            select(UserChat)
            .where(UserChat.chat_id == chat_id)
            .order_by(UserChat.joined_at, UserChat.id)
            .limit(1)
        )
        return result.scalar_one_or_none()
