"""Chat and group management service."""

from datetime import timedelta
from typing import List, Optional, Tuple
from uuid import UUID

from loguru import logger

from ..core.exceptions import (
    InvalidInputError,
    ResourceAccessDeniedError,
    ResourceNotFoundError,
    ValidationError,
)
from ..database import MUTED_FOREVER, Chat, User, UserChat, utcnow
from ..repositories.chat_repository import ChatRepository
from ..repositories.image_repository import ImageRepository
from ..repositories.user_block_repository import UserBlockRepository
from ..repositories.user_repository import UserRepository

CHAT_TYPES = ("private", "group")


class ChatService:
    """Chat creation, membership and per-user chat flags."""

    def __init__(
        self,
        chat_repo: ChatRepository,
        user_repo: UserRepository,
        block_repo: UserBlockRepository,
        image_repo: ImageRepository,
    ):
        self.chat_repo = chat_repo
        self.user_repo = user_repo
        self.block_repo = block_repo
        self.image_repo = image_repo

    # ------------------------------------------------------------------
    # Access helpers
    # ------------------------------------------------------------------

    async def require_membership(self, chat_id: UUID, user_id: UUID) -> UserChat:
        """Membership of ``user_id`` in ``chat_id`` or 403."""
        membership = await self.chat_repo.get_membership(chat_id, user_id)
        if membership is None:
            raise ResourceAccessDeniedError("Access denied")
        return membership

    async def require_group_admin(self, chat_id: UUID, user_id: UUID) -> Tuple[Chat, UserChat]:
        """Group chat and the caller's admin membership, or 404/400/403."""
        chat = await self.chat_repo.get_or_raise(chat_id)
        if chat.chat_type != "group":
            raise ValidationError("Only group chats can be managed")

        membership = await self.chat_repo.get_membership(chat_id, user_id)
        if membership is None or membership.role != "admin":
            raise ResourceAccessDeniedError("Only group admins can do this")
        return chat, membership

    async def _visible_membership(self, chat_id: UUID, user_id: UUID) -> UserChat:
        # Non-members get the same answer as for a chat that does not exist
        membership = await self.chat_repo.get_membership(chat_id, user_id)
        if membership is None:
            raise ResourceNotFoundError("Chat", str(chat_id))
        return membership

    # ------------------------------------------------------------------
    # Chats
    # ------------------------------------------------------------------

    async def create_chat(
        self,
        creator: User,
        chat_type: str,
        participant_ids: List[UUID],
        group_name: Optional[str] = None,
        group_avatar: Optional[str] = None,
    ) -> Tuple[Chat, bool]:
        """
        Create a private or group chat.

        The creator joins as admin and has already seen the chat; everyone
        else joins as an unseen member. A private chat between two users is
        unique: asking for it again returns the existing one.

        Returns:
            (chat with participants loaded, whether it was newly created)
        """
        others = list(dict.fromkeys(pid for pid in participant_ids if pid != creator.id))

        if chat_type not in CHAT_TYPES or not others:
            raise InvalidInputError("Invalid input data")
        if chat_type == "private" and len(others) != 1:
            raise InvalidInputError("A private chat needs exactly one other participant")

        users = await self.user_repo.get_many(others)
        found = {user.id for user in users}
        for pid in others:
            if pid not in found:
                raise ResourceNotFoundError("User", str(pid))

        if chat_type == "private":
            other_id = others[0]
            if await self.block_repo.is_blocked_between(creator.id, other_id):
                raise ResourceAccessDeniedError("You cannot start a chat with this user")

            existing = await self.chat_repo.find_private_chat(creator.id, other_id)
            if existing is not None:
                return await self.chat_repo.get_with_participants(existing.id), False

        chat = await self.chat_repo.create(
            chat_type=chat_type,
            group_name=group_name.strip() if chat_type == "group" and group_name else None,
            group_avatar=group_avatar if chat_type == "group" else None,
            created_by=creator.id,
        )
        await self.chat_repo.add_participant(chat.id, creator.id, role="admin", is_seen=True)
        for pid in others:
            await self.chat_repo.add_participant(chat.id, pid, role="member", is_seen=False)

        logger.info(f"User {creator.id} created {chat_type} chat {chat.id}")
        return await self.chat_repo.get_with_participants(chat.id), True

    async def list_user_chats(self, user: User) -> List[UserChat]:
        return await self.chat_repo.get_user_chats(user.id)

    async def get_chat(self, chat_id: UUID, user: User) -> Chat:
        """Chat details for one of its participants."""
        await self._visible_membership(chat_id, user.id)
        return await self.chat_repo.get_with_participants(chat_id)

    async def rename_group(self, chat_id: UUID, user: User, group_name: str) -> Chat:
        chat, _ = await self.require_group_admin(chat_id, user.id)
        name = group_name.strip()
        if not name:
            raise ValidationError("Group name cannot be empty")
        await self.chat_repo.update(chat, group_name=name, updated_at=utcnow())
        return await self.chat_repo.get_with_participants(chat_id)

    async def add_participants(self, chat_id: UUID, user: User, user_ids: List[UUID]) -> Chat:
        """Add users to a group. Existing members are skipped."""
        await self.require_group_admin(chat_id, user.id)

        current = set(await self.chat_repo.get_participant_ids(chat_id))
        new_ids = [uid for uid in dict.fromkeys(user_ids) if uid not in current]

        users = await self.user_repo.get_many(new_ids)
        found = {u.id for u in users}
        for uid in new_ids:
            if uid not in found:
                raise ResourceNotFoundError("User", str(uid))

        for uid in new_ids:
            await self.chat_repo.add_participant(chat_id, uid, role="member", is_seen=False)
        return await self.chat_repo.get_with_participants(chat_id)

    async def remove_participant(self, chat_id: UUID, user: User, user_id: UUID) -> Chat:
        """Remove another member from a group."""
        await self.require_group_admin(chat_id, user.id)
        if user_id == user.id:
            raise ValidationError("Use leave to remove yourself from a chat")

        membership = await self.chat_repo.get_membership(chat_id, user_id)
        if membership is None:
            raise ResourceNotFoundError("Participant", str(user_id))

        await self.chat_repo.delete(membership)
        return await self.chat_repo.get_with_participants(chat_id)

    async def leave_chat(self, chat_id: UUID, user: User) -> List[str]:
        """
        Leave a group chat.

        Returns:
            Storage keys of the chat's images if the chat was deleted
            because nobody is left in it, otherwise an empty list
        """
        chat = await self.chat_repo.get(chat_id)
        membership = await self.chat_repo.get_membership(chat_id, user.id) if chat else None
        if chat is None or membership is None:
            raise ResourceNotFoundError("Chat", str(chat_id))
        if chat.chat_type == "private":
            raise ValidationError("Cannot leave private chat")

        was_admin = membership.role == "admin"
        await self.chat_repo.delete(membership)

        if await self.chat_repo.count_members(chat_id) == 0:
            keys = await self.image_repo.keys_in_chat(chat_id)
            await self.chat_repo.delete(chat)
            logger.info(f"Deleted empty chat {chat_id}")
            return keys

        if was_admin and await self.chat_repo.count_members(chat_id, role="admin") == 0:
            successor = await self.chat_repo.get_longest_standing_member(chat_id)
            await self.chat_repo.update(successor, role="admin")
            logger.info(f"Promoted {successor.user_id} to admin of chat {chat_id}")

        return []

    # ------------------------------------------------------------------
    # Per-user flags
    # ------------------------------------------------------------------

    async def set_seen(self, chat_id: UUID, user: User, is_seen: Optional[bool] = None) -> UserChat:
        """Set the seen flag; toggles when ``is_seen`` is None."""
        membership = await self._visible_membership(chat_id, user.id)
        value = (not membership.is_seen) if is_seen is None else is_seen
        return await self.chat_repo.update(membership, is_seen=value)

    async def set_pinned(self, chat_id: UUID, user: User, pinned: Optional[bool] = None) -> UserChat:
        """Set the pinned flag; toggles when ``pinned`` is None."""
        membership = await self._visible_membership(chat_id, user.id)
        value = (not membership.pinned) if pinned is None else pinned
        return await self.chat_repo.update(membership, pinned=value)

    async def set_muted(
        self,
        chat_id: UUID,
        user: User,
        mute_duration: Optional[int] = None,
    ) -> UserChat:
        """Mute for ``mute_duration`` seconds; 0 unmutes, None mutes indefinitely."""
        membership = await self._visible_membership(chat_id, user.id)
        if mute_duration is None:
            muted_until = MUTED_FOREVER
        elif mute_duration == 0:
            muted_until = None
        else:
            now = utcnow()
            # Durations past the far-future sentinel clamp to it
            if mute_duration >= (MUTED_FOREVER - now).total_seconds():
                muted_until = MUTED_FOREVER
            else:
                muted_until = now + timedelta(seconds=mute_duration)
        return await self.chat_repo.update(membership, muted_until=muted_until)


def is_muted(membership: UserChat) -> bool:
    return membership.muted_until is not None and membership.muted_until > utcnow()
