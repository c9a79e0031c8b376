"""Message sending, history, editing and deletion."""

from typing import List, Optional, Tuple
from uuid import UUID

from ..core.exceptions import (
    ResourceAccessDeniedError,
    ResourceNotFoundError,
    ValidationError,
)
from ..database import Message, User, utcnow
from ..repositories.chat_repository import ChatRepository
from ..repositories.image_repository import ImageRepository
from ..repositories.message_repository import MessageRepository
from ..repositories.user_block_repository import UserBlockRepository
from ..schemas.message import MessageListResponse, MessageResponse

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

DELETED_MESSAGE_CONTENT = "This message has been deleted."
IMAGE_MESSAGE_PREVIEW = "Sent an image"


def message_preview(message: Message) -> str:
    """Text shown as a chat's last message."""
    if message.deleted_at is not None:
        return DELETED_MESSAGE_CONTENT
    if message.content:
        return message.content
    return IMAGE_MESSAGE_PREVIEW


class MessageService:
    """Chat messages and the chat bookkeeping that goes with them."""

    def __init__(
        self,
        message_repo: MessageRepository,
        chat_repo: ChatRepository,
        block_repo: UserBlockRepository,
        image_repo: ImageRepository,
    ):
        self.message_repo = message_repo
        self.chat_repo = chat_repo
        self.block_repo = block_repo
        self.image_repo = image_repo

    async def _require_participant(self, chat_id: UUID, user_id: UUID) -> None:
        if not await self.chat_repo.is_participant(chat_id, user_id):
            raise ResourceAccessDeniedError("Access denied")

    async def _own_live_message(self, message_id: UUID, user: User) -> Message:
        # Deleted messages and other people's messages look the same: not found
        message = await self.message_repo.get(message_id)
        if message is None or message.sender_id != user.id or message.deleted_at is not None:
            raise ResourceNotFoundError("Message", str(message_id))
        return message

    async def list_messages(
        self,
        chat_id: UUID,
        user: User,
        cursor: Optional[UUID] = None,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> MessageListResponse:
        """
        One page of chat history, oldest first, older than ``cursor``.

        Reading a page marks the chat as seen for the reader.
        """
        await self._require_participant(chat_id, user.id)
        limit = max(1, min(limit, MAX_PAGE_SIZE))

        before = None
        if cursor is not None:
            before = await self.message_repo.get(cursor)
            if before is None or before.chat_id != chat_id:
                raise ValidationError("Invalid cursor")

        rows = await self.message_repo.get_page(chat_id, limit + 1, before=before)
        has_more = len(rows) > limit
        page = list(reversed(rows[:limit]))

        membership = await self.chat_repo.get_membership(chat_id, user.id)
        if not membership.is_seen:
            await self.chat_repo.update(membership, is_seen=True)

        return MessageListResponse(
            messages=[MessageResponse.model_validate(m) for m in page],
            has_more=has_more,
            next_cursor=page[0].id if has_more and page else None,
        )

    async def get_message(self, message_id: UUID, user: User) -> Message:
        message = await self.message_repo.get_with_sender(message_id)
        if message is None:
            raise ResourceNotFoundError("Message", str(message_id))
        await self._require_participant(message.chat_id, user.id)
        return message

    async def send_message(
        self,
        chat_id: UUID,
        sender: User,
        message_type: str = "text",
        content: Optional[str] = None,
        reply_to_id: Optional[UUID] = None,
    ) -> Message:
        """
        Store a message and update the chat around it.

        Everyone else's membership is flagged unseen and bumped, the sender's
        membership is bumped, and the chat's last message preview and
        activity time are updated. Nothing is committed here; the caller's
        transaction covers all of it.
        """
        chat = await self.chat_repo.get(chat_id)
        if chat is None:
            raise ResourceNotFoundError("Chat", str(chat_id))
        membership = await self.chat_repo.get_membership(chat_id, sender.id)
        if membership is None:
            raise ResourceAccessDeniedError("Access denied")

        text = content.strip() if content else None
        if message_type == "text" and not text:
            raise ValidationError("Message content is required")

        if chat.chat_type == "private":
            others = [pid for pid in await self.chat_repo.get_participant_ids(chat_id) if pid != sender.id]
            for other_id in others:
                if await self.block_repo.is_blocked_between(sender.id, other_id):
                    raise ResourceAccessDeniedError("You cannot message this user")

        if reply_to_id is not None:
            replied = await self.message_repo.get(reply_to_id)
            if replied is None or replied.chat_id != chat_id:
                raise ValidationError("Replied message is not in this chat")

        now = utcnow()
        message = await self.message_repo.create(
            chat_id=chat_id,
            sender_id=sender.id,
            type=message_type,
            content=text,
            reply_to_id=reply_to_id,
            created_at=now,
            updated_at=now,
        )

        await self.chat_repo.mark_others_unseen(chat_id, sender.id, now)
        await self.chat_repo.update(membership, is_seen=True, updated_at=now)
        await self.chat_repo.update(chat, last_message=message_preview(message), updated_at=now)

        return await self.message_repo.get_with_sender(message.id)

    async def edit_message(self, message_id: UUID, user: User, content: str) -> Message:
        """Replace the text of one of the user's own messages."""
        message = await self._own_live_message(message_id, user)

        text = content.strip()
        if not text:
            raise ValidationError("Message content is required")

        await self.message_repo.update(message, content=text, is_edited=True, updated_at=utcnow())

        latest = await self.message_repo.get_latest_live(message.chat_id)
        if latest is not None and latest.id == message.id:
            chat = await self.chat_repo.get(message.chat_id)
            await self.chat_repo.update(chat, last_message=message_preview(message))

        return await self.message_repo.get_with_sender(message.id)

    async def delete_message(self, message_id: UUID, user: User) -> Tuple[Message, List[str]]:
        """
        Soft-delete one of the user's own messages.

        The row stays with placeholder content; an attached image is detached.

        Returns:
            (the deleted message, storage keys of detached images)
        """
        message = await self._own_live_message(message_id, user)
        now = utcnow()

        removed_keys = await self.image_repo.delete_by_target("message", message.id)
        await self.message_repo.update(
            message,
            content=DELETED_MESSAGE_CONTENT,
            image_id=None,
            image_url=None,
            deleted_at=now,
            updated_at=now,
        )

        newest = await self.message_repo.get_page(message.chat_id, 1)
        if newest and newest[0].id == message.id:
            chat = await self.chat_repo.get(message.chat_id)
            await self.chat_repo.update(chat, last_message=DELETED_MESSAGE_CONTENT)

        return await self.message_repo.get_with_sender(message.id), removed_keys
