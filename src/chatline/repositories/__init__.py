"""Repository layer for data access."""

from .base import BaseRepository
from .user_repository import UserRepository
from .user_block_repository import UserBlockRepository
from .chat_repository import ChatRepository
from .message_repository import MessageRepository
from .image_repository import ImageRepository
from .pending_upload_repository import PendingUploadRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "UserBlockRepository",
    "ChatRepository",
    "MessageRepository",
    "ImageRepository",
    "PendingUploadRepository",
]
