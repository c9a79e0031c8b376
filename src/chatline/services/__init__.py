"""Service layer for business logic."""

from .auth_service import AuthService
from .oauth_service import OAuthService
from .user_service import UserService
from .chat_service import ChatService
from .message_service import MessageService
from .image_service import ImageService
from .presigned_url_service import PresignedUrlService

__all__ = [
    "AuthService",
    "OAuthService",
    "UserService",
    "ChatService",
    "MessageService",
    "ImageService",
    "PresignedUrlService",
]
