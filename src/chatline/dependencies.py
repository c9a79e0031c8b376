"""Dependency injection for FastAPI endpoints."""

from typing import AsyncGenerator, Optional
from uuid import UUID

import httpx
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from .core.security import TokenPayload, verify_jwt_token
from .database import (
    Chat,
    Image,
    Message,
    PendingUpload,
    User,
    UserBlock,
    get_session,
)
from .repositories import (
    ChatRepository,
    ImageRepository,
    MessageRepository,
    PendingUploadRepository,
    UserBlockRepository,
    UserRepository,
)
from .services import (
    AuthService,
    ChatService,
    ImageService,
    MessageService,
    OAuthService,
    PresignedUrlService,
    UserService,
)
from .storage import S3Storage, get_storage


# Security scheme; missing credentials are answered with 401 below
security = HTTPBearer(auto_error=False)


# Repository dependencies
async def get_user_repository(
    session: AsyncSession = Depends(get_session)
) -> UserRepository:
    """Get UserRepository instance."""
    return UserRepository(User, session)


async def get_user_block_repository(
    session: AsyncSession = Depends(get_session)
) -> UserBlockRepository:
    return UserBlockRepository(UserBlock, session)


async def get_chat_repository(
    session: AsyncSession = Depends(get_session)
) -> ChatRepository:
    """Get ChatRepository instance."""
    return ChatRepository(Chat, session)


async def get_message_repository(
    session: AsyncSession = Depends(get_session)
) -> MessageRepository:
    """Get MessageRepository instance."""
    return MessageRepository(Message, session)


async def get_image_repository(
    session: AsyncSession = Depends(get_session)
) -> ImageRepository:
    return ImageRepository(Image, session)


async def get_pending_upload_repository(
    session: AsyncSession = Depends(get_session)
) -> PendingUploadRepository:
    return PendingUploadRepository(PendingUpload, session)


# Outbound HTTP client for OAuth providers
async def get_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(timeout=10.0) as client:
        yield client


def get_storage_dep() -> S3Storage:
    """Object storage; 503 when no bucket is configured."""
    return get_storage()


# Service dependencies
async def get_auth_service(
    user_repo: UserRepository = Depends(get_user_repository),
) -> AuthService:
    """Get AuthService instance."""
    return AuthService(user_repo)


async def get_oauth_service(
    user_repo: UserRepository = Depends(get_user_repository),
    http_client: httpx.AsyncClient = Depends(get_http_client),
) -> OAuthService:
    return OAuthService(user_repo, http_client)


async def get_user_service(
    user_repo: UserRepository = Depends(get_user_repository),
    block_repo: UserBlockRepository = Depends(get_user_block_repository),
    image_repo: ImageRepository = Depends(get_image_repository),
) -> UserService:
    return UserService(user_repo, block_repo, image_repo)


async def get_chat_service(
    chat_repo: ChatRepository = Depends(get_chat_repository),
    user_repo: UserRepository = Depends(get_user_repository),
    block_repo: UserBlockRepository = Depends(get_user_block_repository),
    image_repo: ImageRepository = Depends(get_image_repository),
) -> ChatService:
    return ChatService(chat_repo, user_repo, block_repo, image_repo)


async def get_message_service(
    message_repo: MessageRepository = Depends(get_message_repository),
    chat_repo: ChatRepository = Depends(get_chat_repository),
    block_repo: UserBlockRepository = Depends(get_user_block_repository),
    image_repo: ImageRepository = Depends(get_image_repository),
) -> MessageService:
    return MessageService(message_repo, chat_repo, block_repo, image_repo)


async def get_image_service(
    image_repo: ImageRepository = Depends(get_image_repository),
    user_repo: UserRepository = Depends(get_user_repository),
    chat_repo: ChatRepository = Depends(get_chat_repository),
    message_repo: MessageRepository = Depends(get_message_repository),
    pending_repo: PendingUploadRepository = Depends(get_pending_upload_repository),
) -> ImageService:
    return ImageService(image_repo, user_repo, chat_repo, message_repo, pending_repo)


async def get_presigned_url_service(
    pending_repo: PendingUploadRepository = Depends(get_pending_upload_repository),
    image_repo: ImageRepository = Depends(get_image_repository),
    chat_repo: ChatRepository = Depends(get_chat_repository),
    message_repo: MessageRepository = Depends(get_message_repository),
    image_service: ImageService = Depends(get_image_service),
    storage: S3Storage = Depends(get_storage_dep),
) -> PresignedUrlService:
    return PresignedUrlService(
        pending_repo, image_repo, chat_repo, message_repo, image_service, storage
    )


# Authentication dependencies
async def get_current_user_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> TokenPayload:
    """
    Get current user from JWT token.

    Raises:
        HTTPException: If token is missing, invalid or expired
    """
    payload = verify_jwt_token(credentials.credentials, expected_type="access") if credentials else None

    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return payload


async def get_current_user(
    payload: TokenPayload = Depends(get_current_user_payload),
    user_repo: UserRepository = Depends(get_user_repository),
) -> User:
    """
    Get current authenticated user.

    Raises:
        HTTPException: If user not found
    """
    user = await user_repo.get(UUID(payload.sub))

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user
