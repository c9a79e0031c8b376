"""Local authentication service."""

from typing import Tuple
from uuid import UUID

from ..config import settings
from ..core.exceptions import (
    EmailAlreadyExistsError,
    InvalidCredentialsError,
    InvalidTokenError,
)
from ..core.security import create_jwt_token, hash_password, verify_jwt_token, verify_password
from ..database import User, utcnow
from ..repositories.user_repository import UserRepository
from ..schemas.auth import TokenResponse


class AuthService:
    """Registration, password login and token refresh."""

    def __init__(self, user_repo: UserRepository):
        self.user_repo = user_repo

    async def register(self, name: str, email: str, password: str) -> User:
        """Register a local account."""
        if await self.user_repo.email_exists(email):
            raise EmailAlreadyExistsError(f"Email {email} already registered")

        return await self.user_repo.create(
            name=name.strip(),
            email=email.lower(),
            password_hash=hash_password(password),
            provider="local",
            email_verified=False,
        )

    async def login(self, email: str, password: str) -> Tuple[User, TokenResponse]:
        """Check credentials and return the user with fresh tokens."""
        user = await self.user_repo.get_by_email(email)

        # OAuth-only accounts have no password hash and never match
        if not user or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError("Invalid email or password")

        await self.user_repo.update(user, last_seen_at=utcnow())
        return user, self.issue_tokens(user)

    @staticmethod
    def issue_tokens(user: User) -> TokenResponse:
        """Create an access/refresh token pair for a user."""
        return TokenResponse(
            access_token=create_jwt_token(
                user_id=user.id,
                token_type="access",
                expires_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
            ),
            refresh_token=create_jwt_token(
                user_id=user.id,
                token_type="refresh",
                expires_days=settings.REFRESH_TOKEN_EXPIRE_DAYS,
            ),
        )

    async def refresh_access_token(self, refresh_token: str) -> str:
        """Generate new access token from refresh token."""
        payload = verify_jwt_token(refresh_token, expected_type="refresh")
        if not payload:
            raise InvalidTokenError("Invalid or expired refresh token")

        user = await self.user_repo.get(UUID(payload.sub))
        if not user:
            raise InvalidTokenError("User no longer exists")

        return create_jwt_token(
            user_id=user.id,
            token_type="access",
            expires_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
        )
