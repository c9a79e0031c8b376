"""Security utilities for authentication."""

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

import bcrypt
import jwt
from pydantic import BaseModel

from ..config import settings


JWT_ALGORITHM = "HS256"

OAUTH_STATE_EXPIRE_MINUTES = 10


class TokenPayload(BaseModel):
    """JWT token payload."""
    sub: str  # User ID
    type: str  # "access" or "refresh"
    exp: int  # Expiration timestamp
    iat: int  # Issued at timestamp


class OAuthStatePayload(BaseModel):
    """Signed OAuth ``state`` parameter."""
    provider: str
    link_user_id: Optional[str] = None
    type: str
    exp: int
    iat: int


def hash_password(password: str) -> str:
    """Hash password using bcrypt."""
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify password against hash. Accounts without a password never match."""
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            hashed_password.encode("utf-8")
        )
    except ValueError:
        return False


def create_jwt_token(
    user_id: UUID,
    token_type: str = "access",
    expires_minutes: Optional[int] = None,
    expires_days: Optional[int] = None,
) -> str:
    """
    Create JWT token.

    Args:
        user_id: User UUID
        token_type: "access" or "refresh"
        expires_minutes: Token expiry in minutes (for access tokens)
        expires_days: Token expiry in days (for refresh tokens)

    Returns:
        Encoded JWT token
    """
    now = datetime.now(timezone.utc)

    if expires_minutes:
        exp = now + timedelta(minutes=expires_minutes)
    elif expires_days:
        exp = now + timedelta(days=expires_days)
    elif token_type == "access":
        exp = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    else:
        exp = now + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)

    payload = {
        "sub": str(user_id),
        "type": token_type,
        "exp": int(exp.timestamp()),
        "iat": int(now.timestamp()),
    }

    return jwt.encode(payload, settings.JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_jwt_token(token: str) -> TokenPayload:
    """
    Decode and verify JWT token.

    Raises:
        jwt.ExpiredSignatureError: Token expired
        jwt.InvalidTokenError: Token invalid
    """
    payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[JWT_ALGORITHM])
    return TokenPayload(**payload)


def verify_jwt_token(token: str, expected_type: str = "access") -> Optional[TokenPayload]:
    """
    Verify JWT token and return payload if valid.

    Args:
        token: JWT token string
        expected_type: Expected token type ("access" or "refresh")

    Returns:
        TokenPayload if valid, None if invalid
    """
    try:
        payload = decode_jwt_token(token)
    except (jwt.InvalidTokenError, ValueError):
        return None
    if payload.type != expected_type:
        return None
    return payload


def create_oauth_state(provider: str, link_user_id: Optional[UUID] = None) -> str:
    """Sign the OAuth state naming the provider and, when linking, the user."""
    now = datetime.now(timezone.utc)
    payload = {
        "provider": provider,
        "type": "oauth_state",
        "exp": int((now + timedelta(minutes=OAUTH_STATE_EXPIRE_MINUTES)).timestamp()),
        "iat": int(now.timestamp()),
    }
    if link_user_id is not None:
        payload["link_user_id"] = str(link_user_id)
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=JWT_ALGORITHM)


def verify_oauth_state(state: str, provider: str) -> Optional[OAuthStatePayload]:
    """Return the state payload if it is valid and issued for ``provider``."""
    try:
        payload = OAuthStatePayload(
            **jwt.decode(state, settings.JWT_SECRET, algorithms=[JWT_ALGORITHM])
        )
    except (jwt.InvalidTokenError, ValueError):
        return None
    if payload.type != "oauth_state" or payload.provider != provider:
        return None
    return payload
