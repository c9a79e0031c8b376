"""Authentication schemas."""

from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from .user import UserResponse


class RegisterRequest(BaseModel):
    """Registration request."""
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)


class LoginRequest(BaseModel):
    """Login request."""
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    """JWT token response."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class LoginResponse(TokenResponse):
    """Tokens plus the user they were issued to."""
    user: UserResponse


class RefreshRequest(BaseModel):
    """Refresh request. Falls back to the refresh cookie when empty."""
    refresh_token: Optional[str] = None


class AccessTokenResponse(BaseModel):
    """Freshly issued access token."""
    access_token: str
    token_type: str = "bearer"


class AuthorizationUrlResponse(BaseModel):
    """Where to send the browser to start an OAuth flow."""
    authorization_url: str


class StatusMessage(BaseModel):
    """Plain confirmation message."""
    message: str
