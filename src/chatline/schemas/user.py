"""User schemas."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class UserPublicResponse(BaseModel):
    """What other users can see about a user."""
    id: UUID
    name: str
    avatar_url: Optional[str] = None
    status_message: Optional[str] = None
    last_seen_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserResponse(UserPublicResponse):
    """User response schema."""
    email: Optional[str] = None
    provider: str
    email_verified: bool
    created_at: datetime


class MeResponse(UserResponse):
    """Profile of the authenticated user."""
    blocked_user_ids: List[UUID] = Field(default_factory=list)
    has_password: bool = False
    google_linked: bool = False
    facebook_linked: bool = False


class UserUpdate(BaseModel):
    """User profile update schema."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    status_message: Optional[str] = Field(None, max_length=255)


class BlockRequest(BaseModel):
    """Block or unblock a user."""
    user_id: UUID
