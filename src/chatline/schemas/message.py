"""Message schemas."""

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .user import UserPublicResponse


class MessageCreate(BaseModel):
    """Schema for sending a message."""
    type: Literal["text", "image"] = "text"
    content: Optional[str] = Field(None, max_length=5000)
    reply_to_id: Optional[UUID] = None


class MessageUpdate(BaseModel):
    """Schema for editing a message."""
    content: str = Field(..., min_length=1, max_length=5000)


class MessageResponse(BaseModel):
    """Schema for message response."""
    id: UUID
    chat_id: UUID
    sender_id: UUID
    type: str
    content: Optional[str] = None
    image_id: Optional[UUID] = None
    image_url: Optional[str] = None
    reply_to_id: Optional[UUID] = None
    is_edited: bool
    deleted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    sender: Optional[UserPublicResponse] = None

    class Config:
        from_attributes = True


class MessageListResponse(BaseModel):
    """One page of a chat's history, oldest first."""
    messages: List[MessageResponse]
    has_more: bool
    next_cursor: Optional[UUID] = None
