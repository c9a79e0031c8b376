"""Image and presigned upload schemas."""

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ImageResponse(BaseModel):
    """Stored image metadata."""
    id: UUID
    url: str
    key: str
    user_id: Optional[UUID] = None
    chat_id: Optional[UUID] = None
    message_id: Optional[UUID] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PresignRequest(BaseModel):
    """Ask for an upload grant."""
    content_type: str = Field(..., min_length=1, max_length=100)
    file_size: Optional[int] = Field(None, ge=0)


class PresignResponse(BaseModel):
    """Upload grant: PUT the file to ``presigned_url`` then confirm ``file_key``."""
    presigned_url: str
    file_key: str
    cloudfront_url: str
    expires_at: datetime


class ConfirmUploadRequest(BaseModel):
    """Confirm that the object for a grant has been uploaded."""
    file_key: str = Field(..., min_length=1)
    type: Literal["user", "chat", "message"]
    message_id: Optional[UUID] = None


class ConfirmUploadResponse(BaseModel):
    """Result of a confirmed upload."""
    success: bool = True
    cloudfront_url: str
    image: ImageResponse
