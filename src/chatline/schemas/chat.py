"""Chat and membership schemas."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .user import UserPublicResponse


# ============================================================================
# Requests
# ============================================================================

class ChatCreate(BaseModel):
    """Schema for creating a chat."""
    chat_type: str = Field(..., description="private or group")
    participant_ids: List[UUID] = Field(default_factory=list)
    group_name: Optional[str] = Field(None, max_length=100)
    group_avatar: Optional[str] = Field(None, max_length=1024)


class ChatUpdate(BaseModel):
    """Schema for renaming a group."""
    group_name: str = Field(..., min_length=1, max_length=100)


class AddParticipantsRequest(BaseModel):
    """Users to add to a group."""
    user_ids: List[UUID] = Field(..., min_length=1)


class SeenRequest(BaseModel):
    is_seen: Optional[bool] = None


class PinRequest(BaseModel):
    pinned: Optional[bool] = None


class MuteRequest(BaseModel):
    """Mute for ``mute_duration`` seconds; 0 unmutes, omitted mutes indefinitely."""
    mute_duration: Optional[int] = Field(None, ge=0)


# ============================================================================
# Responses
# ============================================================================

class ParticipantResponse(BaseModel):
    """Schema for chat participant."""
    user_id: UUID
    role: str
    joined_at: datetime
    user: UserPublicResponse

    class Config:
        from_attributes = True


class ChatResponse(BaseModel):
    """Chat with its participants."""
    id: UUID
    chat_type: str
    group_name: Optional[str] = None
    group_avatar: Optional[str] = None
    created_by: Optional[UUID] = None
    last_message: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    participants: List[ParticipantResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class UserChatResponse(BaseModel):
    """A chat as it appears in one user's chat list."""
    id: UUID
    chat_id: UUID
    role: str
    is_seen: bool
    pinned: bool
    muted_until: Optional[datetime] = None
    is_muted: bool = False
    updated_at: datetime
    chat: ChatResponse

    class Config:
        from_attributes = True


class MembershipResponse(BaseModel):
    """Per-user flags of a chat membership."""
    chat_id: UUID
    is_seen: bool
    pinned: bool
    muted_until: Optional[datetime] = None
    is_muted: bool = False

    class Config:
        from_attributes = True
