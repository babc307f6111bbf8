# schemas.py (Pydantic v2)
from enum import Enum
from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime


# ---------- Profiles ----------
class ProfileBase(BaseModel):
    full_name: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    banner_url: Optional[str] = None
    website_url: Optional[str] = None
    pronouns: Optional[str] = None

class ProfileWrite(ProfileBase):
    username: str

class ProfileUpdate(ProfileBase):
    """Partial update for profiles, only the fields sent are applied"""
    username: Optional[str] = None

class ProfileRead(ProfileBase):
    user_id: str
    username: str
    post_count: int
    follower_count: int
    following_count: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class ProfileView(ProfileRead):
    """Profile as seen by another user"""
    is_followed_by_me: bool = False  # viewer follows this user
    is_following: bool = False  # this user follows the viewer
    is_online: bool = False
    last_seen: Optional[datetime] = None

class RelatedProfile(ProfileView):
    """Entry of a followers/following listing"""
    is_mutual: bool = False


# ---------- Messages ----------
class DeleteMode(str, Enum):
    me = "me"
    everyone = "everyone"

class MessageBase(BaseModel):
    message: Optional[str] = None
    image_url: Optional[str] = None
    blurred_image_url: Optional[str] = None
    is_exclusive: bool = False
    price: Optional[float] = None

class MessageWrite(MessageBase):
    receiver_id: str
    replied_to: Optional[int] = None

class MessageEdit(BaseModel):
    message: str

class RepliedMessage(BaseModel):
    """Preview of the message being replied to (may be a tombstone)"""
    id: int
    sender_id: str
    message: Optional[str] = None
    image_url: Optional[str] = None
    deleted: bool

    class Config:
        from_attributes = True

class MessageRead(MessageBase):
    id: int
    schema_version: int
    channel_id: int
    sender_id: str
    receiver_id: str
    replied_to: Optional[int] = None
    replied_message: Optional[RepliedMessage] = None
    deleted: bool
    edited: bool
    delivered: bool
    seen: bool
    created_at: datetime
    edited_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class BulkDeleteRequest(BaseModel):
    message_ids: List[int]
    mode: DeleteMode = DeleteMode.me

class SkippedMessage(BaseModel):
    id: int
    reason: str  # "not_found" or "forbidden"

class BulkDeleteResult(BaseModel):
    deleted: List[int] = []
    skipped: List[SkippedMessage] = []


# ---------- Channels ----------
class ChannelRead(BaseModel):
    id: int
    user_a_id: str
    user_b_id: str
    created_at: datetime

    class Config:
        from_attributes = True

class ChannelSummary(ChannelRead):
    """Inbox entry: channel plus the other participant and a preview"""
    other_user: Optional[ProfileRead] = None
    is_online: bool = False
    last_message: Optional[MessageRead] = None
    unread_count: int = 0


# ---------- Presence ----------
class PresenceRead(BaseModel):
    user_id: str
    is_online: bool
    last_seen: Optional[datetime] = None


# ---------- Generic ----------
class MessageResponse(BaseModel):
    message: str
