"""
Pydantic schemas for chat channels and messages.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class Attachment(BaseModel):
    """Uploaded file descriptor; upload itself happens outside this service."""
    url: str = Field(..., min_length=1)
    type: str = Field(..., description="image, video or file")
    name: Optional[str] = None
    size: Optional[str] = None


class MessageCreate(BaseModel):
    content: str = ""
    attachment: Optional[Attachment] = None


class MessageRead(BaseModel):
    id: str
    channel_id: str
    sender_id: str
    sender_name: Optional[str] = None
    content: str
    timestamp: datetime
    is_read: bool
    attachment_url: Optional[str] = None
    attachment_type: Optional[str] = None
    attachment_name: Optional[str] = None
    attachment_size: Optional[str] = None

    class Config:
        from_attributes = True


class ChannelRead(BaseModel):
    id: str
    type: str
    project_id: Optional[str] = None
    group_name: Optional[str] = None
    group_image_url: Optional[str] = None
    last_message: str
    last_message_timestamp: datetime
    last_sender_id: str
    participant_ids: List[str] = Field(default_factory=list)
    unread_count: int = 0

    class Config:
        from_attributes = True


class ChannelRename(BaseModel):
    group_name: str = Field(..., min_length=1, max_length=255)


class ReadReceipt(BaseModel):
    channel_id: str
    unread_count: int
