"""
Pydantic schemas for in-app notifications.
"""
from datetime import datetime
from typing import List

from pydantic import BaseModel, Field


class NotificationRead(BaseModel):
    id: str
    user_id: str
    type: str
    title: str
    message: str
    related_id: str
    sender_id: str
    timestamp: datetime
    is_read: bool
    actionable: bool = False

    class Config:
        from_attributes = True


class NotificationInbox(BaseModel):
    """Inbox split into items awaiting a decision and plain information."""
    actionable: List[NotificationRead] = Field(default_factory=list)
    informational: List[NotificationRead] = Field(default_factory=list)
    unread_count: int = 0


class MarkReadRequest(BaseModel):
    ids: List[str] = Field(default_factory=list)


class MarkReadResult(BaseModel):
    updated: int


class UnreadCount(BaseModel):
    unread_count: int
