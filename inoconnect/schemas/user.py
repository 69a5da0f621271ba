"""
Pydantic schemas for user profiles.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from inoconnect.db.models.enums import UserRole, ConnectionStatus


class UserProfileFields(BaseModel):
    """Editable profile fields."""
    profile_image_url: Optional[str] = Field(None, description="Avatar URL")
    background_image_url: Optional[str] = Field(None, description="Header image URL")
    headline: Optional[str] = Field(None, description="One-line headline")
    university: Optional[str] = None
    faculty: Optional[str] = None
    course: Optional[str] = None
    year_of_study: Optional[str] = None
    bio: Optional[str] = None
    resume_url: Optional[str] = None
    skills: Optional[List[str]] = None
    phone_number: Optional[str] = None
    github_link: Optional[str] = None
    linkedin_link: Optional[str] = None
    portfolio_link: Optional[str] = None


class UserCreate(UserProfileFields):
    """Register the authenticated identity as a user."""
    email: str = Field(..., description="Email address")
    username: str = Field(..., min_length=1, max_length=255, description="Display name")
    role: UserRole = Field(UserRole.PARTICIPANT, description="PARTICIPANT or ORGANIZER")


class UserUpdate(UserProfileFields):
    username: Optional[str] = Field(None, min_length=1, max_length=255)


class UserRead(UserProfileFields):
    id: str
    email: Optional[str] = None
    username: str
    role: str
    connections_count: int = 0
    following_count: int = 0
    projects_completed: int = 0
    created_at: datetime

    class Config:
        from_attributes = True


class UserDetail(UserRead):
    """User with resolved connection and following id sets."""
    connection_ids: List[str] = Field(default_factory=list)
    following_ids: List[str] = Field(default_factory=list)


class ConnectionStatusRead(BaseModel):
    user_id: str
    status: ConnectionStatus


class SuggestedUser(BaseModel):
    user: UserRead
    status: ConnectionStatus


class NetworkStats(BaseModel):
    connections: int
    following: int
    pending_requests: int = 0
