"""
Pydantic schemas for projects, milestones and membership events.
"""
from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from inoconnect.db.models.enums import NotificationType


class ProjectCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    image_url: str = ""
    tags: List[str] = Field(default_factory=list, description="Role and course tags")
    recruitment_deadline: str = ""
    target_team_size: int = Field(1, ge=1, description="Members wanted, creator included")


class MilestoneCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)


class MilestoneRead(BaseModel):
    id: str
    title: str
    is_completed: bool
    position: int

    class Config:
        from_attributes = True


class ProjectRead(BaseModel):
    id: str
    creator_id: str
    title: str
    description: str = ""
    image_url: str = ""
    tags: List[str] = Field(default_factory=list)
    recruitment_deadline: str = ""
    target_team_size: int
    status: str
    created_at: datetime
    member_ids: List[str] = Field(default_factory=list)
    pending_applicant_ids: List[str] = Field(default_factory=list)
    milestones: List[MilestoneRead] = Field(default_factory=list)
    progress: float = 0.0

    class Config:
        from_attributes = True


class InviteCreate(BaseModel):
    user_id: str = Field(..., min_length=1)


class MembershipEventResolve(BaseModel):
    """Accept or decline an actionable membership notification."""
    kind: NotificationType = Field(..., description="PROJECT_JOIN_REQUEST or PROJECT_INVITE")
    subject_id: str = Field(..., min_length=1, description="Applicant (join request) or invitee (invite)")
    accept: bool


class MembershipResult(BaseModel):
    changed: bool
    project: ProjectRead
