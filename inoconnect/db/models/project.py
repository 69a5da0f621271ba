"""
Project, milestone and membership set tables.
"""
from sqlalchemy import (
    Column, String, Integer, Text, Boolean, ForeignKey, DateTime, Table, UniqueConstraint, JSON
)

from ..base import Base, IdMixin, TimestampMixin, ID_LENGTH, db_metadata, utcnow
from .enums import ProjectStatus


class Project(Base, IdMixin, TimestampMixin):
    """
    Collaborative student project.

    Members and pending applicants live in ``project_members`` and
    ``project_applicants``; the creator is always the first member row.
    """
    __tablename__ = "projects"

    creator_id = Column(String(ID_LENGTH), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, default="")
    image_url = Column(String, default="")
    tags = Column(JSON, default=list)  # e.g. ["AI Engineer", "WIA2001"]
    recruitment_deadline = Column(String(50), default="")
    target_team_size = Column(Integer, nullable=False, default=1)
    status = Column(String(20), nullable=False, default=ProjectStatus.ACTIVE.value, index=True)


class Milestone(Base, IdMixin):
    __tablename__ = "milestones"

    project_id = Column(String(ID_LENGTH), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    is_completed = Column(Boolean, nullable=False, default=False)
    position = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)


# Ordered member set: the surrogate key records join order
project_members = Table(
    "project_members",
    db_metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("project_id", String(ID_LENGTH), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("user_id", String(ID_LENGTH), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("joined_at", DateTime, nullable=False, default=utcnow),
    UniqueConstraint("project_id", "user_id", name="uq_project_members_project_user"),
)

project_applicants = Table(
    "project_applicants",
    db_metadata,
    Column("project_id", String(ID_LENGTH), ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", String(ID_LENGTH), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True),
    Column("requested_at", DateTime, nullable=False, default=utcnow),
)
