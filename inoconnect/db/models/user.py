"""
User model and the connection/following set tables.
"""
from sqlalchemy import (
    Column, String, Integer, Text, ForeignKey, DateTime, Table, CheckConstraint, JSON
)

from ..base import Base, TimestampMixin, IdMixin, ID_LENGTH, db_metadata, utcnow
from .enums import UserRole


class User(Base, IdMixin, TimestampMixin):
    """
    Student or organizer profile.

    Connection and following ids are not columns; they live in the
    ``user_connections`` and ``user_following`` set tables.
    """
    __tablename__ = "users"

    email = Column(String(255), unique=True, index=True)
    username = Column(String(255), nullable=False, default="", index=True)  # Used as full name
    role = Column(String(50), nullable=False, default=UserRole.PARTICIPANT.value)
    profile_image_url = Column(String, default="")
    background_image_url = Column(String, default="")

    # Academic fields
    headline = Column(String(255), default="")
    university = Column(String(255), default="")
    faculty = Column(String(255), default="")
    course = Column(String(255), default="")
    year_of_study = Column(String(50), default="")

    # Biodata
    bio = Column(Text, default="")
    resume_url = Column(String, default="")
    skills = Column(JSON, default=list)

    # Contact
    phone_number = Column(String(50), default="")
    github_link = Column(String, default="")
    linkedin_link = Column(String, default="")
    portfolio_link = Column(String, default="")

    # Cached counters; the graph service keeps connections and following,
    # projects_completed is display only
    connections_count = Column(Integer, nullable=False, default=0)
    following_count = Column(Integer, nullable=False, default=0)
    projects_completed = Column(Integer, nullable=False, default=0)


# Mutual connections; both directions are stored
user_connections = Table(
    "user_connections",
    db_metadata,
    Column("user_id", String(ID_LENGTH), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("connection_id", String(ID_LENGTH), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime, nullable=False, default=utcnow),
    CheckConstraint("user_id <> connection_id", name="not_self"),
)

# Asymmetric follow relation: user_id follows following_id
user_following = Table(
    "user_following",
    db_metadata,
    Column("user_id", String(ID_LENGTH), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("following_id", String(ID_LENGTH), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True),
    Column("created_at", DateTime, nullable=False, default=utcnow),
    CheckConstraint("user_id <> following_id", name="not_self"),
)
