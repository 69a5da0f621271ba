"""
Organizer event model.
"""
from sqlalchemy import Column, String, Text, ForeignKey, DateTime, Table

from ..base import Base, IdMixin, TimestampMixin, ID_LENGTH, db_metadata, utcnow


class Event(Base, IdMixin, TimestampMixin):
    __tablename__ = "events"

    organizer_id = Column(String(ID_LENGTH), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, default="")
    location = Column(String(255), default="")
    image_url = Column(String, default="")
    event_date = Column(String(50), default="")
    joining_deadline = Column(String(50), default="")


event_participants = Table(
    "event_participants",
    db_metadata,
    Column("event_id", String(ID_LENGTH), ForeignKey("events.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", String(ID_LENGTH), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("joined_at", DateTime, nullable=False, default=utcnow),
)
