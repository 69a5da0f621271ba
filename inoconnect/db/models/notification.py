"""
In-app notification model.
"""
from sqlalchemy import Column, String, Text, Boolean, ForeignKey, DateTime, Index

from ..base import Base, IdMixin, ID_LENGTH, utcnow
from .enums import NotificationType


class AppNotification(Base, IdMixin):
    """
    Notification owned by its recipient.

    ``related_id`` points at a project, user, channel or request depending on ``type``.
    """
    __tablename__ = "notifications"

    user_id = Column(String(ID_LENGTH), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(40), nullable=False, default=NotificationType.SYSTEM_ALERT.value)
    title = Column(String(255), nullable=False, default="")
    message = Column(Text, nullable=False, default="")
    related_id = Column(String(2 * ID_LENGTH + 1), nullable=False, default="", index=True)
    sender_id = Column(String(ID_LENGTH), nullable=False, default="")
    timestamp = Column(DateTime, nullable=False, default=utcnow)
    is_read = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("ix_notifications_user_read", "user_id", "is_read"),
    )
