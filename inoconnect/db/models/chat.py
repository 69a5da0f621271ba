"""
Chat channel, participant and message models.
"""
from sqlalchemy import Column, String, Text, Boolean, ForeignKey, DateTime, Table

from ..base import Base, IdMixin, ID_LENGTH, db_metadata, utcnow
from .enums import ChannelType


class ChatChannel(Base):
    """
    Direct (two users) or project group conversation.

    Direct ids are derived from the participant pair and group ids from the
    project id, so any participant can address a channel without a lookup.
    The ``last_*`` columns are the denormalized preview shown in channel lists.
    """
    __tablename__ = "chat_channels"

    id = Column(String(2 * ID_LENGTH + 1), primary_key=True)
    type = Column(String(20), nullable=False, default=ChannelType.DIRECT.value)
    project_id = Column(String(ID_LENGTH), unique=True, nullable=True)
    group_name = Column(String(255), default="")
    group_image_url = Column(String, default="")
    last_message = Column(Text, nullable=False, default="")
    last_message_timestamp = Column(DateTime, nullable=False, default=utcnow, index=True)
    last_sender_id = Column(String(ID_LENGTH), nullable=False, default="")
    created_at = Column(DateTime, nullable=False, default=utcnow)


channel_participants = Table(
    "channel_participants",
    db_metadata,
    Column("channel_id", String(2 * ID_LENGTH + 1), ForeignKey("chat_channels.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", String(ID_LENGTH), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True),
    Column("joined_at", DateTime, nullable=False, default=utcnow),
    # NULL means the participant has never opened the channel
    Column("last_read_at", DateTime, nullable=True),
)


class DirectMessage(Base, IdMixin):
    __tablename__ = "chat_messages"

    channel_id = Column(String(2 * ID_LENGTH + 1), ForeignKey("chat_channels.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(String(ID_LENGTH), nullable=False, index=True)
    sender_name = Column(String(255), default="")  # Stored to avoid extra lookups
    content = Column(Text, nullable=False, default="")
    timestamp = Column(DateTime, nullable=False, default=utcnow, index=True)
    is_read = Column(Boolean, nullable=False, default=False)

    # Optional attachment descriptor
    attachment_url = Column(String)
    attachment_type = Column(String(20))  # image, video, file
    attachment_name = Column(String(255))
    attachment_size = Column(String(50))
