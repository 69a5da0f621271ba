"""
Import all models to ensure they are registered with SQLAlchemy.
"""
from ..base import Base
from .enums import (
    UserRole, RequestStatus, ProjectStatus, ChannelType, NotificationType,
    ConnectionStatus, ACTIONABLE_NOTIFICATION_TYPES,
)
from .user import User, user_connections, user_following
from .connection import ConnectionRequest
from .project import Project, Milestone, project_members, project_applicants
from .chat import ChatChannel, DirectMessage, channel_participants
from .notification import AppNotification
from .event import Event, event_participants
