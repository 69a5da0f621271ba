"""
Enumerations stored as plain strings in the database.
"""
from enum import Enum


class UserRole(str, Enum):
    PARTICIPANT = "PARTICIPANT"
    ORGANIZER = "ORGANIZER"


class RequestStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class ProjectStatus(str, Enum):
    ACTIVE = "Active"
    COMPLETED = "Completed"


class ChannelType(str, Enum):
    DIRECT = "Direct"
    PROJECT_GROUP = "ProjectGroup"


class NotificationType(str, Enum):
    PROJECT_INVITE = "PROJECT_INVITE"              # "You have been invited to join X"
    PROJECT_DECLINE = "PROJECT_DECLINE"            # "Your request to join X was declined"
    NEW_FOLLOWER = "NEW_FOLLOWER"                  # "User X wants to connect"
    NEW_DM = "NEW_DM"                              # "New message from User X"
    SYSTEM_ALERT = "SYSTEM_ALERT"
    CONNECTION_ACCEPTED = "CONNECTION_ACCEPTED"
    PROJECT_JOIN_REQUEST = "PROJECT_JOIN_REQUEST"
    PROJECT_REMOVAL = "PROJECT_REMOVAL"
    PROJECT_ACCEPTED = "PROJECT_ACCEPTED"
    NEW_EVENT = "NEW_EVENT"
    WELCOME_MESSAGE = "WELCOME_MESSAGE"


# Kinds the recipient must act on (accept/decline); everything else is informational
ACTIONABLE_NOTIFICATION_TYPES = frozenset({
    NotificationType.PROJECT_INVITE,
    NotificationType.PROJECT_JOIN_REQUEST,
})


class ConnectionStatus(str, Enum):
    """Relationship of another user as seen from the current user."""
    NOT_CONNECTED = "not_connected"
    PENDING_SENT = "pending_sent"
    PENDING_RECEIVED = "pending_received"
    CONNECTED = "connected"
