"""
Per-user live streams exposed over the WebSocket.

Each stream pairs the topics it watches with a loader that renders a
JSON-ready snapshot in a fresh session.
"""
import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from inoconnect.core.errors import Forbidden, InvalidTarget
from inoconnect.realtime.hub import LiveQuery, Topic, topic
from inoconnect.schemas.chat import ChannelRead, MessageRead
from inoconnect.schemas.connection import ConnectionRequestRead
from inoconnect.schemas.notification import NotificationRead
from inoconnect.schemas.project import MilestoneRead, ProjectRead
from inoconnect.schemas.user import NetworkStats
from inoconnect.services.notifications import is_actionable
from inoconnect.services.projects import ProjectRecord

if TYPE_CHECKING:
    from inoconnect.services.container import ServiceContainer

logger = logging.getLogger(__name__)


class StreamName(str, Enum):
    INCOMING_REQUESTS = "incoming_requests"
    PROJECTS = "projects"
    CHANNELS = "channels"
    NOTIFICATIONS = "notifications"
    MESSAGES = "messages"
    NETWORK_STATS = "network_stats"


def project_to_dict(record: ProjectRecord) -> dict:
    project = record.project
    return ProjectRead(
        id=project.id,
        creator_id=project.creator_id,
        title=project.title,
        description=project.description or "",
        image_url=project.image_url or "",
        tags=list(project.tags or []),
        recruitment_deadline=project.recruitment_deadline or "",
        target_team_size=project.target_team_size,
        status=project.status,
        created_at=project.created_at,
        member_ids=record.member_ids,
        pending_applicant_ids=record.pending_applicant_ids,
        milestones=[MilestoneRead.model_validate(m) for m in record.milestones],
        progress=record.progress,
    ).model_dump(mode="json")


async def channel_to_dict(container: "ServiceContainer", db: AsyncSession, channel, user_id: str) -> dict:
    messaging = container.messaging
    read = ChannelRead.model_validate(channel)
    read.participant_ids = await messaging.participant_ids(db, channel.id)
    read.unread_count = await messaging.unread_count(db, channel.id, user_id)
    return read.model_dump(mode="json")


def notification_to_dict(notification) -> dict:
    read = NotificationRead.model_validate(notification)
    read.actionable = is_actionable(notification.type)
    return read.model_dump(mode="json")


async def open_stream(
    container: "ServiceContainer",
    user_id: str,
    stream: str,
    channel_id: Optional[str] = None,
) -> LiveQuery:
    """
    Subscribe ``user_id`` to a stream. The caller owns the returned query and
    must close it (``async with`` does).

    Raises:
        ValueError: If the stream name is unknown
        InvalidTarget: If the messages stream is requested without a channel
        Forbidden: If the user is not a participant of the channel
    """
    name = StreamName(stream)

    if name == StreamName.INCOMING_REQUESTS:
        async def load(db: AsyncSession) -> List[Any]:
            requests = await container.connections.list_incoming(db, user_id)
            return [ConnectionRequestRead.model_validate(r).model_dump(mode="json") for r in requests]
        topics = [topic(Topic.REQUESTS, user_id)]

    elif name == StreamName.PROJECTS:
        async def load(db: AsyncSession) -> List[Any]:
            projects = await container.projects.list_user_projects(db, user_id)
            return [
                project_to_dict(await container.projects.get_project_record(db, project.id))
                for project in projects
            ]
        topics = [topic(Topic.PROJECTS, user_id)]

    elif name == StreamName.CHANNELS:
        async def load(db: AsyncSession) -> List[Any]:
            channels = await container.messaging.list_channels(db, user_id)
            return [await channel_to_dict(container, db, channel, user_id) for channel in channels]
        topics = [topic(Topic.CHANNELS, user_id)]

    elif name == StreamName.NOTIFICATIONS:
        async def load(db: AsyncSession) -> List[Any]:
            notifications = await container.notifications.list_for_user(db, user_id)
            return [notification_to_dict(n) for n in notifications]
        topics = [topic(Topic.NOTIFICATIONS, user_id)]

    elif name == StreamName.MESSAGES:
        if not channel_id:
            raise InvalidTarget("The messages stream needs a channel_id")
        async with container.session_factory() as db:
            if not await container.messaging.is_participant(db, channel_id, user_id):
                raise Forbidden(f"User {user_id} is not a participant of channel {channel_id}")

        async def load(db: AsyncSession) -> List[Any]:
            # Participation can end while the stream is open
            if not await container.messaging.is_participant(db, channel_id, user_id):
                raise Forbidden(f"User {user_id} is no longer a participant of channel {channel_id}")
            messages = await container.messaging.list_messages(db, channel_id)
            return [MessageRead.model_validate(m).model_dump(mode="json") for m in messages]
        topics = [topic(Topic.MESSAGES, channel_id)]

    else:
        async def load(db: AsyncSession) -> Any:
            stats = await container.connections.network_stats(db, user_id)
            return NetworkStats(**stats).model_dump(mode="json")
        # Pending request count is part of the stats
        topics = [topic(Topic.STATS, user_id), topic(Topic.REQUESTS, user_id)]

    logger.debug(f"[REALTIME] Opening {name.value} stream for {user_id}")
    return container.hub.subscribe(topics, load)
