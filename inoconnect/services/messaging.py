"""
Direct and project-group chat channels.
"""
import logging
from typing import List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from inoconnect.core.errors import EmptyMessage, Forbidden, InvalidTarget, NotFound
from inoconnect.db.base import utcnow
from inoconnect.db.models import (
    ChannelType, ChatChannel, DirectMessage, NotificationType, User,
    channel_participants, project_members,
)
from inoconnect.db.store import add_to_set, insert_ignore, is_member, remove_from_set, set_members
from inoconnect.realtime.hub import RealtimeHub, Topic, topic
from inoconnect.schemas.chat import Attachment
from inoconnect.services.channel_identity import (
    direct_channel_id, group_channel_id, is_group_channel, project_id_for_channel,
)
from inoconnect.services.directory import Directory
from inoconnect.services.notifications import NotificationDispatcher

logger = logging.getLogger(__name__)


def build_preview(content: str, attachment: Optional[Attachment], sender_name: Optional[str] = None) -> str:
    """
    Channel list preview for a message.

    Attachments are prefixed with their type; group previews carry the sender name.
    """
    preview = content
    if attachment is not None:
        preview = f"[{attachment.type}] {content}" if content else f"[{attachment.type}]"
    if sender_name is not None:
        preview = f"{sender_name}: {preview}"
    return preview


class MessagingChannelManager:
    """
    Provisions channels and appends messages.

    The last-message preview and the participants' read markers are written
    only here, in the same transaction as the message itself.
    """

    def __init__(self, hub: RealtimeHub, directory: Directory, notifications: NotificationDispatcher):
        self._hub = hub
        self._directory = directory
        self._notifications = notifications

    async def _touch(self, db: AsyncSession, channel_id: str, messages: bool = False, extra_users=()) -> None:
        participants = await self.participant_ids(db, channel_id)
        topics = [topic(Topic.CHANNELS, user_id) for user_id in {*participants, *extra_users}]
        if messages:
            topics.append(topic(Topic.MESSAGES, channel_id))
        self._hub.mark_changed(db, *topics)

    async def get_channel(self, db: AsyncSession, channel_id: str) -> Optional[ChatChannel]:
        result = await db.execute(
            select(ChatChannel).where(ChatChannel.id == channel_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def require_channel(self, db: AsyncSession, channel_id: str) -> ChatChannel:
        channel = await self.get_channel(db, channel_id)
        if channel is None:
            raise NotFound(f"Channel {channel_id} not found")
        return channel

    async def participant_ids(self, db: AsyncSession, channel_id: str) -> List[str]:
        return await set_members(
            db, channel_participants, "user_id",
            order_by=channel_participants.c.joined_at, channel_id=channel_id,
        )

    async def is_participant(self, db: AsyncSession, channel_id: str, user_id: str) -> bool:
        return await is_member(db, channel_participants, channel_id=channel_id, user_id=user_id)

    async def require_participant(self, db: AsyncSession, channel_id: str, user_id: str) -> ChatChannel:
        channel = await self.require_channel(db, channel_id)
        if not await self.is_participant(db, channel_id, user_id):
            raise Forbidden(f"User {user_id} is not a participant of channel {channel_id}")
        return channel

    async def get_or_create_direct_channel(self, db: AsyncSession, user_a: str, user_b: str) -> ChatChannel:
        """
        Direct channel between two users, created on first use.

        Concurrent first calls converge on one row since the id is derived from the pair.

        Raises:
            InvalidTarget: If both ids are the same user
            NotFound: If either user does not exist
        """
        if user_a == user_b:
            raise InvalidTarget("Cannot open a direct channel with yourself")
        await self._directory.require_user(db, user_a)
        await self._directory.require_user(db, user_b)
        channel_id = direct_channel_id(user_a, user_b)
        created = await insert_ignore(
            db, ChatChannel.__table__,
            id=channel_id,
            type=ChannelType.DIRECT.value,
            last_message="",
            last_message_timestamp=utcnow(),
            last_sender_id="",
        )
        for user_id in (user_a, user_b):
            await add_to_set(db, channel_participants, channel_id=channel_id, user_id=user_id)
        if created:
            logger.info(f"[CHAT] Created direct channel {channel_id}")
            await self._touch(db, channel_id)
        return await self.require_channel(db, channel_id)

    async def get_or_create_group_channel(self, db: AsyncSession, project_id: str) -> ChatChannel:
        """Group channel of a project; a new one is seeded with the current members."""
        project = await self._directory.require_project(db, project_id)
        channel_id = group_channel_id(project_id)
        created = await insert_ignore(
            db, ChatChannel.__table__,
            id=channel_id,
            type=ChannelType.PROJECT_GROUP.value,
            project_id=project_id,
            group_name=project.title,
            group_image_url=project.image_url or "",
            last_message="",
            last_message_timestamp=utcnow(),
            last_sender_id="",
        )
        if created:
            member_ids = await set_members(
                db, project_members, "user_id", order_by=project_members.c.id, project_id=project_id,
            )
            for user_id in member_ids:
                await add_to_set(db, channel_participants, channel_id=channel_id, user_id=user_id)
            logger.info(f"[CHAT] Created group channel {channel_id} with {len(member_ids)} members")
            await self._touch(db, channel_id)
        return await self.require_channel(db, channel_id)

    async def add_participant(self, db: AsyncSession, channel_id: str, user_id: str) -> bool:
        added = await add_to_set(db, channel_participants, channel_id=channel_id, user_id=user_id)
        if added:
            await self._touch(db, channel_id)
        return added

    async def remove_participant(self, db: AsyncSession, channel_id: str, user_id: str) -> bool:
        removed = await remove_from_set(db, channel_participants, channel_id=channel_id, user_id=user_id)
        if removed:
            await self._touch(db, channel_id, messages=True, extra_users=(user_id,))
        return removed

    async def delete_channel(self, db: AsyncSession, channel_id: str) -> bool:
        """Delete a channel with its messages and participant rows."""
        participants = await self.participant_ids(db, channel_id)
        await db.execute(
            delete(DirectMessage)
            .where(DirectMessage.channel_id == channel_id)
            .execution_options(synchronize_session=False)
        )
        await db.execute(delete(channel_participants).where(channel_participants.c.channel_id == channel_id))
        result = await db.execute(
            delete(ChatChannel).where(ChatChannel.id == channel_id).execution_options(synchronize_session=False)
        )
        if result.rowcount:
            self._hub.mark_changed(
                db, topic(Topic.MESSAGES, channel_id), *(topic(Topic.CHANNELS, u) for u in participants)
            )
            logger.info(f"[CHAT] Deleted channel {channel_id}")
        return bool(result.rowcount)

    async def send_message(
        self,
        db: AsyncSession,
        channel_id: str,
        sender_id: str,
        content: str,
        attachment: Optional[Attachment] = None,
    ) -> DirectMessage:
        """
        Append a message and update the channel preview in the same transaction.

        Raises:
            EmptyMessage: If there is neither text nor an attachment
            NotFound: If the channel does not exist
            Forbidden: If the sender is not a participant
        """
        content = content or ""
        if not content.strip() and attachment is None:
            raise EmptyMessage("A message needs text or an attachment")

        channel = await self.get_channel(db, channel_id)
        if channel is None:
            project_id = project_id_for_channel(channel_id)
            if project_id is None or await self._directory.get_project(db, project_id) is None:
                raise NotFound(f"Channel {channel_id} not found")
            # Group channel missing for an existing project; rebuild it from the member list
            logger.warning(f"[CHAT] Group channel {channel_id} was missing, recreating from project")
            channel = await self.get_or_create_group_channel(db, project_id)

        if not await self.is_participant(db, channel_id, sender_id):
            raise Forbidden(f"User {sender_id} is not a participant of channel {channel_id}")

        sender_name = await self._directory.display_name(db, sender_id)
        now = utcnow()
        message = DirectMessage(
            channel_id=channel_id,
            sender_id=sender_id,
            sender_name=sender_name,
            content=content,
            timestamp=now,
            is_read=False,
        )
        if attachment is not None:
            message.attachment_url = attachment.url
            message.attachment_type = attachment.type
            message.attachment_name = attachment.name
            message.attachment_size = attachment.size
        db.add(message)

        group = channel.type == ChannelType.PROJECT_GROUP.value
        channel.last_message = build_preview(content, attachment, sender_name if group else None)
        channel.last_message_timestamp = now
        channel.last_sender_id = sender_id
        await db.flush()

        await db.execute(
            update(channel_participants)
            .where(channel_participants.c.channel_id == channel_id, channel_participants.c.user_id == sender_id)
            .values(last_read_at=now)
        )
        await self._touch(db, channel_id, messages=True)
        logger.info(f"[CHAT] {sender_id} posted to {channel_id}")
        return message

    async def send_direct_message(
        self,
        db: AsyncSession,
        sender_id: str,
        recipient_id: str,
        content: str,
        attachment: Optional[Attachment] = None,
    ) -> DirectMessage:
        """Send to a user, creating the direct channel if needed, and notify the recipient."""
        channel = await self.get_or_create_direct_channel(db, sender_id, recipient_id)
        message = await self.send_message(db, channel.id, sender_id, content, attachment)
        await self._notifications.emit(
            db,
            recipient_id,
            NotificationType.NEW_DM,
            title="New Message",
            message=f"{message.sender_name or 'Someone'} sent you a message.",
            related_id=channel.id,
            sender_id=sender_id,
        )
        return message

    async def rename_group(self, db: AsyncSession, channel_id: str, new_name: str) -> ChatChannel:
        """Rename a group channel. Permission is checked by the caller."""
        new_name = (new_name or "").strip()
        if not new_name:
            raise InvalidTarget("Group name must not be empty")
        channel = await self.require_channel(db, channel_id)
        if channel.type != ChannelType.PROJECT_GROUP.value:
            raise InvalidTarget("Only group channels can be renamed")
        channel.group_name = new_name
        await db.flush()
        await self._touch(db, channel_id)
        logger.info(f"[CHAT] Renamed {channel_id} to {new_name!r}")
        return channel

    async def mark_channel_read(self, db: AsyncSession, channel_id: str, user_id: str) -> None:
        await self.require_participant(db, channel_id, user_id)
        now = utcnow()
        await db.execute(
            update(channel_participants)
            .where(channel_participants.c.channel_id == channel_id, channel_participants.c.user_id == user_id)
            .values(last_read_at=now)
        )
        await db.execute(
            update(DirectMessage)
            .where(
                DirectMessage.channel_id == channel_id,
                DirectMessage.sender_id != user_id,
                DirectMessage.is_read.is_(False),
            )
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        self._hub.mark_changed(db, topic(Topic.CHANNELS, user_id), topic(Topic.MESSAGES, channel_id))

    async def unread_count(self, db: AsyncSession, channel_id: str, user_id: str) -> int:
        """Messages from others newer than the user's read marker."""
        result = await db.execute(
            select(channel_participants.c.last_read_at).where(
                channel_participants.c.channel_id == channel_id,
                channel_participants.c.user_id == user_id,
            )
        )
        last_read_at = result.scalar_one_or_none()
        stmt = select(func.count()).select_from(DirectMessage).where(
            DirectMessage.channel_id == channel_id,
            DirectMessage.sender_id != user_id,
        )
        if last_read_at is not None:
            stmt = stmt.where(DirectMessage.timestamp > last_read_at)
        result = await db.execute(stmt)
        return result.scalar_one()

    async def list_channels(self, db: AsyncSession, user_id: str) -> List[ChatChannel]:
        """Channels of a user, most recent preview first."""
        result = await db.execute(
            select(ChatChannel)
            .join(channel_participants, channel_participants.c.channel_id == ChatChannel.id)
            .where(channel_participants.c.user_id == user_id)
            .order_by(ChatChannel.last_message_timestamp.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def list_messages(self, db: AsyncSession, channel_id: str, limit: Optional[int] = None) -> List[DirectMessage]:
        """Messages oldest first; with ``limit`` only the newest ``limit`` are returned."""
        if limit is None:
            result = await db.execute(
                select(DirectMessage)
                .where(DirectMessage.channel_id == channel_id)
                .order_by(DirectMessage.timestamp)
                .execution_options(populate_existing=True)
            )
            return list(result.scalars().all())
        result = await db.execute(
            select(DirectMessage)
            .where(DirectMessage.channel_id == channel_id)
            .order_by(DirectMessage.timestamp.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return list(reversed(result.scalars().all()))

    async def other_participant(self, db: AsyncSession, channel: ChatChannel, user_id: str) -> Optional[User]:
        """The counterpart in a direct channel."""
        if is_group_channel(channel.id):
            return None
        for participant_id in await self.participant_ids(db, channel.id):
            if participant_id != user_id:
                return await self._directory.get_user(db, participant_id)
        return None
