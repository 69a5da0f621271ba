"""
Organizer events board.
"""
import logging
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from inoconnect.core.errors import Forbidden, NotFound
from inoconnect.db.models import Event, NotificationType, User, UserRole, event_participants
from inoconnect.db.store import add_to_set, set_members
from inoconnect.services.assets import AssetStore
from inoconnect.services.directory import Directory
from inoconnect.services.notifications import NotificationDispatcher

logger = logging.getLogger(__name__)


class EventBoard:
    def __init__(self, directory: Directory, notifications: NotificationDispatcher, assets: AssetStore):
        self._directory = directory
        self._notifications = notifications
        self._assets = assets

    async def create_event(
        self,
        db: AsyncSession,
        organizer_id: str,
        title: str,
        description: str = "",
        location: str = "",
        event_date: str = "",
        joining_deadline: str = "",
        image_url: str = "",
    ) -> Event:
        """
        Publish an event and announce it to every other user with ``NEW_EVENT``.

        Raises:
            Forbidden: If the user is not an organizer
        """
        organizer = await self._directory.require_user(db, organizer_id)
        if organizer.role != UserRole.ORGANIZER.value:
            raise Forbidden("Only organizers can publish events")
        event = Event(
            organizer_id=organizer_id,
            title=title,
            description=description,
            location=location,
            event_date=event_date,
            joining_deadline=joining_deadline,
            image_url=image_url,
        )
        db.add(event)
        await db.flush()

        result = await db.execute(select(User.id).where(User.id != organizer_id))
        recipients = list(result.scalars().all())
        await self._notifications.broadcast(
            db,
            recipients,
            NotificationType.NEW_EVENT,
            title=f"New Event: {title}",
            message=f"{organizer.username or 'An organizer'} has posted a new event.",
            related_id=event.id,
            sender_id=organizer_id,
        )
        logger.info(f"[EVENTS] {organizer_id} published event {event.id} ({title!r})")
        return event

    async def get_event(self, db: AsyncSession, event_id: str) -> Optional[Event]:
        result = await db.execute(select(Event).where(Event.id == event_id))
        return result.scalar_one_or_none()

    async def require_event(self, db: AsyncSession, event_id: str) -> Event:
        event = await self.get_event(db, event_id)
        if event is None:
            raise NotFound(f"Event {event_id} not found")
        return event

    async def list_events(self, db: AsyncSession) -> List[Event]:
        result = await db.execute(select(Event).order_by(Event.created_at.desc()))
        return list(result.scalars().all())

    async def list_organizer_events(self, db: AsyncSession, organizer_id: str) -> List[Event]:
        result = await db.execute(
            select(Event).where(Event.organizer_id == organizer_id).order_by(Event.created_at.desc())
        )
        return list(result.scalars().all())

    async def participant_ids(self, db: AsyncSession, event_id: str) -> List[str]:
        return await set_members(
            db, event_participants, "user_id", order_by=event_participants.c.joined_at, event_id=event_id,
        )

    async def join_event(self, db: AsyncSession, event_id: str, user_id: str) -> bool:
        """Register for an event; joining twice is a no-op."""
        await self.require_event(db, event_id)
        await self._directory.require_user(db, user_id)
        joined = await add_to_set(db, event_participants, event_id=event_id, user_id=user_id)
        if joined:
            logger.info(f"[EVENTS] {user_id} joined event {event_id}")
        return joined

    async def delete_event(self, db: AsyncSession, event_id: str, caller_id: str) -> None:
        event = await self.require_event(db, event_id)
        if event.organizer_id != caller_id:
            raise Forbidden("Only the organizer can delete this event")
        image_url = event.image_url
        await db.execute(delete(event_participants).where(event_participants.c.event_id == event_id))
        await db.delete(event)
        await db.flush()
        logger.info(f"[EVENTS] {caller_id} deleted event {event_id}")
        if image_url:
            await self._assets.delete(image_url)
