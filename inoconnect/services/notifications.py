"""
Notification fan-out and inbox state.
"""
import logging
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from inoconnect.db.base import utcnow
from inoconnect.db.models import AppNotification, NotificationType, ACTIONABLE_NOTIFICATION_TYPES
from inoconnect.realtime.hub import RealtimeHub, Topic, topic

logger = logging.getLogger(__name__)

Kind = Union[NotificationType, str]


def _kind_value(kind: Kind) -> str:
    return NotificationType(kind).value


def is_actionable(kind: Kind) -> bool:
    """True for kinds the recipient must accept or decline."""
    return NotificationType(kind) in ACTIONABLE_NOTIFICATION_TYPES


def partition(notifications: Iterable[AppNotification]) -> Tuple[List[AppNotification], List[AppNotification]]:
    """Split notifications into (actionable, informational), keeping order."""
    actionable, informational = [], []
    for notification in notifications:
        if is_actionable(notification.type):
            actionable.append(notification)
        else:
            informational.append(notification)
    return actionable, informational


class NotificationDispatcher:
    """
    Creates notification records as a side effect of state transitions.

    Only the recipient marks its notifications read; only the recipient or the
    service that resolved an actionable item deletes them.
    """

    def __init__(self, hub: RealtimeHub):
        self._hub = hub

    def _touch(self, db: AsyncSession, *user_ids: str) -> None:
        self._hub.mark_changed(db, *(topic(Topic.NOTIFICATIONS, user_id) for user_id in user_ids))

    async def emit(
        self,
        db: AsyncSession,
        user_id: str,
        kind: Kind,
        title: str,
        message: str,
        related_id: str = "",
        sender_id: str = "",
    ) -> AppNotification:
        """
        Append a notification to a user's inbox.

        Raises:
            ValueError: If the recipient id is empty or the kind is unknown
        """
        if not user_id:
            raise ValueError("Notification recipient is required")
        notification = AppNotification(
            user_id=user_id,
            type=_kind_value(kind),
            title=title,
            message=message,
            related_id=related_id or "",
            sender_id=sender_id or "",
            timestamp=utcnow(),
            is_read=False,
        )
        db.add(notification)
        await db.flush()
        self._touch(db, user_id)
        logger.info(f"[NOTIFICATIONS] {notification.type} -> {user_id} (related {related_id or '-'})")
        return notification

    async def broadcast(
        self,
        db: AsyncSession,
        recipients: Iterable[str],
        kind: Kind,
        title: str,
        message: str,
        related_id: str = "",
        sender_id: str = "",
    ) -> int:
        """Emit the same notification to many users; returns how many were created."""
        recipients = [r for r in dict.fromkeys(recipients) if r]
        if not recipients:
            return 0
        now = utcnow()
        kind_value = _kind_value(kind)
        db.add_all([
            AppNotification(
                user_id=user_id,
                type=kind_value,
                title=title,
                message=message,
                related_id=related_id or "",
                sender_id=sender_id or "",
                timestamp=now,
                is_read=False,
            )
            for user_id in recipients
        ])
        await db.flush()
        self._touch(db, *recipients)
        logger.info(f"[NOTIFICATIONS] Broadcast {kind_value} to {len(recipients)} users")
        return len(recipients)

    async def mark_read(self, db: AsyncSession, user_id: str, notification_ids: Iterable[str]) -> int:
        """
        Mark notifications read. Ids already read or owned by someone else are ignored.

        Returns:
            int: Number of notifications that changed
        """
        ids = list(set(notification_ids))
        if not ids:
            return 0
        result = await db.execute(
            update(AppNotification)
            .where(
                AppNotification.user_id == user_id,
                AppNotification.id.in_(ids),
                AppNotification.is_read.is_(False),
            )
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            self._touch(db, user_id)
        return result.rowcount

    async def mark_all_read(self, db: AsyncSession, user_id: str) -> int:
        result = await db.execute(
            update(AppNotification)
            .where(AppNotification.user_id == user_id, AppNotification.is_read.is_(False))
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            self._touch(db, user_id)
        return result.rowcount

    async def delete(self, db: AsyncSession, notification_id: str, user_id: Optional[str] = None) -> bool:
        """Delete one notification, optionally scoped to its recipient."""
        result = await db.execute(select(AppNotification.user_id).where(AppNotification.id == notification_id))
        owner = result.scalar_one_or_none()
        if owner is None or (user_id is not None and owner != user_id):
            return False
        await db.execute(
            delete(AppNotification)
            .where(AppNotification.id == notification_id)
            .execution_options(synchronize_session=False)
        )
        self._touch(db, owner)
        return True

    async def delete_related(
        self,
        db: AsyncSession,
        user_id: str,
        related_id: str,
        kinds: Sequence[Kind],
        sender_id: Optional[str] = None,
    ) -> int:
        """
        Remove inbox items about ``related_id`` once they have been resolved.

        Returns:
            int: Number of notifications deleted
        """
        stmt = delete(AppNotification).where(
            AppNotification.user_id == user_id,
            AppNotification.related_id == related_id,
            AppNotification.type.in_([_kind_value(k) for k in kinds]),
        )
        if sender_id is not None:
            stmt = stmt.where(AppNotification.sender_id == sender_id)
        result = await db.execute(stmt.execution_options(synchronize_session=False))
        if result.rowcount:
            self._touch(db, user_id)
            logger.info(f"[NOTIFICATIONS] Cleared {result.rowcount} resolved item(s) for {user_id} about {related_id}")
        return result.rowcount

    async def delete_about(self, db: AsyncSession, related_id: str, kinds: Sequence[Kind]) -> int:
        """Remove items about ``related_id`` from every inbox, e.g. when the subject is deleted."""
        kind_values = [_kind_value(k) for k in kinds]
        result = await db.execute(
            select(AppNotification.user_id)
            .where(AppNotification.related_id == related_id, AppNotification.type.in_(kind_values))
            .distinct()
        )
        recipients = list(result.scalars().all())
        if not recipients:
            return 0
        result = await db.execute(
            delete(AppNotification)
            .where(AppNotification.related_id == related_id, AppNotification.type.in_(kind_values))
            .execution_options(synchronize_session=False)
        )
        self._touch(db, *recipients)
        logger.info(f"[NOTIFICATIONS] Cleared {result.rowcount} item(s) about {related_id} from {len(recipients)} inbox(es)")
        return result.rowcount

    async def find(
        self,
        db: AsyncSession,
        user_id: str,
        kind: Kind,
        related_id: str,
        sender_id: Optional[str] = None,
    ) -> Optional[AppNotification]:
        """Newest notification of a kind about ``related_id`` in a user's inbox."""
        stmt = select(AppNotification).where(
            AppNotification.user_id == user_id,
            AppNotification.type == _kind_value(kind),
            AppNotification.related_id == related_id,
        )
        if sender_id is not None:
            stmt = stmt.where(AppNotification.sender_id == sender_id)
        result = await db.execute(stmt.order_by(AppNotification.timestamp.desc()).limit(1))
        return result.scalar_one_or_none()

    async def list_for_user(self, db: AsyncSession, user_id: str, unread_only: bool = False) -> List[AppNotification]:
        """Inbox, newest first."""
        stmt = select(AppNotification).where(AppNotification.user_id == user_id)
        if unread_only:
            stmt = stmt.where(AppNotification.is_read.is_(False))
        stmt = stmt.order_by(AppNotification.timestamp.desc()).execution_options(populate_existing=True)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def unread_count(self, db: AsyncSession, user_id: str) -> int:
        result = await db.execute(
            select(func.count())
            .select_from(AppNotification)
            .where(AppNotification.user_id == user_id, AppNotification.is_read.is_(False))
        )
        return result.scalar_one()
