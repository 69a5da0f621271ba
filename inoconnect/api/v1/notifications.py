"""
API endpoints for the in-app notification inbox.
"""
import logging

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from inoconnect.api.dependencies import get_container, get_current_user_id, get_db
from inoconnect.core.errors import NotFound
from inoconnect.realtime.streams import notification_to_dict
from inoconnect.schemas.notification import (
    MarkReadRequest, MarkReadResult, NotificationInbox, NotificationRead, UnreadCount,
)
from inoconnect.services.container import ServiceContainer
from inoconnect.services.notifications import partition

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/notifications",
    tags=["notifications"],
)


@router.get("", response_model=NotificationInbox)
async def read_inbox(
    unread_only: bool = Query(False),
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    """
    Notifications of the current user, newest first, split into the ones
    awaiting a decision and the informational ones.
    """
    notifications = await container.notifications.list_for_user(db, user_id, unread_only=unread_only)
    actionable, informational = partition(notifications)
    return NotificationInbox(
        actionable=[NotificationRead(**notification_to_dict(n)) for n in actionable],
        informational=[NotificationRead(**notification_to_dict(n)) for n in informational],
        unread_count=await container.notifications.unread_count(db, user_id),
    )


@router.get("/unread-count", response_model=UnreadCount)
async def read_unread_count(
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    return UnreadCount(unread_count=await container.notifications.unread_count(db, user_id))


@router.post("/read", response_model=MarkReadResult)
async def mark_read(
    request: MarkReadRequest,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    updated = await container.notifications.mark_read(db, user_id, request.ids)
    return MarkReadResult(updated=updated)


@router.post("/read-all", response_model=MarkReadResult)
async def mark_all_read(
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    updated = await container.notifications.mark_all_read(db, user_id)
    return MarkReadResult(updated=updated)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: str,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    deleted = await container.notifications.delete(db, notification_id, user_id=user_id)
    if not deleted:
        raise NotFound(f"Notification {notification_id} not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
