"""
API endpoints for chat channels and messages.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from inoconnect.api.dependencies import get_container, get_current_user_id, get_db
from inoconnect.core.errors import Forbidden, InvalidTarget
from inoconnect.realtime.streams import channel_to_dict
from inoconnect.schemas.chat import ChannelRead, ChannelRename, MessageCreate, MessageRead, ReadReceipt
from inoconnect.services.channel_identity import project_id_for_channel
from inoconnect.services.container import ServiceContainer

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/chat",
    tags=["chat"],
)


async def _channel(container: ServiceContainer, db: AsyncSession, channel, user_id: str) -> ChannelRead:
    return ChannelRead(**await channel_to_dict(container, db, channel, user_id))


@router.get("/channels", response_model=List[ChannelRead])
async def list_channels(
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    """Channels of the current user, most recent first."""
    channels = await container.messaging.list_channels(db, user_id)
    return [await _channel(container, db, channel, user_id) for channel in channels]


@router.post("/direct/{other_id}", response_model=ChannelRead)
async def open_direct_channel(
    other_id: str,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    channel = await container.messaging.get_or_create_direct_channel(db, user_id, other_id)
    return await _channel(container, db, channel, user_id)


@router.post("/direct/{other_id}/messages", response_model=MessageRead, status_code=status.HTTP_201_CREATED)
async def send_direct_message(
    other_id: str,
    message_in: MessageCreate,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    """Message a user directly; the recipient receives a ``NEW_DM`` notification."""
    return await container.messaging.send_direct_message(
        db, user_id, other_id, message_in.content, message_in.attachment
    )


@router.get("/channels/{channel_id}/messages", response_model=List[MessageRead])
async def list_messages(
    channel_id: str,
    limit: int = Query(None, ge=1, le=1000),
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    await container.messaging.require_participant(db, channel_id, user_id)
    return await container.messaging.list_messages(db, channel_id, limit=limit)


@router.post("/channels/{channel_id}/messages", response_model=MessageRead, status_code=status.HTTP_201_CREATED)
async def send_message(
    channel_id: str,
    message_in: MessageCreate,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    return await container.messaging.send_message(
        db, channel_id, user_id, message_in.content, message_in.attachment
    )


@router.post("/channels/{channel_id}/read", response_model=ReadReceipt)
async def mark_channel_read(
    channel_id: str,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    await container.messaging.mark_channel_read(db, channel_id, user_id)
    unread = await container.messaging.unread_count(db, channel_id, user_id)
    return ReadReceipt(channel_id=channel_id, unread_count=unread)


@router.patch("/channels/{channel_id}", response_model=ChannelRead)
async def rename_channel(
    channel_id: str,
    rename_in: ChannelRename,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    """
    Rename a project group chat. Only the project creator may do this.
    """
    project_id = project_id_for_channel(channel_id)
    if project_id is None:
        raise InvalidTarget("Only group channels can be renamed")
    project = await container.directory.require_project(db, project_id)
    if project.creator_id != user_id:
        raise Forbidden("Only the project creator can rename the group chat")
    channel = await container.messaging.rename_group(db, channel_id, rename_in.group_name)
    return await _channel(container, db, channel, user_id)
