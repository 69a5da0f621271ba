"""
API endpoints for organizer events.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from inoconnect.api.dependencies import get_container, get_current_user_id, get_db
from inoconnect.schemas.event import EventCreate, EventRead
from inoconnect.services.container import ServiceContainer

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/events",
    tags=["events"],
)


async def _read(container: ServiceContainer, db: AsyncSession, event) -> EventRead:
    read = EventRead.model_validate(event)
    read.participant_ids = await container.events.participant_ids(db, event.id)
    return read


@router.post("", response_model=EventRead, status_code=status.HTTP_201_CREATED)
async def create_event(
    event_in: EventCreate,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    """Publish an event. Organizers only; every other user is notified."""
    event = await container.events.create_event(db, user_id, **event_in.model_dump())
    return await _read(container, db, event)


@router.get("", response_model=List[EventRead])
async def list_events(
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    return [await _read(container, db, e) for e in await container.events.list_events(db)]


@router.get("/mine", response_model=List[EventRead])
async def list_my_events(
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    events = await container.events.list_organizer_events(db, user_id)
    return [await _read(container, db, e) for e in events]


@router.get("/{event_id}", response_model=EventRead)
async def read_event(
    event_id: str,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    return await _read(container, db, await container.events.require_event(db, event_id))


@router.post("/{event_id}/join", response_model=EventRead)
async def join_event(
    event_id: str,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    await container.events.join_event(db, event_id, user_id)
    return await _read(container, db, await container.events.require_event(db, event_id))


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    event_id: str,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    await container.events.delete_event(db, event_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
