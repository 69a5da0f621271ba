"""
API endpoints for user registration and profiles.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from inoconnect.api.dependencies import get_container, get_current_user_id, get_db
from inoconnect.schemas.user import (
    ConnectionStatusRead, UserCreate, UserDetail, UserRead, UserUpdate,
)
from inoconnect.services.container import ServiceContainer

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/users",
    tags=["users"],
)


async def _detail(container: ServiceContainer, db: AsyncSession, user_id: str) -> UserDetail:
    described = await container.directory.describe_user(db, user_id)
    return UserDetail(
        **UserRead.model_validate(described["user"]).model_dump(),
        connection_ids=described["connection_ids"],
        following_ids=described["following_ids"],
    )


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def register_user(
    user_in: UserCreate,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    """
    Create the profile of the authenticated identity.

    Registering twice returns the existing profile.
    """
    profile = user_in.model_dump(exclude={"email", "username", "role"}, exclude_none=True)
    user = await container.profiles.register(
        db, user_id, email=user_in.email, username=user_in.username, role=user_in.role, **profile
    )
    return user


@router.get("/me", response_model=UserDetail)
async def read_me(
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    return await _detail(container, db, user_id)


@router.patch("/me", response_model=UserRead)
async def update_me(
    changes: UserUpdate,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    return await container.profiles.update_profile(db, user_id, changes.model_dump(exclude_unset=True))


@router.get("/search", response_model=List[UserRead])
async def search_users(
    q: str = Query(..., min_length=1, description="Username prefix"),
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    users = await container.directory.search_users(db, q, limit=container.settings.USER_SEARCH_LIMIT)
    return [u for u in users if u.id != user_id]


@router.get("/{target_id}", response_model=UserDetail)
async def read_user(
    target_id: str,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    return await _detail(container, db, target_id)


@router.get("/{target_id}/status", response_model=ConnectionStatusRead)
async def read_connection_status(
    target_id: str,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    """Relationship between the current user and ``target_id``."""
    await container.directory.require_user(db, target_id)
    connection_status = await container.connections.connection_status(db, user_id, target_id)
    return ConnectionStatusRead(user_id=target_id, status=connection_status)
