"""
API endpoints for connection requests and the follow graph.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from inoconnect.api.dependencies import get_container, get_current_user_id, get_db
from inoconnect.core.errors import DuplicateRequest
from inoconnect.schemas.connection import (
    ConnectionRequestCreate, ConnectionRequestRead, ConnectionRequestResult, RejectResult,
)
from inoconnect.schemas.user import NetworkStats, SuggestedUser, UserRead
from inoconnect.services.container import ServiceContainer

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/connections",
    tags=["connections"],
)


@router.post(
    "/requests",
    response_model=ConnectionRequestResult,
    status_code=status.HTTP_201_CREATED,
    responses={200: {"model": ConnectionRequestResult, "description": "Pending request already existed"}},
)
async def send_connection_request(
    request_in: ConnectionRequestCreate,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    """
    Send a connection request.

    Retrying while a request between the pair is pending is a no-op: the
    existing request is returned with status 200 and ``created`` false.
    """
    try:
        request = await container.connections.send_request(db, user_id, request_in.to_user_id)
    except DuplicateRequest as e:
        if e.existing is None:
            raise
        logger.info(f"[CONNECTIONS] Duplicate request from {user_id} to {request_in.to_user_id}, returning existing")
        result = ConnectionRequestResult(created=False, request=ConnectionRequestRead.model_validate(e.existing))
        return JSONResponse(status_code=status.HTTP_200_OK, content=result.model_dump(mode="json"))
    return ConnectionRequestResult(created=True, request=ConnectionRequestRead.model_validate(request))


@router.post("/requests/{request_id}/accept", response_model=ConnectionRequestRead)
async def accept_connection_request(
    request_id: str,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    return await container.connections.accept_request(db, request_id, user_id)


@router.post("/requests/{request_id}/reject", response_model=RejectResult)
async def reject_connection_request(
    request_id: str,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    deleted = await container.connections.reject_request(db, request_id, user_id)
    return RejectResult(request_id=request_id, deleted=deleted)


@router.get("/requests/incoming", response_model=List[ConnectionRequestRead])
async def list_incoming_requests(
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    return await container.connections.list_incoming(db, user_id)


@router.get("/requests/outgoing", response_model=List[ConnectionRequestRead])
async def list_outgoing_requests(
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    return await container.connections.list_outgoing(db, user_id)


@router.get("", response_model=List[UserRead])
async def list_connections(
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    return await container.connections.list_connections(db, user_id)


@router.get("/following", response_model=List[UserRead])
async def list_following(
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    return await container.connections.list_following(db, user_id)


@router.get("/followers", response_model=List[UserRead])
async def list_followers(
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    return await container.connections.list_followers(db, user_id)


@router.get("/suggestions", response_model=List[SuggestedUser])
async def list_suggestions(
    limit: int = Query(None, ge=1, le=500),
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    suggestions = await container.connections.suggested_users(db, user_id, limit=limit)
    return [SuggestedUser(user=UserRead.model_validate(user), status=s) for user, s in suggestions]


@router.get("/stats", response_model=NetworkStats)
async def read_network_stats(
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    return NetworkStats(**await container.connections.network_stats(db, user_id))


@router.post("/follow/{target_id}")
async def follow_user(
    target_id: str,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db),
):
    added = await container.connections.follow_user(db, user_id, target_id)
    return {"following": True, "created": added}
