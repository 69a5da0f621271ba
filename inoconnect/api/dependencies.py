"""
Shared dependencies for API endpoints.
"""
import logging
from typing import AsyncGenerator, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from inoconnect.core import security
from inoconnect.db.session import session_scope
from inoconnect.services.container import ServiceContainer
from inoconnect.ws.events import WebSocketEventHandler

logger = logging.getLogger(__name__)

# Bearer tokens come from the identity provider; there is no token endpoint here
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token", auto_error=False)


# Dependency function signatures (implementations provided by overrides in create_app)
async def get_container() -> ServiceContainer:
    """
    Dependency placeholder for the ServiceContainer.
    The actual instance is injected via app.dependency_overrides in create_app.
    """
    # This placeholder should never be executed if overrides are set correctly.
    raise NotImplementedError("Service container dependency not overridden")


async def get_ws_handler() -> WebSocketEventHandler:
    """
    Dependency placeholder for WebSocketEventHandler.
    The actual implementation is injected via app.dependency_overrides in create_app.
    """
    raise NotImplementedError("WebSocket handler dependency not overridden")


async def get_db(container: ServiceContainer = Depends(get_container)) -> AsyncGenerator[AsyncSession, None]:
    """
    Get a request-scoped database session.
    The transaction commits when the endpoint returns and rolls back if it raises.

    Yields:
        AsyncSession: A SQLAlchemy asynchronous database session
    """
    async with session_scope(container.session_factory) as session:
        yield session


async def get_current_user_id(token: Optional[str] = Depends(oauth2_scheme)) -> str:
    """
    Resolve the bearer token to the current user id.

    Raises:
        HTTPException: 401 if the token is missing or invalid
    """
    user_id = security.verify_token(token)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_id
