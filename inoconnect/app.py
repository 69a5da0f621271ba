"""
Application factory for the InnoConnect API.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from inoconnect.__version__ import __version__
from inoconnect.api.dependencies import get_container as shared_get_container
from inoconnect.api.dependencies import get_ws_handler as shared_get_ws_handler
from inoconnect.api.v1.chat import router as chat_router
from inoconnect.api.v1.connections import router as connections_router
from inoconnect.api.v1.events import router as events_router
from inoconnect.api.v1.notifications import router as notifications_router
from inoconnect.api.v1.projects import router as projects_router
from inoconnect.api.v1.users import router as users_router
from inoconnect.api.ws import router as ws_router
from inoconnect.core.config import settings as default_settings
from inoconnect.core.errors import InoConnectError
from inoconnect.core.version import get_version_info
from inoconnect.services.container import ServiceContainer
from inoconnect.ws.connection_manager import ConnectionManager
from inoconnect.ws.events import WebSocketEventHandler

logger = logging.getLogger(__name__)


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        container: Services to serve; built from the environment settings if omitted

    Returns:
        FastAPI: The configured application
    """
    if container is None:
        container = ServiceContainer.from_settings(default_settings)
    settings = container.settings

    ws_manager = ConnectionManager()
    ws_event_handler = WebSocketEventHandler(ws_manager, container)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"[APP] InnoConnect API {__version__} starting")
        yield
        logger.info("[APP] InnoConnect API shutting down")
        await container.dispose()

    app = FastAPI(
        title="InnoConnect API",
        description="Social graph and project collaboration backend",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.container = container
    app.state.ws_handler = ws_event_handler

    # Configure CORS
    if settings.CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(InoConnectError)
    async def inoconnect_error_handler(request: Request, exc: InoConnectError):
        logger.info(f"[APP] {request.method} {request.url.path} -> {exc.status_code} {exc.code}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    # Override shared dependencies for the routers
    async def override_get_container() -> ServiceContainer:
        return container

    async def override_get_ws_handler() -> WebSocketEventHandler:
        return ws_event_handler

    app.dependency_overrides[shared_get_container] = override_get_container
    app.dependency_overrides[shared_get_ws_handler] = override_get_ws_handler

    # Include routers
    app.include_router(ws_router)
    app.include_router(users_router, prefix="/api/v1")
    app.include_router(connections_router, prefix="/api/v1")
    app.include_router(projects_router, prefix="/api/v1")
    app.include_router(chat_router, prefix="/api/v1")
    app.include_router(notifications_router, prefix="/api/v1")
    app.include_router(events_router, prefix="/api/v1")

    @app.get("/health", tags=["health"])
    async def health():
        """
        Health check endpoint.
        """
        return {"status": "ok"}

    @app.get("/version", tags=["health"])
    async def get_version():
        """
        Get API version and feature flags.
        """
        return get_version_info()

    return app
