"""
Service wiring.

The container is built once per process (or per test) and handed to the API
through FastAPI dependency overrides; no service reaches for a module-level
singleton.
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from inoconnect.core.config import Settings
from inoconnect.db.session import create_engine_from_settings, create_session_factory, session_scope
from inoconnect.realtime.hub import RealtimeHub
from inoconnect.services.assets import AssetStore
from inoconnect.services.connections import ConnectionGraphManager
from inoconnect.services.directory import Directory
from inoconnect.services.events import EventBoard
from inoconnect.services.messaging import MessagingChannelManager
from inoconnect.services.notifications import NotificationDispatcher
from inoconnect.services.profiles import ProfileService
from inoconnect.services.projects import ProjectMembershipManager

logger = logging.getLogger(__name__)


class ServiceContainer:
    def __init__(
        self,
        session_factory: async_sessionmaker,
        settings: Settings,
        assets: Optional[AssetStore] = None,
        engine: Optional[AsyncEngine] = None,
    ):
        self.session_factory = session_factory
        self.settings = settings
        self.engine = engine
        self.assets = assets or AssetStore()

        self.hub = RealtimeHub(session_factory)
        self.directory = Directory()
        self.notifications = NotificationDispatcher(self.hub)
        self.messaging = MessagingChannelManager(self.hub, self.directory, self.notifications)
        self.connections = ConnectionGraphManager(self.hub, self.directory, self.notifications, settings)
        self.projects = ProjectMembershipManager(
            self.hub, self.directory, self.notifications, self.messaging, self.assets, settings
        )
        self.events = EventBoard(self.directory, self.notifications, self.assets)
        self.profiles = ProfileService(self.hub, self.directory, self.notifications)

    @classmethod
    def from_settings(cls, settings: Settings, assets: Optional[AssetStore] = None) -> "ServiceContainer":
        engine = create_engine_from_settings(settings)
        logger.info(f"[DB] Engine created for dialect {engine.dialect.name}")
        return cls(create_session_factory(engine), settings, assets=assets, engine=engine)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """One unit of work: commits on success, rolls back and re-raises on error."""
        async with session_scope(self.session_factory) as db:
            yield db

    async def dispose(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
            logger.info("[DB] Engine disposed")
