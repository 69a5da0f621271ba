from typing import List

import pytest
import pytest_asyncio

from inoconnect.core.config import Settings
from inoconnect.db.models import Base, UserRole
from inoconnect.services.assets import AssetStore
from inoconnect.services.container import ServiceContainer


class RecordingAssetStore(AssetStore):
    """Asset store that remembers deletions and can be told to fail."""

    def __init__(self, fail: bool = False):
        self.removed: List[str] = []
        self.fail = fail

    async def remove(self, url: str) -> None:
        if self.fail:
            raise RuntimeError("storage unavailable")
        self.removed.append(url)


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'inoconnect.db'}")


@pytest.fixture()
def assets() -> RecordingAssetStore:
    return RecordingAssetStore()


@pytest_asyncio.fixture()
async def container(settings, assets):
    services = ServiceContainer.from_settings(settings, assets=assets)
    async with services.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield services
    await services.dispose()


@pytest.fixture()
def make_user(container):
    async def _make(user_id: str, username: str = None, role: UserRole = UserRole.PARTICIPANT):
        async with container.transaction() as db:
            return await container.profiles.register(
                db,
                user_id,
                email=f"{user_id}@example.com",
                username=username or user_id.capitalize(),
                role=role,
            )
    return _make


@pytest_asyncio.fixture()
async def users(make_user):
    """Four registered participants u1..u4."""
    return [await make_user(f"u{i}") for i in range(1, 5)]
