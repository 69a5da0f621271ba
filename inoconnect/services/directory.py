"""
Read-only lookup of users and projects.
"""
import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from inoconnect.core.errors import NotFound
from inoconnect.db.models import Project, User, user_connections, user_following
from inoconnect.db.store import set_members

logger = logging.getLogger(__name__)


class Directory:
    """
    Batched id-to-record resolution.

    Reads use ``populate_existing`` so records already in the session identity
    map reflect counter and set updates issued as bulk statements.
    """

    async def get_user(self, db: AsyncSession, user_id: str) -> Optional[User]:
        if not user_id:
            return None
        result = await db.execute(
            select(User).where(User.id == user_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def require_user(self, db: AsyncSession, user_id: str) -> User:
        user = await self.get_user(db, user_id)
        if user is None:
            raise NotFound(f"User {user_id} not found")
        return user

    async def get_users(self, db: AsyncSession, user_ids: Iterable[str]) -> List[User]:
        """
        Resolve a batch of ids in one query.

        Args:
            db: Database session
            user_ids: Ids in the order the caller wants them back

        Returns:
            List[User]: Users in input order; unknown ids are skipped
        """
        ids = list(dict.fromkeys(i for i in user_ids if i))
        if not ids:
            return []
        result = await db.execute(
            select(User).where(User.id.in_(ids)).execution_options(populate_existing=True)
        )
        by_id: Dict[str, User] = {user.id: user for user in result.scalars().all()}
        missing = len(ids) - len(by_id)
        if missing:
            logger.debug(f"[DIRECTORY] {missing} of {len(ids)} user ids could not be resolved")
        return [by_id[i] for i in ids if i in by_id]

    async def display_name(self, db: AsyncSession, user_id: str, fallback: str = "User") -> str:
        user = await self.get_user(db, user_id)
        if user is None or not user.username:
            return fallback
        return user.username

    async def describe_user(self, db: AsyncSession, user_id: str) -> dict:
        """User record together with its connection and following id sets."""
        user = await self.require_user(db, user_id)
        connection_ids = await set_members(
            db, user_connections, "connection_id",
            order_by=user_connections.c.created_at, user_id=user_id,
        )
        following_ids = await set_members(
            db, user_following, "following_id",
            order_by=user_following.c.created_at, user_id=user_id,
        )
        return {"user": user, "connection_ids": connection_ids, "following_ids": following_ids}

    async def search_users(self, db: AsyncSession, prefix: str, limit: int = 20) -> List[User]:
        """Case-insensitive username prefix search."""
        prefix = (prefix or "").strip()
        if not prefix:
            return []
        escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        result = await db.execute(
            select(User)
            .where(User.username.ilike(f"{escaped}%", escape="\\"))
            .order_by(User.username)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_project(self, db: AsyncSession, project_id: str, for_update: bool = False) -> Optional[Project]:
        if not project_id:
            return None
        stmt = select(Project).where(Project.id == project_id).execution_options(populate_existing=True)
        if for_update:
            # Row lock on PostgreSQL; SQLite serializes writers already
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def require_project(self, db: AsyncSession, project_id: str, for_update: bool = False) -> Project:
        project = await self.get_project(db, project_id, for_update=for_update)
        if project is None:
            raise NotFound(f"Project {project_id} not found")
        return project
