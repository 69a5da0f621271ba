"""
User registration and profile edits.
"""
import logging
from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncSession

from inoconnect.core.errors import InvalidTarget
from inoconnect.db.models import NotificationType, User, UserRole
from inoconnect.realtime.hub import RealtimeHub, Topic, topic
from inoconnect.services.channel_identity import SEPARATOR
from inoconnect.services.directory import Directory
from inoconnect.services.notifications import NotificationDispatcher

logger = logging.getLogger(__name__)

# Fields a user may edit on their own profile; counters are owned by the graph services
EDITABLE_FIELDS = frozenset({
    "username", "profile_image_url", "background_image_url", "headline", "university",
    "faculty", "course", "year_of_study", "bio", "resume_url", "skills", "phone_number",
    "github_link", "linkedin_link", "portfolio_link",
})


class ProfileService:
    def __init__(self, hub: RealtimeHub, directory: Directory, notifications: NotificationDispatcher):
        self._hub = hub
        self._directory = directory
        self._notifications = notifications

    async def register(
        self,
        db: AsyncSession,
        user_id: str,
        email: str,
        username: str,
        role: UserRole = UserRole.PARTICIPANT,
        **profile: Any,
    ) -> User:
        """
        Create the user record for an identity-provider id and send the welcome message.

        Registering an id that already exists returns the existing user unchanged.
        """
        if not user_id or SEPARATOR in user_id:
            raise InvalidTarget(f"User ids must be non-empty and must not contain {SEPARATOR!r}")
        existing = await self._directory.get_user(db, user_id)
        if existing is not None:
            logger.info(f"[USERS] {user_id} is already registered")
            return existing

        user = User(
            id=user_id,
            email=email,
            username=username,
            role=UserRole(role).value,
            **{k: v for k, v in profile.items() if k in EDITABLE_FIELDS and v is not None},
        )
        db.add(user)
        await db.flush()
        await self._notifications.emit(
            db,
            user_id,
            NotificationType.WELCOME_MESSAGE,
            title="Welcome to InnoConnect",
            message=f"Hi {username}, your profile is ready. Start by connecting with other students.",
        )
        logger.info(f"[USERS] Registered {user_id} as {user.role}")
        return user

    async def update_profile(self, db: AsyncSession, user_id: str, changes: Dict[str, Any]) -> User:
        """Apply edits to whitelisted profile fields; unknown keys are ignored."""
        user = await self._directory.require_user(db, user_id)
        applied = []
        for key, value in changes.items():
            if key not in EDITABLE_FIELDS or value is None:
                continue
            setattr(user, key, value)
            applied.append(key)
        if applied:
            await db.flush()
            self._hub.mark_changed(db, topic(Topic.STATS, user_id))
            logger.info(f"[USERS] {user_id} updated {', '.join(sorted(applied))}")
        return user
