"""
Connection request state machine and the resulting link sets.

A request goes ``pending -> accepted`` (kept as an archive) or is deleted on
rejection. Link sets are rows in ``user_connections`` / ``user_following``;
each cached counter moves only when its set row was actually inserted, so a
retried accept never double counts.
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from inoconnect.core.config import Settings
from inoconnect.core.errors import (
    AlreadyConnected, AlreadyResolved, DuplicateRequest, Forbidden, InvalidTarget, NotFound,
)
from inoconnect.db.base import utcnow
from inoconnect.db.models import (
    ConnectionRequest, ConnectionStatus, NotificationType, RequestStatus, User,
    user_connections, user_following,
)
from inoconnect.db.store import add_to_set, increment, is_member, set_members
from inoconnect.realtime.hub import RealtimeHub, Topic, topic
from inoconnect.services.channel_identity import pair_key
from inoconnect.services.directory import Directory
from inoconnect.services.notifications import NotificationDispatcher

logger = logging.getLogger(__name__)

# Below this many candidates, already-connected users stay in the suggestion list
SUGGESTION_HIDE_CONNECTED_THRESHOLD = 20


class ConnectionGraphManager:
    def __init__(
        self,
        hub: RealtimeHub,
        directory: Directory,
        notifications: NotificationDispatcher,
        settings: Settings,
    ):
        self._hub = hub
        self._directory = directory
        self._notifications = notifications
        self._settings = settings

    def _touch(self, db: AsyncSession, *user_ids: str, stats: bool = False) -> None:
        topics = [topic(Topic.REQUESTS, user_id) for user_id in user_ids]
        if stats:
            topics.extend(topic(Topic.STATS, user_id) for user_id in user_ids)
        self._hub.mark_changed(db, *topics)

    async def get_request(self, db: AsyncSession, request_id: str, for_update: bool = False) -> Optional[ConnectionRequest]:
        stmt = (
            select(ConnectionRequest)
            .where(ConnectionRequest.id == request_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def _pending_between(self, db: AsyncSession, user_a: str, user_b: str) -> Optional[ConnectionRequest]:
        result = await db.execute(
            select(ConnectionRequest).where(
                ConnectionRequest.pair_key == pair_key(user_a, user_b),
                ConnectionRequest.status == RequestStatus.PENDING.value,
            )
        )
        return result.scalar_one_or_none()

    async def is_connected(self, db: AsyncSession, user_id: str, other_id: str) -> bool:
        return await is_member(db, user_connections, user_id=user_id, connection_id=other_id)

    async def send_request(self, db: AsyncSession, from_id: str, to_id: str) -> ConnectionRequest:
        """
        Create a pending request from ``from_id`` to ``to_id``.

        Raises:
            InvalidTarget: If a user tries to connect with themselves
            NotFound: If either user does not exist
            AlreadyConnected: If the users are already connected
            DuplicateRequest: If a pending request exists between the pair in either direction
        """
        if from_id == to_id:
            raise InvalidTarget("Cannot send a connection request to yourself")
        sender = await self._directory.require_user(db, from_id)
        await self._directory.require_user(db, to_id)

        if await self.is_connected(db, from_id, to_id):
            raise AlreadyConnected(f"{from_id} and {to_id} are already connected")

        existing = await self._pending_between(db, from_id, to_id)
        if existing is not None:
            # Detached so it stays readable after the caller's rollback
            db.expunge(existing)
            raise DuplicateRequest("A pending request already exists between these users", existing=existing)

        request = ConnectionRequest(
            from_user_id=from_id,
            to_user_id=to_id,
            pair_key=pair_key(from_id, to_id),
            status=RequestStatus.PENDING.value,
            timestamp=utcnow(),
        )
        db.add(request)
        try:
            await db.flush()
        except IntegrityError as e:
            # Lost a race against a concurrent request for the same pair
            raise DuplicateRequest("A pending request already exists between these users") from e

        await self._notifications.emit(
            db,
            to_id,
            NotificationType.NEW_FOLLOWER,
            title="New Connection Request",
            message=f"{sender.username or 'Someone'} wants to connect with you",
            related_id=request.id,
            sender_id=from_id,
        )
        self._touch(db, from_id, to_id)
        logger.info(f"[CONNECTIONS] Request {request.id}: {from_id} -> {to_id}")
        return request

    async def accept_request(self, db: AsyncSession, request_id: str, caller_id: str) -> ConnectionRequest:
        """
        Accept a pending request addressed to ``caller_id``.

        Accepting an already accepted request is a no-op that returns it.

        Raises:
            NotFound: If the request does not exist
            Forbidden: If the caller is not the addressee
            AlreadyResolved: If the request is in any other terminal state
        """
        request = await self.get_request(db, request_id, for_update=True)
        if request is None:
            raise NotFound(f"Connection request {request_id} not found")
        if request.to_user_id != caller_id:
            raise Forbidden("Only the addressee can accept a connection request")
        if request.status == RequestStatus.ACCEPTED.value:
            logger.info(f"[CONNECTIONS] Request {request_id} already accepted, nothing to do")
            return request
        if request.status != RequestStatus.PENDING.value:
            raise AlreadyResolved(f"Connection request {request_id} is {request.status}")

        requester_id, addressee_id = request.from_user_id, request.to_user_id
        request.status = RequestStatus.ACCEPTED.value
        request.resolved_at = utcnow()
        await db.flush()

        if await add_to_set(db, user_connections, user_id=requester_id, connection_id=addressee_id):
            await increment(db, User, requester_id, "connections_count")
        if await add_to_set(db, user_connections, user_id=addressee_id, connection_id=requester_id):
            await increment(db, User, addressee_id, "connections_count")
        if await add_to_set(db, user_following, user_id=requester_id, following_id=addressee_id):
            await increment(db, User, requester_id, "following_count")

        addressee_name = await self._directory.display_name(db, addressee_id)
        await self._notifications.emit(
            db,
            requester_id,
            NotificationType.CONNECTION_ACCEPTED,
            title="Connection Accepted",
            message=f"You are now connected with {addressee_name}",
            related_id=addressee_id,
            sender_id=addressee_id,
        )
        await self._notifications.delete_related(
            db, addressee_id, request.id, [NotificationType.NEW_FOLLOWER]
        )
        self._touch(db, requester_id, addressee_id, stats=True)
        logger.info(f"[CONNECTIONS] Request {request_id} accepted: {requester_id} <-> {addressee_id}")
        return request

    async def reject_request(self, db: AsyncSession, request_id: str, caller_id: str) -> bool:
        """
        Reject and delete a pending request addressed to ``caller_id``.

        A request that no longer exists is treated as already rejected.

        Returns:
            bool: True if a request was deleted
        """
        request = await self.get_request(db, request_id, for_update=True)
        if request is None:
            logger.info(f"[CONNECTIONS] Request {request_id} already gone, nothing to reject")
            return False
        if request.to_user_id != caller_id:
            raise Forbidden("Only the addressee can reject a connection request")
        if request.status == RequestStatus.ACCEPTED.value:
            raise AlreadyResolved(f"Connection request {request_id} was already accepted")

        request.status = RequestStatus.REJECTED.value
        await db.delete(request)
        await db.flush()
        await self._notifications.delete_related(
            db, request.to_user_id, request.id, [NotificationType.NEW_FOLLOWER]
        )
        self._touch(db, request.from_user_id, request.to_user_id)
        logger.info(f"[CONNECTIONS] Request {request_id} rejected by {caller_id}")
        return True

    async def list_incoming(self, db: AsyncSession, user_id: str) -> List[ConnectionRequest]:
        """Pending requests addressed to the user, newest first."""
        result = await db.execute(
            select(ConnectionRequest)
            .where(
                ConnectionRequest.to_user_id == user_id,
                ConnectionRequest.status == RequestStatus.PENDING.value,
            )
            .order_by(ConnectionRequest.timestamp.desc())
        )
        return list(result.scalars().all())

    async def list_outgoing(self, db: AsyncSession, user_id: str) -> List[ConnectionRequest]:
        result = await db.execute(
            select(ConnectionRequest)
            .where(
                ConnectionRequest.from_user_id == user_id,
                ConnectionRequest.status == RequestStatus.PENDING.value,
            )
            .order_by(ConnectionRequest.timestamp.desc())
        )
        return list(result.scalars().all())

    async def connection_ids(self, db: AsyncSession, user_id: str) -> List[str]:
        return await set_members(
            db, user_connections, "connection_id",
            order_by=user_connections.c.created_at, user_id=user_id,
        )

    async def following_ids(self, db: AsyncSession, user_id: str) -> List[str]:
        return await set_members(
            db, user_following, "following_id",
            order_by=user_following.c.created_at, user_id=user_id,
        )

    async def follower_ids(self, db: AsyncSession, user_id: str) -> List[str]:
        return await set_members(
            db, user_following, "user_id",
            order_by=user_following.c.created_at, following_id=user_id,
        )

    async def list_connections(self, db: AsyncSession, user_id: str) -> List[User]:
        return await self._directory.get_users(db, await self.connection_ids(db, user_id))

    async def list_following(self, db: AsyncSession, user_id: str) -> List[User]:
        return await self._directory.get_users(db, await self.following_ids(db, user_id))

    async def list_followers(self, db: AsyncSession, user_id: str) -> List[User]:
        return await self._directory.get_users(db, await self.follower_ids(db, user_id))

    async def connection_status(self, db: AsyncSession, user_id: str, other_id: str) -> ConnectionStatus:
        """Relationship of ``other_id`` as seen by ``user_id``."""
        if await self.is_connected(db, user_id, other_id):
            return ConnectionStatus.CONNECTED
        if user_id == other_id:
            return ConnectionStatus.NOT_CONNECTED
        pending = await self._pending_between(db, user_id, other_id)
        if pending is None:
            return ConnectionStatus.NOT_CONNECTED
        if pending.from_user_id == user_id:
            return ConnectionStatus.PENDING_SENT
        return ConnectionStatus.PENDING_RECEIVED

    async def suggested_users(
        self, db: AsyncSession, user_id: str, limit: Optional[int] = None
    ) -> List[Tuple[User, ConnectionStatus]]:
        """
        People to connect with, each with its relationship status.

        Connected users are hidden once there are enough candidates to fill the list.
        """
        limit = limit or self._settings.SUGGESTED_USERS_LIMIT
        result = await db.execute(
            select(User).where(User.id != user_id).order_by(User.created_at.desc()).limit(limit)
        )
        candidates = list(result.scalars().all())

        connected = set(await self.connection_ids(db, user_id))
        pending = await db.execute(
            select(ConnectionRequest).where(
                ConnectionRequest.status == RequestStatus.PENDING.value,
                or_(ConnectionRequest.from_user_id == user_id, ConnectionRequest.to_user_id == user_id),
            )
        )
        sent, received = set(), set()
        for request in pending.scalars().all():
            if request.from_user_id == user_id:
                sent.add(request.to_user_id)
            else:
                received.add(request.from_user_id)

        hide_connected = len(candidates) >= SUGGESTION_HIDE_CONNECTED_THRESHOLD
        suggestions = []
        for candidate in candidates:
            if candidate.id in connected:
                if hide_connected:
                    continue
                status = ConnectionStatus.CONNECTED
            elif candidate.id in sent:
                status = ConnectionStatus.PENDING_SENT
            elif candidate.id in received:
                status = ConnectionStatus.PENDING_RECEIVED
            else:
                status = ConnectionStatus.NOT_CONNECTED
            suggestions.append((candidate, status))
        return suggestions

    async def network_stats(self, db: AsyncSession, user_id: str) -> dict:
        user = await self._directory.require_user(db, user_id)
        return {
            "connections": user.connections_count,
            "following": user.following_count,
            "pending_requests": await self.count_pending_incoming(db, user_id),
        }

    async def follow_user(self, db: AsyncSession, user_id: str, target_id: str) -> bool:
        """
        One-way follow without a request.

        Returns:
            bool: True if the follow is new
        """
        if user_id == target_id:
            raise InvalidTarget("Cannot follow yourself")
        await self._directory.require_user(db, user_id)
        await self._directory.require_user(db, target_id)
        added = await add_to_set(db, user_following, user_id=user_id, following_id=target_id)
        if added:
            await increment(db, User, user_id, "following_count")
            self._hub.mark_changed(db, topic(Topic.STATS, user_id))
            logger.info(f"[CONNECTIONS] {user_id} now follows {target_id}")
        return added

    async def count_pending_incoming(self, db: AsyncSession, user_id: str) -> int:
        result = await db.execute(
            select(func.count())
            .select_from(ConnectionRequest)
            .where(
                ConnectionRequest.to_user_id == user_id,
                ConnectionRequest.status == RequestStatus.PENDING.value,
            )
        )
        return result.scalar_one()
