"""
Live query subscriptions.

Services record which topics a transaction touched with ``hub.mark_changed``.
The topics are held on the session and published only once the transaction
commits; a rollback drops them. Every subscription watching one of the
published topics is flagged dirty and re-runs its loader in a fresh session
the next time its consumer asks for a value. Several commits between two
reads therefore collapse into a single snapshot.
"""
import asyncio
import logging
from collections import defaultdict
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, Set

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

# Key under Session.info holding {hub: set(topics)} until commit
_PENDING_TOPICS_KEY = "inoconnect_changed_topics"

Loader = Callable[[AsyncSession], Awaitable[Any]]


class Topic(str, Enum):
    """Kinds of change a live query can watch, each scoped by a key."""
    REQUESTS = "requests"            # keyed by user id
    PROJECTS = "projects"            # keyed by user id
    CHANNELS = "channels"            # keyed by user id
    NOTIFICATIONS = "notifications"  # keyed by user id
    STATS = "stats"                  # keyed by user id
    MESSAGES = "messages"            # keyed by channel id


def topic(kind: Topic, key: str) -> str:
    return f"{kind.value}:{key}"


class LiveQuery:
    """
    A re-evaluated query result.

    Usage::

        async with hub.subscribe(topics, loader) as query:
            async for snapshot in query:
                ...

    The first value is the current snapshot; every later value follows a
    committed change to one of ``topics``. Leaving the ``async with`` block
    (or calling ``close``) releases the subscription and ends iteration. If
    the loader raises, the query is released and the error reaches the consumer.
    """

    def __init__(self, hub: "RealtimeHub", topics: Iterable[str], loader: Loader):
        self.topics = frozenset(topics)
        self._hub = hub
        self._loader = loader
        self._dirty = asyncio.Event()
        self._dirty.set()  # Initial snapshot
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def notify(self) -> None:
        self._dirty.set()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._hub.unsubscribe(self)
        # Wake a consumer blocked in __anext__ so it can stop
        self._dirty.set()

    async def __aenter__(self) -> "LiveQuery":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __aiter__(self) -> "LiveQuery":
        return self

    async def __anext__(self) -> Any:
        if self._closed:
            raise StopAsyncIteration
        await self._dirty.wait()
        if self._closed:
            raise StopAsyncIteration
        self._dirty.clear()
        try:
            return await self._hub.load(self._loader)
        except Exception:
            # A failed load ends the query
            self.close()
            raise


class RealtimeHub:
    """
    Registry of live queries keyed by topic.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory
        self._queries: Dict[str, Set[LiveQuery]] = defaultdict(set)
        self._active: Set[LiveQuery] = set()

    @property
    def active_count(self) -> int:
        """Number of subscriptions not yet released."""
        return len(self._active)

    def subscribe(self, topics: Iterable[str], loader: Loader) -> LiveQuery:
        query = LiveQuery(self, topics, loader)
        if not query.topics:
            raise ValueError("A live query needs at least one topic")
        for name in query.topics:
            self._queries[name].add(query)
        self._active.add(query)
        logger.debug(f"[REALTIME] Subscribed to {sorted(query.topics)} ({self.active_count} active)")
        return query

    def unsubscribe(self, query: LiveQuery) -> None:
        if query not in self._active:
            return
        self._active.discard(query)
        for name in query.topics:
            watchers = self._queries.get(name)
            if watchers is None:
                continue
            watchers.discard(query)
            if not watchers:
                del self._queries[name]
        if not query.closed:
            query.close()
        logger.debug(f"[REALTIME] Released {sorted(query.topics)} ({self.active_count} active)")

    def mark_changed(self, db: AsyncSession, *topics: str) -> None:
        """Queue topics for publication when ``db`` commits."""
        pending = db.info.setdefault(_PENDING_TOPICS_KEY, {})
        pending.setdefault(self, set()).update(topics)

    def publish(self, topics: Iterable[str]) -> int:
        """
        Flag every query watching one of ``topics``.

        Returns:
            int: Number of queries flagged
        """
        flagged = set()
        for name in topics:
            flagged.update(self._queries.get(name, ()))
        for query in flagged:
            query.notify()
        if flagged:
            logger.debug(f"[REALTIME] {len(flagged)} live queries marked dirty")
        return len(flagged)

    async def load(self, loader: Loader) -> Any:
        async with self._session_factory() as db:
            return await loader(db)


@event.listens_for(Session, "after_commit")
def _publish_committed_topics(session: Session) -> None:
    pending = session.info.pop(_PENDING_TOPICS_KEY, None)
    if not pending:
        return
    for hub, topics in pending.items():
        hub.publish(topics)


@event.listens_for(Session, "after_rollback")
def _drop_rolled_back_topics(session: Session) -> None:
    session.info.pop(_PENDING_TOPICS_KEY, None)
