import asyncio

import pytest

from inoconnect.core.errors import Forbidden, InvalidTarget
from inoconnect.db.models import NotificationType
from inoconnect.realtime.hub import Topic, topic
from inoconnect.realtime.streams import open_stream
from inoconnect.services.channel_identity import group_channel_id


async def _next(query, timeout: float = 1.0):
    return await asyncio.wait_for(query.__anext__(), timeout)


async def _stays_quiet(query, timeout: float = 0.1) -> bool:
    try:
        await asyncio.wait_for(query.__anext__(), timeout)
    except asyncio.TimeoutError:
        return True
    return False


async def test_incoming_requests_stream_follows_commits(container, users):
    query = await open_stream(container, "u2", "incoming_requests")
    async with query:
        assert await _next(query) == []

        async with container.transaction() as db:
            await container.connections.send_request(db, "u1", "u2")

        snapshot = await _next(query)
        assert [r["from_user_id"] for r in snapshot] == ["u1"]
    assert container.hub.active_count == 0


async def test_rolled_back_changes_are_not_published(container, users):
    loads = []

    async def loader(db):
        loads.append(1)
        return len(loads)

    async with container.hub.subscribe([topic(Topic.NOTIFICATIONS, "u1")], loader) as query:
        assert await _next(query) == 1
        with pytest.raises(RuntimeError):
            async with container.transaction() as db:
                await container.notifications.emit(db, "u1", NotificationType.SYSTEM_ALERT, "a", "b")
                raise RuntimeError("abort")
        assert await _stays_quiet(query)


async def test_changes_between_reads_coalesce(container, users):
    loads = []

    async def loader(db):
        loads.append(1)
        return await container.notifications.unread_count(db, "u1")

    async with container.hub.subscribe([topic(Topic.NOTIFICATIONS, "u1")], loader) as query:
        assert await _next(query) == 1  # welcome message
        for title in ("first", "second", "third"):
            async with container.transaction() as db:
                await container.notifications.emit(db, "u1", NotificationType.SYSTEM_ALERT, title, "")
        assert await _next(query) == 4
        assert await _stays_quiet(query)
    assert len(loads) == 2


async def test_unrelated_topics_do_not_wake_query(container, users):
    async with container.hub.subscribe([topic(Topic.NOTIFICATIONS, "u1")], lambda db: _none()) as query:
        await _next(query)
        async with container.transaction() as db:
            await container.notifications.emit(db, "u2", NotificationType.SYSTEM_ALERT, "a", "b")
        assert await _stays_quiet(query)


async def _none():
    return None


async def test_closing_ends_iteration(container, users):
    query = await open_stream(container, "u1", "notifications")
    await _next(query)
    query.close()
    with pytest.raises(StopAsyncIteration):
        await query.__anext__()
    assert container.hub.active_count == 0


async def test_network_stats_stream_sees_new_requests(container, users):
    query = await open_stream(container, "u2", "network_stats")
    async with query:
        assert await _next(query) == {"connections": 0, "following": 0, "pending_requests": 0}
        async with container.transaction() as db:
            await container.connections.send_request(db, "u1", "u2")
        assert (await _next(query))["pending_requests"] == 1


async def test_projects_stream_shows_new_member(container, users):
    async with container.transaction() as db:
        project = await container.projects.create_project(db, "u1", "Solar Car", target_team_size=3)
        await container.projects.request_to_join(db, project.id, "u2")

    query = await open_stream(container, "u2", "projects")
    async with query:
        assert await _next(query) == []
        async with container.transaction() as db:
            await container.projects.accept_applicant(db, project.id, "u2", "u1")
        snapshot = await _next(query)
        assert [p["member_ids"] for p in snapshot] == [["u1", "u2"]]


async def test_messages_stream_requires_participation(container, users):
    async with container.transaction() as db:
        channel = await container.messaging.get_or_create_direct_channel(db, "u1", "u2")

    with pytest.raises(InvalidTarget):
        await open_stream(container, "u1", "messages")
    with pytest.raises(Forbidden):
        await open_stream(container, "u3", "messages", channel_id=channel.id)

    query = await open_stream(container, "u2", "messages", channel_id=channel.id)
    async with query:
        assert await _next(query) == []
        async with container.transaction() as db:
            await container.messaging.send_message(db, channel.id, "u1", "ping")
        assert [m["content"] for m in await _next(query)] == ["ping"]


async def test_unknown_stream(container, users):
    with pytest.raises(ValueError):
        await open_stream(container, "u1", "gossip")


async def test_subscribe_needs_a_topic(container):
    with pytest.raises(ValueError):
        container.hub.subscribe([], lambda db: _none())
    assert container.hub.active_count == 0


async def test_removed_member_stops_receiving_group_messages(container, users):
    async with container.transaction() as db:
        project = await container.projects.create_project(db, "u1", "Solar Car", target_team_size=3)
        await container.projects.request_to_join(db, project.id, "u2")
    async with container.transaction() as db:
        await container.projects.accept_applicant(db, project.id, "u2", "u1")
    channel_id = group_channel_id(project.id)

    query = await open_stream(container, "u2", "messages", channel_id=channel_id)
    async with query:
        assert await _next(query) == []
        async with container.transaction() as db:
            await container.projects.remove_member(db, project.id, "u2", "u1")

        with pytest.raises(Forbidden):
            await _next(query)
        assert query.closed
        assert container.hub.active_count == 0

        async with container.transaction() as db:
            await container.messaging.send_message(db, channel_id, "u1", "secret plan")
        with pytest.raises(StopAsyncIteration):
            await query.__anext__()
