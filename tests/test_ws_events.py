import asyncio
from unittest.mock import AsyncMock

import pytest

from inoconnect.db.models import NotificationType
from inoconnect.services.channel_identity import group_channel_id
from inoconnect.ws.connection_manager import ConnectionManager
from inoconnect.ws.events import WebSocketEventHandler
from inoconnect.ws.message_types import MessageType


class FakeSocket:
    """Records what the server sends; unhashable like a real starlette socket."""

    __hash__ = None

    def __init__(self):
        self.send_json = AsyncMock()

    @property
    def sent(self):
        return [call.args[0] for call in self.send_json.call_args_list]

    def of_type(self, message_type: MessageType):
        return [m for m in self.sent if m["type"] == message_type.value]


async def _settle(predicate, timeout: float = 1.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.01)


@pytest.fixture()
def handler(container):
    return WebSocketEventHandler(ConnectionManager(), container)


async def test_ping_pong(handler):
    socket = FakeSocket()
    await handler.handle_message(socket, "u1", {"type": "ping"})
    assert socket.sent == [{"type": "pong"}]


async def test_unknown_message_type(handler):
    socket = FakeSocket()
    await handler.handle_message(socket, "u1", {"type": "shout"})
    assert socket.sent[0]["code"] == "unknown_type"


async def test_subscribe_pushes_snapshots(handler, container, users):
    socket = FakeSocket()
    await handler.handle_message(socket, "u1", {"type": "subscribe", "stream": "notifications"})
    assert socket.sent[0] == {"type": "subscribed", "stream": "notifications"}

    await _settle(lambda: len(socket.of_type(MessageType.STREAM_UPDATE)) == 1)
    async with container.transaction() as db:
        await container.notifications.emit(db, "u1", NotificationType.SYSTEM_ALERT, "Heads up", "")
    await _settle(lambda: len(socket.of_type(MessageType.STREAM_UPDATE)) == 2)

    latest = socket.of_type(MessageType.STREAM_UPDATE)[-1]
    assert latest["stream"] == "notifications"
    assert latest["data"][0]["title"] == "Heads up"
    assert latest["data"][0]["actionable"] is False

    assert await handler.release_all(socket) == 1
    assert container.hub.active_count == 0


async def test_repeat_subscribe_keeps_one_subscription(handler, container, users):
    socket = FakeSocket()
    for _ in range(2):
        await handler.handle_message(socket, "u1", {"type": "subscribe", "stream": "channels"})
    assert handler.subscription_count(socket) == 1
    assert len(socket.of_type(MessageType.SUBSCRIBED)) == 2
    await handler.release_all(socket)


async def test_unsubscribe_releases_stream(handler, container, users):
    socket = FakeSocket()
    await handler.handle_message(socket, "u1", {"type": "subscribe", "stream": "projects"})
    await handler.handle_message(socket, "u1", {"type": "unsubscribe", "stream": "projects"})
    assert handler.subscription_count(socket) == 0
    assert container.hub.active_count == 0
    assert socket.of_type(MessageType.UNSUBSCRIBED) == [{"type": "unsubscribed", "stream": "projects"}]


async def test_subscribe_errors(handler, container, users):
    async with container.transaction() as db:
        channel = await container.messaging.get_or_create_direct_channel(db, "u1", "u2")

    socket = FakeSocket()
    await handler.handle_message(socket, "u1", {"type": "subscribe", "stream": "gossip"})
    await handler.handle_message(socket, "u1", {"type": "subscribe", "stream": "messages"})
    await handler.handle_message(
        socket, "u3", {"type": "subscribe", "stream": "messages", "channel_id": channel.id}
    )
    assert [m["code"] for m in socket.of_type(MessageType.ERROR)] == [
        "unknown_stream", "invalid_target", "forbidden",
    ]
    assert handler.subscription_count() == 0


async def test_sockets_are_independent(handler, container, users):
    first, second = FakeSocket(), FakeSocket()
    await handler.handle_message(first, "u1", {"type": "subscribe", "stream": "notifications"})
    await handler.handle_message(second, "u1", {"type": "subscribe", "stream": "notifications"})
    assert handler.subscription_count() == 2

    await handler.release_all(first)
    assert handler.subscription_count(second) == 1
    assert container.hub.active_count == 1
    await handler.release_all(second)


async def test_dead_socket_stops_forwarding(handler, container, users):
    socket = FakeSocket()
    socket.send_json.side_effect = [None, RuntimeError("closed")]
    await handler.handle_message(socket, "u1", {"type": "subscribe", "stream": "notifications"})
    await _settle(lambda: socket.send_json.await_count == 2)
    await handler.release_all(socket)
    assert container.hub.active_count == 0


async def test_connection_manager_tracks_sockets():
    manager = ConnectionManager()
    first, second = FakeSocket(), FakeSocket()
    await manager.connect(first, "u1")
    await manager.connect(second, "u1")
    assert manager.get_user_connection_count("u1") == 2

    assert await manager.send_to_user({"type": "ping"}, "u1") == 2
    await manager.disconnect(first, "u1")
    assert manager.get_total_connections() == 1
    await manager.disconnect(second, "u1")
    assert not manager.is_user_connected("u1")

    with pytest.raises(ValueError):
        await manager.connect(first, "")


async def test_stream_ends_when_participation_ends(handler, container, users):
    async with container.transaction() as db:
        project = await container.projects.create_project(db, "u1", "Solar Car", target_team_size=3)
        await container.projects.request_to_join(db, project.id, "u2")
    async with container.transaction() as db:
        await container.projects.accept_applicant(db, project.id, "u2", "u1")
    channel_id = group_channel_id(project.id)

    socket = FakeSocket()
    await handler.handle_message(socket, "u2", {"type": "subscribe", "stream": "messages", "channel_id": channel_id})
    await _settle(lambda: len(socket.of_type(MessageType.STREAM_UPDATE)) == 1)

    async with container.transaction() as db:
        await container.projects.remove_member(db, project.id, "u2", "u1")
    await _settle(lambda: len(socket.of_type(MessageType.ERROR)) == 1)

    assert socket.of_type(MessageType.ERROR)[0]["code"] == "forbidden"
    assert handler.subscription_count(socket) == 0
    assert container.hub.active_count == 0
