import pytest

from inoconnect.core.errors import (
    AlreadyConnected, AlreadyResolved, DuplicateRequest, Forbidden, InvalidTarget, NotFound,
)
from inoconnect.db.models import ConnectionStatus, NotificationType, RequestStatus


async def _send(container, from_id, to_id):
    async with container.transaction() as db:
        return await container.connections.send_request(db, from_id, to_id)


async def _accept(container, request_id, caller_id):
    async with container.transaction() as db:
        return await container.connections.accept_request(db, request_id, caller_id)


async def test_accept_links_both_users(container, users):
    request = await _send(container, "u1", "u2")
    await _accept(container, request.id, "u2")

    async with container.transaction() as db:
        assert await container.connections.connection_ids(db, "u1") == ["u2"]
        assert await container.connections.connection_ids(db, "u2") == ["u1"]
        assert await container.connections.following_ids(db, "u1") == ["u2"]
        assert await container.connections.follower_ids(db, "u2") == ["u1"]
        assert await container.connections.list_incoming(db, "u2") == []
        u1 = await container.directory.get_user(db, "u1")
        u2 = await container.directory.get_user(db, "u2")
        assert (u1.connections_count, u1.following_count) == (1, 1)
        assert (u2.connections_count, u2.following_count) == (1, 0)


async def test_second_accept_is_a_no_op(container, users):
    request = await _send(container, "u1", "u2")
    await _accept(container, request.id, "u2")
    again = await _accept(container, request.id, "u2")

    assert again.status == RequestStatus.ACCEPTED.value
    async with container.transaction() as db:
        assert await container.connections.connection_ids(db, "u1") == ["u2"]
        u1 = await container.directory.get_user(db, "u1")
        assert u1.connections_count == 1
        accepted = [
            n for n in await container.notifications.list_for_user(db, "u1")
            if n.type == NotificationType.CONNECTION_ACCEPTED.value
        ]
        assert len(accepted) == 1


async def test_accept_clears_request_notification_and_notifies_requester(container, users):
    request = await _send(container, "u1", "u2")

    async with container.transaction() as db:
        inbox = await container.notifications.list_for_user(db, "u2")
        assert any(n.type == NotificationType.NEW_FOLLOWER.value and n.related_id == request.id for n in inbox)

    await _accept(container, request.id, "u2")

    async with container.transaction() as db:
        inbox = await container.notifications.list_for_user(db, "u2")
        assert not any(n.type == NotificationType.NEW_FOLLOWER.value for n in inbox)
        accepted = await container.notifications.find(db, "u1", NotificationType.CONNECTION_ACCEPTED, "u2")
        assert accepted is not None
        assert accepted.title == "Connection Accepted"


async def test_duplicate_request_in_either_direction(container, users):
    first = await _send(container, "u1", "u2")

    with pytest.raises(DuplicateRequest) as same_way:
        await _send(container, "u1", "u2")
    assert same_way.value.existing.id == first.id
    assert same_way.value.existing.from_user_id == "u1"
    assert same_way.value.existing.status == "pending"

    with pytest.raises(DuplicateRequest):
        await _send(container, "u2", "u1")

    async with container.transaction() as db:
        assert len(await container.connections.list_incoming(db, "u2")) == 1


async def test_request_to_self_or_unknown_user(container, users):
    with pytest.raises(InvalidTarget):
        await _send(container, "u1", "u1")
    with pytest.raises(NotFound):
        await _send(container, "u1", "ghost")


async def test_request_between_connected_users(container, users):
    request = await _send(container, "u1", "u2")
    await _accept(container, request.id, "u2")
    with pytest.raises(AlreadyConnected):
        await _send(container, "u2", "u1")


async def test_only_addressee_can_resolve(container, users):
    request = await _send(container, "u1", "u2")
    with pytest.raises(Forbidden):
        await _accept(container, request.id, "u1")
    with pytest.raises(Forbidden):
        async with container.transaction() as db:
            await container.connections.reject_request(db, request.id, "u3")


async def test_reject_deletes_request(container, users):
    request = await _send(container, "u1", "u2")
    async with container.transaction() as db:
        assert await container.connections.reject_request(db, request.id, "u2") is True
    async with container.transaction() as db:
        assert await container.connections.get_request(db, request.id) is None
        assert await container.connections.connection_ids(db, "u1") == []
        # Rejecting again finds nothing and is not an error
        assert await container.connections.reject_request(db, request.id, "u2") is False

    # The pair may try again later
    retry = await _send(container, "u2", "u1")
    assert retry.status == RequestStatus.PENDING.value


async def test_reject_after_accept(container, users):
    request = await _send(container, "u1", "u2")
    await _accept(container, request.id, "u2")
    with pytest.raises(AlreadyResolved):
        async with container.transaction() as db:
            await container.connections.reject_request(db, request.id, "u2")


async def test_accept_unknown_request(container, users):
    with pytest.raises(NotFound):
        await _accept(container, "missing", "u2")


async def test_connection_status_from_both_sides(container, users):
    request = await _send(container, "u1", "u2")
    async with container.transaction() as db:
        assert await container.connections.connection_status(db, "u1", "u2") == ConnectionStatus.PENDING_SENT
        assert await container.connections.connection_status(db, "u2", "u1") == ConnectionStatus.PENDING_RECEIVED
        assert await container.connections.connection_status(db, "u1", "u3") == ConnectionStatus.NOT_CONNECTED

    await _accept(container, request.id, "u2")
    async with container.transaction() as db:
        assert await container.connections.connection_status(db, "u2", "u1") == ConnectionStatus.CONNECTED


async def test_suggestions_exclude_self_and_carry_status(container, users):
    await _send(container, "u1", "u2")
    await _send(container, "u3", "u1")
    async with container.transaction() as db:
        suggestions = dict(
            (user.id, status) for user, status in await container.connections.suggested_users(db, "u1")
        )
    assert "u1" not in suggestions
    assert suggestions["u2"] == ConnectionStatus.PENDING_SENT
    assert suggestions["u3"] == ConnectionStatus.PENDING_RECEIVED
    assert suggestions["u4"] == ConnectionStatus.NOT_CONNECTED


async def test_network_stats(container, users):
    request = await _send(container, "u1", "u2")
    await _send(container, "u3", "u2")
    await _accept(container, request.id, "u2")
    async with container.transaction() as db:
        stats = await container.connections.network_stats(db, "u2")
    assert stats == {"connections": 1, "following": 0, "pending_requests": 1}


async def test_follow_is_idempotent(container, users):
    async with container.transaction() as db:
        assert await container.connections.follow_user(db, "u1", "u3") is True
    async with container.transaction() as db:
        assert await container.connections.follow_user(db, "u1", "u3") is False
        user = await container.directory.get_user(db, "u1")
        assert user.following_count == 1
        assert [u.id for u in await container.connections.list_following(db, "u1")] == ["u3"]
    with pytest.raises(InvalidTarget):
        async with container.transaction() as db:
            await container.connections.follow_user(db, "u1", "u1")
