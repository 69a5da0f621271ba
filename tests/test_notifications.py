import pytest

from inoconnect.db.models import NotificationType
from inoconnect.services.notifications import is_actionable, partition


def test_actionable_kinds():
    assert is_actionable(NotificationType.PROJECT_INVITE)
    assert is_actionable("PROJECT_JOIN_REQUEST")
    assert not is_actionable(NotificationType.NEW_DM)
    assert not is_actionable(NotificationType.WELCOME_MESSAGE)


async def test_registration_sends_welcome(container, make_user):
    await make_user("u9", username="Nadia")
    async with container.transaction() as db:
        inbox = await container.notifications.list_for_user(db, "u9")
    assert [n.type for n in inbox] == [NotificationType.WELCOME_MESSAGE.value]
    assert inbox[0].title == "Welcome to InnoConnect"


async def test_registering_twice_keeps_one_welcome(container, make_user):
    await make_user("u9")
    await make_user("u9")
    async with container.transaction() as db:
        assert len(await container.notifications.list_for_user(db, "u9")) == 1


async def test_emit_requires_recipient(container, users):
    with pytest.raises(ValueError):
        async with container.transaction() as db:
            await container.notifications.emit(db, "", NotificationType.SYSTEM_ALERT, "t", "m")


async def test_inbox_is_newest_first_and_partitioned(container, users):
    async with container.transaction() as db:
        await container.notifications.emit(db, "u1", NotificationType.SYSTEM_ALERT, "Maintenance", "Tonight")
        await container.notifications.emit(
            db, "u1", NotificationType.PROJECT_INVITE, "Project Invitation", "Join us", related_id="p1", sender_id="u2"
        )
    async with container.transaction() as db:
        inbox = await container.notifications.list_for_user(db, "u1")

    assert inbox[0].type == NotificationType.PROJECT_INVITE.value
    actionable, informational = partition(inbox)
    assert [n.type for n in actionable] == [NotificationType.PROJECT_INVITE.value]
    assert {n.type for n in informational} == {
        NotificationType.SYSTEM_ALERT.value, NotificationType.WELCOME_MESSAGE.value,
    }


async def test_mark_read_is_scoped_to_recipient(container, users):
    async with container.transaction() as db:
        mine = await container.notifications.emit(db, "u1", NotificationType.SYSTEM_ALERT, "a", "b")
        theirs = await container.notifications.emit(db, "u2", NotificationType.SYSTEM_ALERT, "a", "b")

    async with container.transaction() as db:
        assert await container.notifications.mark_read(db, "u1", [mine.id, theirs.id]) == 1
    async with container.transaction() as db:
        # Already read
        assert await container.notifications.mark_read(db, "u1", [mine.id]) == 0
        # Welcome message still unread for u1; both unread for u2
        assert await container.notifications.unread_count(db, "u1") == 1
        assert await container.notifications.unread_count(db, "u2") == 2


async def test_mark_all_read(container, users):
    async with container.transaction() as db:
        await container.notifications.emit(db, "u1", NotificationType.SYSTEM_ALERT, "a", "b")
    async with container.transaction() as db:
        assert await container.notifications.mark_all_read(db, "u1") == 2
    async with container.transaction() as db:
        assert await container.notifications.unread_count(db, "u1") == 0
        assert await container.notifications.list_for_user(db, "u1", unread_only=True) == []


async def test_delete_only_by_owner(container, users):
    async with container.transaction() as db:
        notification = await container.notifications.emit(db, "u1", NotificationType.SYSTEM_ALERT, "a", "b")
    async with container.transaction() as db:
        assert await container.notifications.delete(db, notification.id, user_id="u2") is False
    async with container.transaction() as db:
        assert await container.notifications.delete(db, notification.id, user_id="u1") is True
    async with container.transaction() as db:
        assert await container.notifications.delete(db, notification.id) is False


async def test_broadcast_dedupes_recipients(container, users):
    async with container.transaction() as db:
        created = await container.notifications.broadcast(
            db, ["u2", "u3", "u2", ""], NotificationType.SYSTEM_ALERT, "Hello", "World"
        )
    assert created == 2
