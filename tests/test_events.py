import pytest
import pytest_asyncio

from inoconnect.core.errors import Forbidden, NotFound
from inoconnect.db.models import NotificationType, UserRole


@pytest_asyncio.fixture()
async def organizer(make_user, users):
    return await make_user("org", username="Dana", role=UserRole.ORGANIZER)


async def test_only_organizers_publish(container, users):
    with pytest.raises(Forbidden):
        async with container.transaction() as db:
            await container.events.create_event(db, "u1", "Hack Night")


async def test_event_is_announced_to_everyone_else(container, organizer):
    async with container.transaction() as db:
        event = await container.events.create_event(db, "org", "Hack Night", location="Lab 3")
    async with container.transaction() as db:
        for user_id in ("u1", "u2", "u3", "u4"):
            notification = await container.notifications.find(db, user_id, NotificationType.NEW_EVENT, event.id)
            assert notification.title == "New Event: Hack Night"
            assert notification.message == "Dana has posted a new event."
        assert await container.notifications.find(db, "org", NotificationType.NEW_EVENT, event.id) is None


async def test_join_is_idempotent(container, organizer):
    async with container.transaction() as db:
        event = await container.events.create_event(db, "org", "Hack Night")
    async with container.transaction() as db:
        assert await container.events.join_event(db, event.id, "u1") is True
    async with container.transaction() as db:
        assert await container.events.join_event(db, event.id, "u1") is False
        assert await container.events.participant_ids(db, event.id) == ["u1"]


async def test_delete_event(container, organizer, assets):
    async with container.transaction() as db:
        event = await container.events.create_event(
            db, "org", "Hack Night", image_url="https://cdn.example.com/poster.png"
        )
    with pytest.raises(Forbidden):
        async with container.transaction() as db:
            await container.events.delete_event(db, event.id, "u1")
    async with container.transaction() as db:
        await container.events.delete_event(db, event.id, "org")
    with pytest.raises(NotFound):
        async with container.transaction() as db:
            await container.events.require_event(db, event.id)
    assert assets.removed == ["https://cdn.example.com/poster.png"]
