import pytest

from inoconnect.core.errors import EmptyMessage, Forbidden, InvalidTarget, NotFound
from inoconnect.db.models import ChannelType, NotificationType
from inoconnect.schemas.chat import Attachment
from inoconnect.services.channel_identity import direct_channel_id, group_channel_id
from inoconnect.services.messaging import build_preview


def test_preview_formats():
    image = Attachment(url="https://cdn.example.com/a.png", type="image")
    assert build_preview("hi", None) == "hi"
    assert build_preview("look", image) == "[image] look"
    assert build_preview("", image) == "[image]"
    assert build_preview("hi", None, sender_name="Amy") == "Amy: hi"


async def test_direct_channel_is_shared_by_both_users(container, users):
    async with container.transaction() as db:
        first = await container.messaging.get_or_create_direct_channel(db, "u1", "u2")
    async with container.transaction() as db:
        second = await container.messaging.get_or_create_direct_channel(db, "u2", "u1")
        assert sorted(await container.messaging.participant_ids(db, first.id)) == ["u1", "u2"]

    assert first.id == second.id == direct_channel_id("u1", "u2")
    assert first.type == ChannelType.DIRECT.value


async def test_direct_channel_with_self(container, users):
    with pytest.raises(InvalidTarget):
        async with container.transaction() as db:
            await container.messaging.get_or_create_direct_channel(db, "u1", "u1")


async def test_send_updates_preview(container, users):
    async with container.transaction() as db:
        channel = await container.messaging.get_or_create_direct_channel(db, "u1", "u2")
    async with container.transaction() as db:
        await container.messaging.send_message(db, channel.id, "u1", "hi")
    async with container.transaction() as db:
        channel = await container.messaging.require_channel(db, channel.id)
        messages = await container.messaging.list_messages(db, channel.id)

    assert channel.last_message == "hi"
    assert channel.last_sender_id == "u1"
    assert [(m.sender_id, m.content, m.sender_name) for m in messages] == [("u1", "hi", "U1")]


async def test_empty_message_is_rejected(container, users):
    async with container.transaction() as db:
        channel = await container.messaging.get_or_create_direct_channel(db, "u1", "u2")
    with pytest.raises(EmptyMessage):
        async with container.transaction() as db:
            await container.messaging.send_message(db, channel.id, "u1", "   ")


async def test_attachment_only_message(container, users):
    attachment = Attachment(url="https://cdn.example.com/notes.pdf", type="file", name="notes.pdf", size="2 MB")
    async with container.transaction() as db:
        message = await container.messaging.send_direct_message(db, "u1", "u2", "", attachment)
    assert message.attachment_name == "notes.pdf"
    async with container.transaction() as db:
        channel = await container.messaging.require_channel(db, message.channel_id)
    assert channel.last_message == "[file]"


async def test_non_participant_cannot_post(container, users):
    async with container.transaction() as db:
        channel = await container.messaging.get_or_create_direct_channel(db, "u1", "u2")
    with pytest.raises(Forbidden):
        async with container.transaction() as db:
            await container.messaging.send_message(db, channel.id, "u3", "hello?")


async def test_unknown_channel(container, users):
    with pytest.raises(NotFound):
        async with container.transaction() as db:
            await container.messaging.send_message(db, "u1_u9", "u1", "hi")


async def test_direct_message_notifies_recipient(container, users):
    async with container.transaction() as db:
        message = await container.messaging.send_direct_message(db, "u1", "u2", "hey")
    async with container.transaction() as db:
        notification = await container.notifications.find(db, "u2", NotificationType.NEW_DM, message.channel_id)
    assert notification is not None
    assert notification.title == "New Message"
    assert notification.sender_id == "u1"


async def test_unread_count_and_mark_read(container, users):
    async with container.transaction() as db:
        message = await container.messaging.send_direct_message(db, "u1", "u2", "one")
        await container.messaging.send_message(db, message.channel_id, "u1", "two")
    channel_id = message.channel_id

    async with container.transaction() as db:
        assert await container.messaging.unread_count(db, channel_id, "u2") == 2
        assert await container.messaging.unread_count(db, channel_id, "u1") == 0

    async with container.transaction() as db:
        await container.messaging.mark_channel_read(db, channel_id, "u2")
    async with container.transaction() as db:
        assert await container.messaging.unread_count(db, channel_id, "u2") == 0
        messages = await container.messaging.list_messages(db, channel_id)
    assert all(m.is_read for m in messages)


async def test_list_messages_limit_keeps_newest(container, users):
    async with container.transaction() as db:
        channel = await container.messaging.get_or_create_direct_channel(db, "u1", "u2")
    for text in ("a", "b", "c"):
        async with container.transaction() as db:
            await container.messaging.send_message(db, channel.id, "u1", text)
    async with container.transaction() as db:
        messages = await container.messaging.list_messages(db, channel.id, limit=2)
    assert [m.content for m in messages] == ["b", "c"]


async def test_group_preview_carries_sender_and_rename(container, users):
    async with container.transaction() as db:
        project = await container.projects.create_project(db, "u1", "Robotics", target_team_size=3)
        channel = await container.messaging.get_or_create_group_channel(db, project.id)
    async with container.transaction() as db:
        await container.messaging.send_message(db, channel.id, "u1", "kickoff at 5")
        renamed = await container.messaging.rename_group(db, channel.id, "Robotics Team")
    assert renamed.last_message == "U1: kickoff at 5"
    assert renamed.group_name == "Robotics Team"

    with pytest.raises(InvalidTarget):
        async with container.transaction() as db:
            await container.messaging.rename_group(db, channel.id, "  ")


async def test_missing_group_channel_is_rebuilt_on_send(container, users):
    async with container.transaction() as db:
        project = await container.projects.create_project(db, "u1", "Hackathon", target_team_size=2)
    async with container.transaction() as db:
        message = await container.messaging.send_message(db, group_channel_id(project.id), "u1", "anyone here?")
    async with container.transaction() as db:
        assert await container.messaging.participant_ids(db, message.channel_id) == ["u1"]


async def test_channel_list_is_most_recent_first(container, users):
    async with container.transaction() as db:
        await container.messaging.send_direct_message(db, "u1", "u2", "older")
    async with container.transaction() as db:
        await container.messaging.send_direct_message(db, "u1", "u3", "newer")
    async with container.transaction() as db:
        channels = await container.messaging.list_channels(db, "u1")
        other = await container.messaging.other_participant(db, channels[0], "u1")
    assert [c.last_message for c in channels] == ["newer", "older"]
    assert other.id == "u3"
