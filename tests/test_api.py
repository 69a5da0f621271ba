import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from inoconnect.app import create_app
from inoconnect.core.security import create_access_token


def auth(user_id: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest_asyncio.fixture()
async def client(container):
    app = create_app(container)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http


@pytest_asyncio.fixture()
async def registered(client):
    for user_id, name, role in (
        ("u1", "Aisha", "PARTICIPANT"),
        ("u2", "Ben", "PARTICIPANT"),
        ("u3", "Chen", "PARTICIPANT"),
        ("org", "Dana", "ORGANIZER"),
    ):
        response = await client.post(
            "/api/v1/users",
            json={"email": f"{user_id}@example.com", "username": name, "role": role},
            headers=auth(user_id),
        )
        assert response.status_code == 201
    return ["u1", "u2", "u3", "org"]


async def test_health_and_version(client):
    assert (await client.get("/health")).json() == {"status": "ok"}
    version = (await client.get("/version")).json()
    assert version["version"] == "1.0.0"


async def test_requests_need_a_valid_token(client):
    assert (await client.get("/api/v1/users/me")).status_code == 401
    response = await client.get("/api/v1/users/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


async def test_profile_read_and_update(client, registered):
    response = await client.patch(
        "/api/v1/users/me", json={"university": "UM", "skills": ["python"]}, headers=auth("u1")
    )
    assert response.status_code == 200
    me = (await client.get("/api/v1/users/me", headers=auth("u1"))).json()
    assert me["university"] == "UM"
    assert me["skills"] == ["python"]
    assert me["connection_ids"] == []

    found = (await client.get("/api/v1/users/search", params={"q": "be"}, headers=auth("u1"))).json()
    assert [u["id"] for u in found] == ["u2"]


async def test_unknown_user_renders_domain_error(client, registered):
    response = await client.get("/api/v1/users/ghost", headers=auth("u1"))
    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


async def test_connection_flow(client, registered):
    sent = await client.post("/api/v1/connections/requests", json={"to_user_id": "u2"}, headers=auth("u1"))
    assert sent.status_code == 201
    assert sent.json()["created"] is True
    request_id = sent.json()["request"]["id"]

    again = await client.post("/api/v1/connections/requests", json={"to_user_id": "u2"}, headers=auth("u1"))
    assert again.status_code == 200
    assert again.json() == {"created": False, "request": sent.json()["request"]}

    status = (await client.get("/api/v1/users/u2/status", headers=auth("u1"))).json()
    assert status["status"] == "pending_sent"

    forbidden = await client.post(f"/api/v1/connections/requests/{request_id}/accept", headers=auth("u3"))
    assert forbidden.status_code == 403

    for _ in range(2):
        accepted = await client.post(f"/api/v1/connections/requests/{request_id}/accept", headers=auth("u2"))
        assert accepted.status_code == 200
        assert accepted.json()["status"] == "accepted"

    connections = (await client.get("/api/v1/connections", headers=auth("u1"))).json()
    assert [u["id"] for u in connections] == ["u2"]
    incoming = (await client.get("/api/v1/connections/requests/incoming", headers=auth("u2"))).json()
    assert incoming == []
    stats = (await client.get("/api/v1/connections/stats", headers=auth("u2"))).json()
    assert stats == {"connections": 1, "following": 0, "pending_requests": 0}


async def test_reject_missing_request_is_not_an_error(client, registered):
    response = await client.post("/api/v1/connections/requests/nope/reject", headers=auth("u2"))
    assert response.status_code == 200
    assert response.json() == {"request_id": "nope", "deleted": False}


async def test_project_membership_flow(client, registered):
    created = await client.post(
        "/api/v1/projects", json={"title": "Campus Navigator", "target_team_size": 2}, headers=auth("u1")
    )
    assert created.status_code == 201
    project_id = created.json()["id"]
    assert created.json()["member_ids"] == ["u1"]

    joined = await client.post(f"/api/v1/projects/{project_id}/join", headers=auth("u3"))
    assert joined.status_code == 202
    assert joined.json()["pending_applicant_ids"] == ["u3"]

    again = await client.post(f"/api/v1/projects/{project_id}/join", headers=auth("u3"))
    assert again.status_code == 409
    assert again.json()["code"] == "already_pending"

    not_creator = await client.post(f"/api/v1/projects/{project_id}/applicants/u3/accept", headers=auth("u2"))
    assert not_creator.status_code == 403

    resolved = await client.post(
        f"/api/v1/projects/{project_id}/membership-events",
        json={"kind": "PROJECT_JOIN_REQUEST", "subject_id": "u3", "accept": True},
        headers=auth("u1"),
    )
    assert resolved.status_code == 200
    assert resolved.json()["changed"] is True
    assert resolved.json()["project"]["member_ids"] == ["u1", "u3"]
    assert resolved.json()["project"]["pending_applicant_ids"] == []

    channels = (await client.get("/api/v1/chat/channels", headers=auth("u3"))).json()
    assert [c["id"] for c in channels] == [f"project:{project_id}"]

    milestone = await client.post(
        f"/api/v1/projects/{project_id}/milestones", json={"title": "MVP"}, headers=auth("u3")
    )
    assert milestone.status_code == 201
    toggled = await client.post(
        f"/api/v1/projects/{project_id}/milestones/{milestone.json()['id']}/toggle", headers=auth("u1")
    )
    assert toggled.json()["is_completed"] is True
    project = (await client.get(f"/api/v1/projects/{project_id}", headers=auth("u2"))).json()
    assert project["progress"] == 1.0

    mine = (await client.get("/api/v1/projects/mine", headers=auth("u3"))).json()
    assert [p["id"] for p in mine] == [project_id]

    deleted = await client.delete(f"/api/v1/projects/{project_id}", headers=auth("u1"))
    assert deleted.status_code == 204
    assert (await client.get(f"/api/v1/projects/{project_id}", headers=auth("u1"))).status_code == 404


async def test_chat_flow(client, registered):
    sent = await client.post("/api/v1/chat/direct/u2/messages", json={"content": "hi"}, headers=auth("u1"))
    assert sent.status_code == 201
    channel_id = sent.json()["channel_id"]

    channels = (await client.get("/api/v1/chat/channels", headers=auth("u2"))).json()
    assert channels[0]["id"] == channel_id
    assert channels[0]["last_message"] == "hi"
    assert channels[0]["last_sender_id"] == "u1"
    assert channels[0]["unread_count"] == 1

    receipt = await client.post(f"/api/v1/chat/channels/{channel_id}/read", headers=auth("u2"))
    assert receipt.json() == {"channel_id": channel_id, "unread_count": 0}

    empty = await client.post(f"/api/v1/chat/channels/{channel_id}/messages", json={"content": ""}, headers=auth("u2"))
    assert empty.status_code == 422
    assert empty.json()["code"] == "empty_message"

    outsider = await client.get(f"/api/v1/chat/channels/{channel_id}/messages", headers=auth("u3"))
    assert outsider.status_code == 403

    rename = await client.patch(f"/api/v1/chat/channels/{channel_id}", json={"group_name": "x"}, headers=auth("u1"))
    assert rename.status_code == 422


async def test_notifications_inbox(client, registered):
    created = await client.post(
        "/api/v1/projects", json={"title": "Robotics", "target_team_size": 3}, headers=auth("u1")
    )
    project_id = created.json()["id"]
    invite = await client.post(f"/api/v1/projects/{project_id}/invite", json={"user_id": "u2"}, headers=auth("u1"))
    assert invite.status_code == 201

    inbox = (await client.get("/api/v1/notifications", headers=auth("u2"))).json()
    assert [n["type"] for n in inbox["actionable"]] == ["PROJECT_INVITE"]
    assert [n["type"] for n in inbox["informational"]] == ["WELCOME_MESSAGE"]
    assert inbox["unread_count"] == 2

    marked = await client.post("/api/v1/notifications/read-all", headers=auth("u2"))
    assert marked.json() == {"updated": 2}
    count = (await client.get("/api/v1/notifications/unread-count", headers=auth("u2"))).json()
    assert count == {"unread_count": 0}

    welcome_id = inbox["informational"][0]["id"]
    assert (await client.delete(f"/api/v1/notifications/{welcome_id}", headers=auth("u1"))).status_code == 404
    assert (await client.delete(f"/api/v1/notifications/{welcome_id}", headers=auth("u2"))).status_code == 204


async def test_events(client, registered):
    refused = await client.post("/api/v1/events", json={"title": "Career Fair"}, headers=auth("u1"))
    assert refused.status_code == 403

    created = await client.post(
        "/api/v1/events", json={"title": "Career Fair", "location": "Main Hall"}, headers=auth("org")
    )
    assert created.status_code == 201
    event_id = created.json()["id"]

    joined = await client.post(f"/api/v1/events/{event_id}/join", headers=auth("u1"))
    assert joined.json()["participant_ids"] == ["u1"]

    inbox = (await client.get("/api/v1/notifications", headers=auth("u3"))).json()
    assert any(n["title"] == "New Event: Career Fair" for n in inbox["informational"])


async def test_ws_status(client, registered):
    response = await client.get("/ws/status", headers=auth("u1"))
    assert response.status_code == 200
    assert response.json()["connected"] is False
    assert response.json()["active_streams"] == 0
