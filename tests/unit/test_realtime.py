"""Unit tests for the WebSocket registry and the /ws endpoint."""

import time
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from chatline.core.security import create_jwt_token
from chatline.database import engine
from chatline.realtime import ConnectionManager
from chatline.server import app


class FakeSocket:
    def __init__(self):
        self.sent = []

    async def send_json(self, payload):
        self.sent.append(payload)


class DeadSocket:
    async def send_json(self, payload):
        raise RuntimeError("connection closed")


async def test_emit_to_room():
    manager = ConnectionManager()
    chat_id = uuid4()
    inside, outside = FakeSocket(), FakeSocket()
    manager.connect(uuid4(), inside)
    manager.connect(uuid4(), outside)
    manager.join(chat_id, inside)

    delivered = await manager.emit_to_room(chat_id, "receive-message", {"chat_id": chat_id})

    assert delivered == 1
    assert inside.sent == [{"event": "receive-message", "data": {"chat_id": str(chat_id)}}]
    assert outside.sent == []


async def test_emit_to_users_reaches_every_socket():
    manager = ConnectionManager()
    user_id = uuid4()
    phone, laptop = FakeSocket(), FakeSocket()
    manager.connect(user_id, phone)
    manager.connect(user_id, laptop)

    assert await manager.emit_to_users([user_id, user_id], "user-blocked", {}) == 2
    assert manager.connection_count(user_id) == 2


async def test_dead_socket_is_dropped():
    manager = ConnectionManager()
    user_id, chat_id = uuid4(), uuid4()
    dead, alive = DeadSocket(), FakeSocket()
    manager.connect(user_id, dead)
    manager.connect(user_id, alive)
    manager.join(chat_id, dead)
    manager.join(chat_id, alive)

    assert await manager.emit_to_room(chat_id, "message-updated", {}) == 1

    assert manager.connection_count(user_id) == 1
    assert manager.rooms[chat_id] == {alive}


def test_disconnect_leaves_rooms():
    manager = ConnectionManager()
    user_id, chat_id = uuid4(), uuid4()
    socket = FakeSocket()
    manager.connect(user_id, socket)
    manager.join(chat_id, socket)

    manager.disconnect(user_id, socket)

    assert manager.connection_count(user_id) == 0
    assert chat_id not in manager.rooms


def test_websocket_rejects_bad_token():
    client = TestClient(app)
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/ws?token=garbage") as ws:
            ws.receive_json()
    assert exc_info.value.code == 1008


def test_websocket_rejects_refresh_token():
    client = TestClient(app)
    token = create_jwt_token(uuid4(), token_type="refresh")
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect(f"/ws?token={token}") as ws:
            ws.receive_json()


def test_websocket_leave_and_unknown_events():
    client = TestClient(app)
    token = create_jwt_token(uuid4())
    chat_id = str(uuid4())

    with client.websocket_connect(f"/ws?token={token}") as ws:
        ws.send_json({"event": "leave-room", "chat_id": chat_id})
        assert ws.receive_json() == {"event": "room-left", "data": {"chat_id": chat_id}}

        ws.send_json({"event": "dance", "chat_id": chat_id})
        assert ws.receive_json()["data"]["detail"] == "Unknown event"

        ws.send_json({"event": "join-room"})
        assert ws.receive_json()["data"]["detail"] == "chat_id required"


# ============================================================================
# Rooms over a live app
# ============================================================================

@pytest.fixture
def live_client():
    """App with its lifespan running, so the tables exist."""
    with TestClient(app) as client:
        yield client
        client.portal.call(engine.dispose)


def signup(client: TestClient, name: str) -> dict:
    email = f"{name.lower()}_{time.time_ns()}@example.com"
    response = client.post(
        "/api/register",
        json={"name": name, "email": email, "password": "testpassword123"},
    )
    assert response.status_code == 201, response.text
    response = client.post("/api/login", json={"email": email, "password": "testpassword123"})
    data = response.json()
    return {
        "id": data["user"]["id"],
        "token": data["access_token"],
        "headers": {"Authorization": f"Bearer {data['access_token']}"},
    }


def test_join_room_as_participant(live_client):
    ann, ben = signup(live_client, "Ann"), signup(live_client, "Ben")
    chat = live_client.post(
        "/api/chats",
        json={"chat_type": "private", "participant_ids": [ben["id"]]},
        headers=ann["headers"],
    ).json()

    with live_client.websocket_connect(f"/ws?token={ben['token']}") as ws:
        ws.send_json({"event": "join-room", "chat_id": chat["id"]})
        assert ws.receive_json() == {"event": "room-joined", "data": {"chat_id": chat["id"]}}


def test_join_room_as_outsider_denied(live_client):
    ann, ben, cat = (signup(live_client, n) for n in ("Ann", "Ben", "Cat"))
    chat = live_client.post(
        "/api/chats",
        json={"chat_type": "private", "participant_ids": [ben["id"]]},
        headers=ann["headers"],
    ).json()

    with live_client.websocket_connect(f"/ws?token={cat['token']}") as ws:
        ws.send_json({"event": "join-room", "chat_id": chat["id"]})
        assert ws.receive_json() == {"event": "error", "data": {"detail": "Access denied"}}


def test_room_receives_message_events(live_client):
    ann, ben = signup(live_client, "Ann"), signup(live_client, "Ben")
    chat = live_client.post(
        "/api/chats",
        json={"chat_type": "private", "participant_ids": [ben["id"]]},
        headers=ann["headers"],
    ).json()

    with live_client.websocket_connect(f"/ws?token={ben['token']}") as ws:
        ws.send_json({"event": "join-room", "chat_id": chat["id"]})
        assert ws.receive_json()["event"] == "room-joined"

        response = live_client.post(
            f"/api/chats/{chat['id']}/messages",
            json={"type": "text", "content": "hello ben"},
            headers=ann["headers"],
        )
        assert response.status_code == 201
        message = response.json()

        event = ws.receive_json()
        assert event["event"] == "receive-message"
        assert event["data"]["id"] == message["id"]
        assert event["data"]["content"] == "hello ben"

        response = live_client.delete(f"/api/messages/{message['id']}", headers=ann["headers"])
        assert response.status_code == 200

        event = ws.receive_json()
        assert event["event"] == "message-deleted"
        assert event["data"]["id"] == message["id"]
