# tests/test_matrix_messenger.py

from __future__ import annotations

from types import SimpleNamespace

import pytest
from nio import JoinResponse, RoomSendError, RoomSendResponse

from taskflow.connectors import matrix_messenger
from taskflow.connectors.matrix_client import MatrixSession
from taskflow.connectors.matrix_messenger import MatrixMessenger


class FakeClient:
    def __init__(self, response) -> None:
        self.response = response
        self.sent: list[dict] = []
        self.closed = False
        self.joined: list[str] = []

    async def join(self, room_id: str):
        self.joined.append(room_id)
        return JoinResponse(room_id=room_id)

    async def room_send(self, *, room_id: str, message_type: str, content: dict):
        self.sent.append({"room_id": room_id, "type": message_type, "content": content})
        return self.response

    async def close(self) -> None:
        self.closed = True


def _messenger(monkeypatch: pytest.MonkeyPatch, client: FakeClient, room: str = "!notify:example.org"):
    async def fake_create(_settings):
        return client

    monkeypatch.setattr(matrix_messenger, "create_matrix_client", fake_create)
    return MatrixMessenger(SimpleNamespace(matrix_notify_room=room))


@pytest.mark.asyncio
async def test_send_text_posts_notice_to_default_room(monkeypatch: pytest.MonkeyPatch) -> None:
    client = FakeClient(RoomSendResponse(event_id="$ev", room_id="!notify:example.org"))
    messenger = _messenger(monkeypatch, client)

    await messenger.send_text(text="Task summary", to_user_id="alice")
    await messenger.send_text(text="Again")
    await messenger.aclose()

    assert client.sent == [
        {
            "room_id": "!notify:example.org",
            "type": "m.room.message",
            "content": {"msgtype": "m.notice", "body": "alice: Task summary"},
        },
        {
            "room_id": "!notify:example.org",
            "type": "m.room.message",
            "content": {"msgtype": "m.notice", "body": "Again"},
        },
    ]
    assert client.joined == ["!notify:example.org"]
    assert client.closed


@pytest.mark.asyncio
async def test_send_text_failures_raise(monkeypatch: pytest.MonkeyPatch) -> None:
    client = FakeClient(RoomSendError(message="forbidden"))
    messenger = _messenger(monkeypatch, client)
    with pytest.raises(RuntimeError, match="room_send failed"):
        await messenger.send_text(text="x")

    no_room = _messenger(monkeypatch, client, room="")
    with pytest.raises(RuntimeError, match="No Matrix room"):
        await no_room.send_text(text="x")


def test_session_file_round_trip_and_validation(tmp_path) -> None:
    path = tmp_path / "session.json"
    MatrixSession(user_id="@bot:example.org", device_id="DEV", access_token="tok").save(path)

    assert MatrixSession.load(path).device_id == "DEV"

    path.write_text('{"user_id": "@bot:example.org"}', "utf-8")
    with pytest.raises(ValueError, match="missing"):
        MatrixSession.load(path)
