# src/taskflow/connectors/matrix_messenger.py

from __future__ import annotations

import logging

from nio import AsyncClient, RoomSendResponse

from .matrix_client import create_matrix_client, ensure_joined

logger = logging.getLogger(__name__)


class MatrixMessenger:
    """
    OutboundMessenger that posts plain-text notices to a Matrix room.

    The client is created lazily on first send, inside the event loop that
    runs the scheduler. room_id=None falls back to settings.matrix_notify_room.
    """

    def __init__(self, settings) -> None:
        self._settings = settings
        self._client: AsyncClient | None = None
        self._joined: set[str] = set()

    @property
    def default_room(self) -> str:
        return (getattr(self._settings, "matrix_notify_room", "") or "").strip()

    async def _get_client(self) -> AsyncClient:
        if self._client is None:
            self._client = await create_matrix_client(self._settings)
            if self._client is None:
                raise RuntimeError("Matrix client is not available (see earlier log for details)")
        return self._client

    async def send_text(
        self,
        *,
        text: str,
        room_id: str | None = None,
        to_user_id: str | None = None,
    ) -> None:
        room = (room_id or "").strip() or self.default_room
        if not room:
            raise RuntimeError("No Matrix room: set TASKFLOW_MATRIX_NOTIFY_ROOM")

        body = text if not to_user_id else f"{to_user_id}: {text}"

        client = await self._get_client()
        if room not in self._joined and await ensure_joined(client, room):
            self._joined.add(room)
        resp = await client.room_send(
            room_id=room,
            message_type="m.room.message",
            content={"msgtype": "m.notice", "body": body},
        )
        if not isinstance(resp, RoomSendResponse):
            raise RuntimeError(f"Matrix room_send failed: {resp!r}")
        logger.debug("Matrix notice sent room=%s event_id=%s", room, resp.event_id)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
            self._joined.clear()
