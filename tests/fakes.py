# tests/fakes.py

from __future__ import annotations

from dataclasses import dataclass, field

from taskflow.core.ports import OutboundMessenger


@dataclass(slots=True)
class SentMessage:
    text: str
    room_id: str | None
    to_user_id: str | None


@dataclass(slots=True)
class FakeMessenger(OutboundMessenger):
    """
    Fake OutboundMessenger used by scheduler tests.
    """

    sent: list[SentMessage] = field(default_factory=list)

    async def send_text(
        self,
        *,
        text: str,
        room_id: str | None = None,
        to_user_id: str | None = None,
    ) -> None:
        self.sent.append(SentMessage(text=text, room_id=room_id, to_user_id=to_user_id))


@dataclass(slots=True)
class FixedClock:
    """Callable clock for engine/series tests; move it by assigning .now."""

    now: float

    def __call__(self) -> float:
        return self.now
