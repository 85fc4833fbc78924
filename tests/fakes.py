# tests/fakes.py

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class SentMessage:
    room_id: str
    text: str


@dataclass(slots=True)
class FakeMessenger:
    """OutboundMessenger that records what would have been posted to a room."""

    sent: list[SentMessage] = field(default_factory=list)
    fail: bool = False

    async def send_text(self, *, room_id: str, text: str) -> None:
        if self.fail:
            raise ConnectionError("room_send failed")
        self.sent.append(SentMessage(room_id=room_id, text=text))
