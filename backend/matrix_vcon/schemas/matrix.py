from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict

ROOM_MESSAGE = "m.room.message"


class RoomEventSchema(BaseModel):
    """A Matrix client-server event as delivered on the timeline.

    Unknown keys (``unsigned``, ``age``...) are kept so the full event can be
    stored alongside the dialog entry built from it.
    """

    model_config = ConfigDict(extra="allow")

    type: str
    room_id: str
    sender: str
    event_id: str
    origin_server_ts: int
    content: dict[str, Any] = {}

    @property
    def is_message(self) -> bool:
        return self.type == ROOM_MESSAGE

    @property
    def body(self) -> str:
        return self.content.get("body") or ""

    @property
    def sent_at(self) -> datetime:
        return datetime.fromtimestamp(self.origin_server_ts / 1000, tz=timezone.utc)

    def raw(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class TransactionSchema(BaseModel):
    """Body of an application service transaction pushed by the homeserver."""

    events: list[dict[str, Any]] = []
