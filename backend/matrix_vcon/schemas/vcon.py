from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

VCON_VERSION = "0.0.1"


class PartyMetaSchema(BaseModel):
    role: str
    extension: str | None = None


class PartySchema(BaseModel):
    tel: str                 # canonical id: sender local part
    name: str
    mailto: str
    meta: PartyMetaSchema


class DialogMetaSchema(BaseModel):
    matrix_event: dict[str, Any]


class DialogSchema(BaseModel):
    body: str = ""
    type: str = "text"
    start: datetime
    encoding: str = "text/plain"
    parties: list[int]
    originator: list[int]
    meta: DialogMetaSchema

    @property
    def event_id(self) -> str | None:
        return self.meta.matrix_event.get("event_id")


class VconSchema(BaseModel):
    """One conversation record, serialized in the IETF vCon JSON shape.

    ``parties`` order is significant: dialog entries point at parties by
    list index. Both lists are append-only.
    """

    uuid: str | None = None
    vcon: str = VCON_VERSION
    created_at: datetime | None = None
    subject: str | None = None
    parties: list[PartySchema] = Field(default_factory=list)
    dialog: list[DialogSchema] = Field(default_factory=list)
    analysis: list[Any] = Field(default_factory=list)
    attachments: list[Any] = Field(default_factory=list)

    def party_index(self, tel: str) -> int | None:
        for index, party in enumerate(self.parties):
            if party.tel == tel:
                return index
        return None

    def find_dialog(self, event_id: str) -> DialogSchema | None:
        return next((d for d in self.dialog if d.event_id == event_id), None)

    def to_json(self) -> str:
        return self.model_dump_json(indent=2)
