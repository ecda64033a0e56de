from __future__ import annotations

import dataclasses
import logging
from typing import Literal

from matrix_vcon.schemas.matrix import RoomEventSchema
from matrix_vcon.schemas.vcon import (
    DialogMetaSchema,
    DialogSchema,
    PartyMetaSchema,
    PartySchema,
    VconSchema,
)
from matrix_vcon.services.identity import parse_sender

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class MergeOutcome:
    status: Literal["appended", "duplicate"]
    dialog: DialogSchema | None = None
    party_added: bool = False

    @property
    def appended(self) -> bool:
        return self.status == "appended"


def _ensure_party(vcon: VconSchema, event: RoomEventSchema, default_role: str) -> tuple[int, bool]:
    """Return the index of the event sender's party, appending it if new."""
    identity = parse_sender(event.sender)
    index = vcon.party_index(identity.canonical_id)
    if index is not None:
        return index, False

    vcon.parties.append(
        PartySchema(
            tel=identity.canonical_id,
            name=identity.canonical_id,
            mailto=identity.contact_address,
            meta=PartyMetaSchema(role=default_role, extension=identity.extension),
        )
    )
    logger.debug("merge_event: added party %s", identity.canonical_id)
    return len(vcon.parties) - 1, True


def merge_event(vcon: VconSchema, event: RoomEventSchema, default_role: str) -> MergeOutcome:
    """Fold one room message into ``vcon``.

    The sender becomes a party the first time it is seen. An event whose id
    is already in the dialog is a duplicate and leaves the dialog untouched.
    Raises MalformedSenderError if the sender address cannot be parsed.
    """
    # Party must be resolved before the dialog entry so its index is final.
    index, party_added = _ensure_party(vcon, event, default_role)

    if vcon.find_dialog(event.event_id) is not None:
        logger.debug("merge_event: skipping duplicate message %s", event.event_id)
        return MergeOutcome(status="duplicate", party_added=party_added)

    dialog = DialogSchema(
        body=event.body,
        start=event.sent_at,
        parties=[index],
        originator=[index],
        meta=DialogMetaSchema(matrix_event=event.raw()),
    )
    vcon.dialog.append(dialog)
    logger.debug("merge_event: added dialog for event %s", event.event_id)
    return MergeOutcome(status="appended", dialog=dialog, party_added=party_added)
