from __future__ import annotations

import logging
from datetime import datetime, timezone

from matrix_vcon.config import Settings
from matrix_vcon.schemas.matrix import RoomEventSchema
from matrix_vcon.services.identity import record_subject, record_uuid
from matrix_vcon.services.merge import MergeOutcome, merge_event
from matrix_vcon.services.vcon_store import VconStore

logger = logging.getLogger(__name__)


def ingest_event(
    store: VconStore,
    settings: Settings,
    event: RoomEventSchema,
    room_name: str,
) -> MergeOutcome | None:
    """Record one timeline event in its room's vCon.

    Returns None for anything but ``m.room.message`` (the store is not
    touched). Otherwise returns the merge outcome; the record is written only
    when a dialog entry was appended. Store errors propagate to the caller.
    Raises MalformedSenderError if the sender address cannot be parsed.
    """
    if not event.is_message:
        return None

    path = store.path_for(room_name, event.room_id)
    vcon, created = store.load_or_create(path)

    if created:
        vcon.uuid = record_uuid(settings.DOMAIN_NAME, event.room_id)
        vcon.created_at = datetime.now(timezone.utc)
        vcon.subject = record_subject(room_name)
        logger.info("ingest_event: new vcon %s for room %s at %s", vcon.uuid, event.room_id, path)

    outcome = merge_event(vcon, event, settings.DEFAULT_ROLE)
    if not outcome.appended:
        return outcome

    store.save(path, vcon)
    logger.debug(
        "ingest_event: event=%s path=%s dialog=%d parties=%d",
        event.event_id,
        path,
        len(vcon.dialog),
        len(vcon.parties),
    )
    return outcome
