from __future__ import annotations

import logging

import redis as redis_module
from pydantic import ValidationError

from matrix_vcon.celery_app import celery_app
from matrix_vcon.config import get_settings
from matrix_vcon.schemas.matrix import RoomEventSchema
from matrix_vcon.services.identity import MalformedSenderError
from matrix_vcon.services.ingest_service import ingest_event
from matrix_vcon.services.matrix_client import MatrixAPIError, MatrixAuthError, MatrixClient
from matrix_vcon.services.vcon_store import VconStore
from matrix_vcon.tasks.locking import record_lock

logger = logging.getLogger(__name__)


class RecordLockTimeout(Exception):
    """The record's lock stayed held longer than RECORD_LOCK_WAIT_SECONDS."""


@celery_app.task(
    bind=True,
    max_retries=5,
    default_retry_delay=10,
    name="matrix_vcon.tasks.ingest_tasks.ingest_room_event",
)
def ingest_room_event(self, event: dict) -> str | None:
    """Record one pushed timeline event in its room's vCon file.

    This task is the only writer of inbound events; the Redis record lock
    keeps it from interleaving with the export sweep on the same file.
    Returns the merge status ("appended" / "duplicate"), or None when the
    event was ignored.
    """
    settings = get_settings()

    try:
        parsed = RoomEventSchema.model_validate(event)
    except ValidationError as exc:
        logger.warning(
            "ingest_room_event: dropping invalid event %s: %s",
            event.get("event_id") if isinstance(event, dict) else None,
            exc,
        )
        return None

    if not parsed.is_message:
        return None

    matrix = MatrixClient(
        settings.SYNAPSE_URL,
        settings.SYNAPSE_ACCESS_TOKEN,
        settings.SYNAPSE_USER_ID,
    )
    try:
        room_name = matrix.room_display_name(parsed.room_id)
    except MatrixAuthError as exc:
        logger.error("ingest_room_event: MatrixAuthError for event %s: %s", parsed.event_id, exc)
        return None
    except MatrixAPIError as exc:
        logger.warning("ingest_room_event: MatrixAPIError for event %s: %s", parsed.event_id, exc)
        raise self.retry(exc=exc)
    finally:
        matrix.close()

    store = VconStore(settings.VCON_PATH)
    path = store.path_for(room_name, parsed.room_id)

    _redis = redis_module.from_url(settings.REDIS_URL)
    lock = record_lock(_redis, path, settings)
    if not lock.acquire():
        logger.warning("ingest_room_event: lock held for %s, retrying event %s", path, parsed.event_id)
        raise self.retry(exc=RecordLockTimeout(str(path)))

    try:
        outcome = ingest_event(store, settings, parsed, room_name)
    except MalformedSenderError as exc:
        logger.error("ingest_room_event: dropping event %s: %s", parsed.event_id, exc)
        return None
    except OSError as exc:
        logger.error(
            "ingest_room_event: store error for event %s at %s: %s",
            parsed.event_id, path, exc,
        )
        raise
    finally:
        try:
            lock.release()
        except Exception as exc:
            logger.debug("could not release lock for %s: %s", path, exc)

    return outcome.status if outcome else None
