from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status

from matrix_vcon.config import Settings, get_settings
from matrix_vcon.schemas.matrix import ROOM_MESSAGE, TransactionSchema
from matrix_vcon.tasks.ingest_tasks import ingest_room_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/_matrix/app/v1", tags=["matrix"])


def _verify_hs_token(
    authorization: str | None = Header(default=None),
    access_token: str | None = Query(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    token = access_token
    if authorization and authorization.startswith("Bearer "):
        token = authorization.removeprefix("Bearer ")
    if token != settings.SYNAPSE_HS_TOKEN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"errcode": "M_FORBIDDEN", "error": "Invalid homeserver token"},
        )


@router.put("/transactions/{txn_id}", dependencies=[Depends(_verify_hs_token)])
def push_transaction(txn_id: str, payload: TransactionSchema) -> dict:
    """Receive a batch of timeline events pushed by the homeserver.

    Room messages are handed to the ingest worker one event per task;
    everything else is dropped here. The homeserver resends a transaction
    until it gets a 200, and resent events are deduplicated by event id.
    """
    queued = 0
    for event in payload.events:
        if event.get("type") != ROOM_MESSAGE:
            continue
        ingest_room_event.delay(event)
        queued += 1

    logger.info("push_transaction: txn=%s events=%d queued=%d", txn_id, len(payload.events), queued)
    return {}
