from __future__ import annotations

import dataclasses
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable

import httpx

from matrix_vcon.services.conserver_client import ConserverClient, is_success
from matrix_vcon.services.vcon_store import VconStore

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class SweepStats:
    scanned: int = 0
    exported: int = 0
    kept: int = 0       # younger than retention, or export deferred
    skipped: int = 0    # lock held by another worker
    failed: int = 0


def _export_one(
    store: VconStore,
    client: ConserverClient,
    path: Path,
    retention: timedelta,
    now: datetime,
    stats: SweepStats,
) -> None:
    result = store.load(path)
    if result.status == "not_found":
        # Deleted between listing and loading
        return
    if result.status == "corrupt":
        quarantined = store.quarantine(path)
        logger.error("sweep: corrupt record %s moved to %s", path, quarantined)
        stats.failed += 1
        return

    vcon = result.vcon
    if vcon.created_at is None:
        logger.warning("sweep: %s has no created_at, leaving in place", path)
        stats.kept += 1
        return

    created_at = vcon.created_at
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    age = now - created_at
    if age <= retention:
        stats.kept += 1
        return

    logger.debug("sweep: posting vcon file %s (age %s)", path, age)
    try:
        response = client.post_vcon(vcon.to_json().encode("utf-8"))
    except httpx.HTTPError as exc:
        logger.warning("sweep: error posting %s, will retry next sweep: %s", path, exc)
        stats.kept += 1
        return

    if not is_success(response.status_code):
        logger.warning(
            "sweep: conserver returned %d for %s, will retry next sweep",
            response.status_code, path,
        )
        stats.kept += 1
        return

    if store.delete(path):
        stats.exported += 1
        logger.info("sweep: exported vcon %s from %s", vcon.uuid, path)
    else:
        stats.failed += 1


def _release(lock: Any, path: Path) -> None:
    try:
        lock.release()
    except Exception as exc:
        # An expired lock is already free
        logger.warning("sweep: could not release lock for %s: %s", path, exc)


def sweep(
    store: VconStore,
    client: ConserverClient,
    retention: timedelta,
    now: datetime | None = None,
    lock_for: Callable[[Path], Any] | None = None,
) -> SweepStats:
    """Export and delete every stored vCon older than ``retention``.

    Each record is handled on its own: an error on one is logged and the
    sweep moves on. A record is only deleted after the conserver answers 2xx.
    ``lock_for(path)`` may return a lock with ``acquire(blocking=False)`` and
    ``release()``; records whose lock is held are skipped until next sweep.
    """
    now = now or datetime.now(timezone.utc)
    stats = SweepStats()

    for path in store.list_all():
        stats.scanned += 1
        lock = lock_for(path) if lock_for is not None else None
        if lock is not None and not lock.acquire(blocking=False):
            logger.info("sweep: lock held for %s, skipping", path)
            stats.skipped += 1
            continue
        try:
            _export_one(store, client, path, retention, now, stats)
        except Exception:
            logger.exception("sweep: failed to process %s", path)
            stats.failed += 1
        finally:
            if lock is not None:
                _release(lock, path)

    logger.info(
        "sweep: scanned=%d exported=%d kept=%d skipped=%d failed=%d",
        stats.scanned, stats.exported, stats.kept, stats.skipped, stats.failed,
    )
    return stats
