from __future__ import annotations

from datetime import timedelta

import redis as redis_module

from matrix_vcon.celery_app import celery_app
from matrix_vcon.config import get_settings
from matrix_vcon.services.conserver_client import ConserverClient
from matrix_vcon.services.export_service import sweep
from matrix_vcon.services.vcon_store import VconStore
from matrix_vcon.tasks.locking import record_lock


@celery_app.task(name="matrix_vcon.tasks.export_tasks.export_vcons")
def export_vcons() -> dict:
    """Runs every VCON_UPLOAD_PERIOD_MS via Celery Beat.

    Posts every vCon older than VCON_RETENTION_MINUTES to the conserver and
    deletes the ones it accepted. Anything not accepted is picked up again
    by the next run.
    """
    settings = get_settings()
    store = VconStore(settings.VCON_PATH)
    _redis = redis_module.from_url(settings.REDIS_URL)

    with ConserverClient(settings.CONSERVER_URL, timeout=settings.CONSERVER_TIMEOUT_SECONDS) as client:
        stats = sweep(
            store,
            client,
            retention=timedelta(minutes=settings.VCON_RETENTION_MINUTES),
            lock_for=lambda path: record_lock(_redis, path, settings),
        )

    return {
        "scanned": stats.scanned,
        "exported": stats.exported,
        "kept": stats.kept,
        "skipped": stats.skipped,
        "failed": stats.failed,
    }
