from __future__ import annotations

from pathlib import Path

from matrix_vcon.config import Settings


def record_lock(redis_client, path: Path, settings: Settings):
    """Redis lock guarding one record file.

    Ingestion and the export sweep both read-modify-write whole files, so
    both take this lock for the duration of their work on ``path``.
    """
    return redis_client.lock(
        f"matrix_vcon:record_lock:{path.name}",
        timeout=settings.RECORD_LOCK_TIMEOUT_SECONDS,
        blocking_timeout=settings.RECORD_LOCK_WAIT_SECONDS,
    )
