from __future__ import annotations

import dataclasses
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Literal

from pydantic import ValidationError

from matrix_vcon.schemas.vcon import VconSchema
from matrix_vcon.services.identity import record_filename

logger = logging.getLogger(__name__)

VCON_SUFFIX = ".vcon"


# ── Exceptions ────────────────────────────────────────────────────────────────


class CorruptRecordError(Exception):
    """A record file exists but does not parse as a vCon."""

    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"{path}: {message}")


# ── Data structures ───────────────────────────────────────────────────────────


@dataclasses.dataclass(frozen=True)
class LoadResult:
    status: Literal["ok", "not_found", "corrupt"]
    vcon: VconSchema | None = None
    error: CorruptRecordError | None = None


# ── Store ─────────────────────────────────────────────────────────────────────


class VconStore:
    """One JSON vCon file per conversation under a root directory.

    Callers hold the record's lock for the whole load/modify/save or
    load/export/delete sequence; the store itself does no locking.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def path_for(self, room_name: str, room_id: str) -> Path:
        return self.root / record_filename(room_name, room_id)

    def load(self, path: Path) -> LoadResult:
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return LoadResult(status="not_found")

        try:
            return LoadResult(status="ok", vcon=VconSchema.model_validate_json(raw))
        except ValidationError as exc:
            return LoadResult(
                status="corrupt",
                error=CorruptRecordError(path, f"{exc.error_count()} validation error(s)"),
            )

    def load_or_create(self, path: Path) -> tuple[VconSchema, bool]:
        """Return ``(vcon, created)``.

        A missing file yields a fresh record. An unreadable one is moved
        aside first so its contents are never overwritten.
        """
        result = self.load(path)
        if result.status == "ok":
            return result.vcon, False

        if result.status == "corrupt":
            quarantined = self.quarantine(path)
            logger.error(
                "load_or_create: corrupt record %s moved to %s (%s)",
                path, quarantined, result.error.message,
            )
        else:
            logger.debug("load_or_create: creating new vcon file %s", path)
        return VconSchema(), True

    def save(self, path: Path, vcon: VconSchema) -> None:
        """Overwrite ``path`` with ``vcon``; the old file survives a failed write."""
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(f".{path.name}.tmp-{os.getpid()}")
        try:
            tmp.write_text(vcon.to_json(), encoding="utf-8")
            os.replace(tmp, path)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise
        logger.debug("save: wrote vcon file %s", path)

    def list_all(self) -> list[Path]:
        if not self.root.is_dir():
            return []
        return [
            p for p in self.root.iterdir()
            if p.is_file() and p.suffix == VCON_SUFFIX
        ]

    def delete(self, path: Path) -> bool:
        try:
            path.unlink()
        except OSError as exc:
            logger.warning("delete: could not remove %s: %s", path, exc)
            return False
        return True

    def quarantine(self, path: Path) -> Path:
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
        target = path.with_name(f"{path.name}.corrupt-{stamp}")
        os.replace(path, target)
        return target
