from __future__ import annotations

import dataclasses
import hashlib
import uuid

# Byte budgets for the two filename parts. With ".vcon", the temp-file and
# quarantine affixes added by the store, names stay under the 255-byte limit.
MAX_NAME_BYTES = 100
MAX_ROOM_ID_BYTES = 90


class MalformedSenderError(ValueError):
    """Raised when a sender address is not of the form ``@local:domain[:ext]``."""


@dataclasses.dataclass(frozen=True)
class SenderIdentity:
    canonical_id: str
    domain: str
    extension: str | None

    @property
    def contact_address(self) -> str:
        return f"{self.canonical_id}@{self.domain}"


def parse_sender(sender: str) -> SenderIdentity:
    """Split a Matrix sender address into its party identity.

    ``@alice:example.org:1`` -> canonical id ``alice``, contact address
    ``alice@example.org``, extension ``1``. The extension part is optional.
    """
    if not sender or not sender.startswith("@"):
        raise MalformedSenderError(f"Sender {sender!r} does not start with '@'")

    parts = sender[1:].split(":")
    if len(parts) not in (2, 3):
        raise MalformedSenderError(f"Sender {sender!r} is not local:domain[:extension]")

    local, domain = parts[0], parts[1]
    if not local or not domain:
        raise MalformedSenderError(f"Sender {sender!r} has an empty local part or domain")

    extension = parts[2] if len(parts) == 3 and parts[2] else None
    return SenderIdentity(canonical_id=local, domain=domain, extension=extension)


def record_uuid(domain: str, room_id: str) -> str:
    """Stable per-room record id: UUIDv5 of the room id under the domain's namespace."""
    namespace = uuid.uuid5(uuid.NAMESPACE_DNS, domain)
    return str(uuid.uuid5(namespace, room_id))


def _cap_bytes(text: str, limit: int) -> str:
    """Truncate ``text`` to ``limit`` UTF-8 bytes, suffixing a hash of the full text."""
    encoded = text.encode("utf-8")
    if len(encoded) <= limit:
        return text
    digest = hashlib.sha1(encoded).hexdigest()[:8]
    head = encoded[: limit - len(digest) - 1].decode("utf-8", errors="ignore")
    return f"{head}~{digest}"


def record_filename(room_name: str, room_id: str) -> str:
    # Room names are user-controlled; keep the file inside the store directory.
    safe_name = room_name.replace("/", "_").replace("\\", "_") or "_"
    safe_id = room_id.replace("/", "_").replace("\\", "_")
    return f"{_cap_bytes(safe_name, MAX_NAME_BYTES)}:{_cap_bytes(safe_id, MAX_ROOM_ID_BYTES)}.vcon"


def record_subject(room_name: str) -> str:
    return f"Recording of {room_name}"
