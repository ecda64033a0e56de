from __future__ import annotations

from urllib.parse import quote

import httpx


# ── Exceptions ────────────────────────────────────────────────────────────────


class MatrixAuthError(Exception):
    """Raised when the homeserver rejects our access token."""


class MatrixAPIError(Exception):
    """Raised when the homeserver returns an HTTP error or is unreachable."""

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(message)


# ── Client ────────────────────────────────────────────────────────────────────


class MatrixClient:
    """Thin wrapper over the Matrix client-server API.

    Requests carry the access token as a bearer token and assert
    ``user_id`` (application services act on behalf of a user this way).
    """

    def __init__(
        self,
        base_url: str,
        access_token: str,
        user_id: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.user_id = user_id
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=timeout,
            transport=transport,
        )

    def _get(self, path: str) -> httpx.Response:
        try:
            response = self._client.get(path, params={"user_id": self.user_id})
        except httpx.HTTPError as exc:
            raise MatrixAPIError(0, f"request to {path} failed: {exc}") from exc
        if response.status_code in (401, 403):
            raise MatrixAuthError(f"homeserver rejected credentials ({response.status_code})")
        return response

    def get_room_name(self, room_id: str) -> str | None:
        """Return the room's ``m.room.name``, or None if it has none."""
        response = self._get(f"/_matrix/client/v3/rooms/{quote(room_id, safe='')}/state/m.room.name")
        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise MatrixAPIError(response.status_code, response.text)
        return response.json().get("name") or None

    def room_display_name(self, room_id: str) -> str:
        return self.get_room_name(room_id) or room_id

    def close(self) -> None:
        self._client.close()
