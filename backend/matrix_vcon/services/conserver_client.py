from __future__ import annotations

import httpx


def is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


class ConserverClient:
    """POSTs serialized vCons to the conserver collection endpoint."""

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.url = url
        self._client = httpx.Client(timeout=timeout, transport=transport)

    def post_vcon(self, body: bytes) -> httpx.Response:
        """Send one vCon. Network failures raise ``httpx.HTTPError``."""
        return self._client.post(
            self.url,
            content=body,
            headers={"Content-Type": "application/json"},
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ConserverClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
