from __future__ import annotations

from dataclasses import dataclass

import httpx

from ..errors import NotificationError


PUSHOVER_MESSAGES_URL = "https://api.pushover.net/1/messages.json"


@dataclass(frozen=True)
class PushoverConfig:
    api_key: str
    user_key: str


class PushoverProvider:
    """Push notifications through the Pushover messages API."""

    name = "pushover"

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: PushoverConfig,
        *,
        url: str = PUSHOVER_MESSAGES_URL,
        timeout: float = 15.0,
    ):
        self._client = client
        self._config = config
        self._url = url
        self._timeout = timeout

    async def send(self, message: str) -> None:
        payload = {"token": self._config.api_key, "user": self._config.user_key, "message": message}
        try:
            resp = await self._client.post(self._url, json=payload, timeout=self._timeout)
        except httpx.HTTPError as e:
            raise NotificationError(f"{type(e).__name__}: {e}") from e

        if not resp.is_success:
            body = (resp.text or "").strip()[:500]
            raise NotificationError(f"Failed to send notification: HTTP {resp.status_code}: {body}")
