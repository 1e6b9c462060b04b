from __future__ import annotations

from dataclasses import dataclass

import httpx

from ..errors import NotificationError


TELEGRAM_API_BASE_URL = "https://api.telegram.org"
TELEGRAM_MAX_MESSAGE_LEN = 3900


@dataclass(frozen=True)
class TelegramConfig:
    bot_token: str
    chat_id: str


def split_telegram_message(text: str, *, max_len: int = TELEGRAM_MAX_MESSAGE_LEN) -> list[str]:
    s = (text or "").strip()
    if not s:
        return [""]

    max_len = max(1, int(max_len))
    parts: list[str] = []
    while s:
        if len(s) <= max_len:
            parts.append(s)
            break
        # Prefer a newline boundary unless it would leave a tiny chunk.
        cut = s.rfind("\n", 0, max_len + 1)
        if cut < max_len * 0.6:
            cut = max_len
        parts.append(s[:cut].rstrip())
        s = s[cut:].lstrip()
    return parts


class TelegramProvider:
    """Chat-bot notifications through the Telegram Bot API."""

    name = "telegram"

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: TelegramConfig,
        *,
        base_url: str = TELEGRAM_API_BASE_URL,
        timeout: float = 15.0,
        max_len: int = TELEGRAM_MAX_MESSAGE_LEN,
    ):
        self._client = client
        self._config = config
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_len = max_len

    def _redact(self, text: str) -> str:
        if self._config.bot_token:
            return text.replace(self._config.bot_token, "<redacted>")
        return text

    async def _send_part(self, text: str) -> None:
        url = f"{self._base_url}/bot{self._config.bot_token}/sendMessage"
        payload = {"chat_id": self._config.chat_id, "text": text}
        try:
            resp = await self._client.post(url, json=payload, timeout=self._timeout)
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise NotificationError(self._redact(f"{type(e).__name__}: {e}")) from None

        if not isinstance(data, dict) or not data.get("ok"):
            description = data.get("description") if isinstance(data, dict) else None
            raise NotificationError(
                self._redact(f"Telegram rejected message: HTTP {resp.status_code}: {description or resp.text[:300]}")
            )

    async def send(self, message: str) -> None:
        for part in split_telegram_message(message, max_len=self._max_len):
            await self._send_part(part)
