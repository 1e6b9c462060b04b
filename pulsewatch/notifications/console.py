from __future__ import annotations

import sys
from datetime import datetime, timezone
from typing import TextIO

from ..errors import NotificationError


class ConsoleProvider:
    """Writes notifications to a text stream (stdout by default)."""

    name = "console"

    def __init__(self, stream: TextIO | None = None):
        self._stream = stream

    async def send(self, message: str) -> None:
        stream = self._stream if self._stream is not None else sys.stdout
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
        try:
            print(f"[{stamp}] {message}", file=stream, flush=True)
        except (OSError, ValueError) as e:
            raise NotificationError(f"console write failed: {e}") from e
