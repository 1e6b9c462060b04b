"""Shared monitoring state.

One ``MonitoringState`` is written by every service monitor and read by the
status API. It holds only the latest snapshot per target URL.
"""

from __future__ import annotations

import threading
import time
from typing import Dict, Optional

from .models import MonitoringSnapshot, ProbeResult


class MonitoringState:
    """Thread-safe map of target URL to its latest ``MonitoringSnapshot``.

    Snapshots are immutable, so the lock only has to cover copying the
    reference in or out of the dict. Nothing else happens while it is held.
    """

    def __init__(self) -> None:
        self._snapshots: Dict[str, MonitoringSnapshot] = {}
        self._lock = threading.Lock()

    def update(self, url: str, snapshot: MonitoringSnapshot) -> None:
        """Insert or replace the snapshot for ``url``."""
        with self._lock:
            self._snapshots[url] = snapshot

    def record(
        self,
        url: str,
        result: ProbeResult,
        *,
        interval_seconds: float,
        now: Optional[float] = None,
    ) -> MonitoringSnapshot:
        """Build a snapshot from a probe result, store it and return it."""
        checked_at = time.time() if now is None else float(now)
        snapshot = MonitoringSnapshot.from_probe(result, checked_at=checked_at, interval_seconds=interval_seconds)
        self.update(url, snapshot)
        return snapshot

    def get_snapshot(self, url: str) -> Optional[MonitoringSnapshot]:
        with self._lock:
            return self._snapshots.get(url)

    def get_all_snapshots(self) -> Dict[str, MonitoringSnapshot]:
        """Return a copy of every snapshot, detached from later writes."""
        with self._lock:
            return dict(self._snapshots)

    def __len__(self) -> int:
        with self._lock:
            return len(self._snapshots)

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._snapshots
