"""Per-target monitoring loop: probe, evaluate, record, notify, sleep."""

from __future__ import annotations

import asyncio
import time
from typing import Callable, Optional

import httpx
import structlog

from .errors import NotificationError
from .models import HealthStatus, ProbeResult, Target, TargetUpdate
from .notifications import NotificationDispatcher
from .probe import SleepFn, check_target
from .state import MonitoringState


logger = structlog.get_logger(__name__)


def build_transition_message(url: str, status: HealthStatus) -> str:
    if status is HealthStatus.HEALTHY:
        return f"{url} is now healthy!"
    return f"{url} is unhealthy!"


class ServiceMonitor:
    """Drives the health check of a single target on a fixed cadence.

    The remembered status starts as ``HEALTHY`` so that a target that is down
    from the first cycle produces an alert, while a target that is up from
    the start stays silent.
    """

    def __init__(
        self,
        target: Target,
        client: httpx.AsyncClient,
        dispatcher: NotificationDispatcher,
        state: MonitoringState,
        *,
        updates: Optional[asyncio.Queue] = None,
        sleep: SleepFn = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ):
        self.target = target
        self._client = client
        self._dispatcher = dispatcher
        self._state = state
        self._updates = updates
        self._sleep = sleep
        self._clock = clock
        self._previous_status = HealthStatus.HEALTHY

    @property
    def url(self) -> str:
        return self.target.url

    @property
    def previous_status(self) -> HealthStatus:
        return self._previous_status

    async def run(self) -> None:
        """Run cycles forever. Errors from the health check propagate."""
        logger.info(
            "Monitoring started",
            url=self.url,
            interval_seconds=self.target.interval_seconds,
            max_retries=self.target.max_retries,
        )
        while True:
            await self.run_cycle()
            await self._sleep(self.target.interval_seconds)

    async def run_cycle(self) -> ProbeResult:
        result = await check_target(self.target, self._client, sleep=self._sleep)

        transitioned = result.status is not self._previous_status
        snapshot = self._state.record(
            self.url,
            result,
            interval_seconds=self.target.interval_seconds,
            now=self._clock(),
        )
        self._publish(TargetUpdate(url=self.url, snapshot=snapshot, transitioned=transitioned))

        if transitioned:
            self._previous_status = result.status
            await self._notify_transition(result)
        else:
            logger.debug("Status unchanged", url=self.url, status=result.status.value, retries=result.retry_count)

        return result

    def _publish(self, update: TargetUpdate) -> None:
        if self._updates is None:
            return
        try:
            self._updates.put_nowait(update)
        except asyncio.QueueFull:
            logger.debug("Update queue full; dropping update", url=self.url)

    async def _notify_transition(self, result: ProbeResult) -> None:
        message = build_transition_message(self.url, result.status)
        if result.ok:
            logger.info(message, url=self.url, response_time_ms=result.response_time_ms)
        else:
            logger.warning(message, url=self.url, error=result.error, retries=result.retry_count)

        try:
            await self._dispatcher.send(message)
        except NotificationError as e:
            logger.error("Problem sending notification", url=self.url, error=str(e))
