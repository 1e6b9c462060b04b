from __future__ import annotations

import asyncio
from typing import Optional, Sequence

import httpx
import structlog

from .errors import ConfigurationError, MonitorTaskError
from .models import Target
from .monitor import ServiceMonitor
from .notifications import NotificationDispatcher
from .probe import SleepFn
from .state import MonitoringState


logger = structlog.get_logger(__name__)


class MonitoringSupervisor:
    """Starts one monitor task per target and stops when the first one ends.

    Monitors are never restarted: any monitor stopping is the end of the
    engine. A monitor that raised makes ``run`` raise ``MonitorTaskError``.
    """

    def __init__(
        self,
        targets: Sequence[Target],
        client: httpx.AsyncClient,
        dispatcher: NotificationDispatcher,
        state: MonitoringState,
        *,
        updates: Optional[asyncio.Queue] = None,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.targets = tuple(targets)
        self.state = state
        self._monitors = tuple(
            ServiceMonitor(target, client, dispatcher, state, updates=updates, sleep=sleep)
            for target in self.targets
        )
        logger.debug("Created service monitors", count=len(self._monitors))

    @property
    def monitors(self) -> tuple[ServiceMonitor, ...]:
        return self._monitors

    async def run(self) -> None:
        if not self._monitors:
            raise ConfigurationError("No services configured for monitoring")

        logger.info("Starting monitoring", services=len(self._monitors))
        tasks: dict[asyncio.Task, ServiceMonitor] = {}
        for monitor in self._monitors:
            logger.debug("Spawning monitoring task", url=monitor.url)
            task = asyncio.create_task(monitor.run(), name=f"monitor:{monitor.url}")
            tasks[task] = monitor
        logger.info("Started monitoring tasks", tasks=len(tasks))

        try:
            done, _pending = await asyncio.wait(list(tasks), return_when=asyncio.FIRST_COMPLETED)
        finally:
            await self._cancel_all(tasks)

        # Several monitors may have stopped in the same loop iteration; report the first failure.
        for task in done:
            monitor = tasks[task]
            if task.cancelled():
                raise MonitorTaskError(monitor.url, "monitoring task was cancelled")
            exc = task.exception()
            if exc is not None:
                logger.error("Monitoring failed", url=monitor.url, error=repr(exc))
                raise MonitorTaskError(monitor.url, repr(exc)) from exc

        for task in done:
            logger.warning("Monitoring completed unexpectedly", url=tasks[task].url)

    @staticmethod
    async def _cancel_all(tasks: dict[asyncio.Task, ServiceMonitor]) -> None:
        pending = [task for task in tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
