"""Command line entry point."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

import httpx
import structlog
import uvicorn

from . import __version__
from .api import create_app
from .config import PulsewatchConfig, build_dispatcher, build_targets, load_config
from .errors import ConfigurationError, MonitorTaskError
from .models import HealthStatus, TargetUpdate
from .monitor import ServiceMonitor
from .state import MonitoringState
from .supervisor import MonitoringSupervisor


logger = structlog.get_logger(__name__)

FEED_QUEUE_SIZE = 1000


def configure_logging(level: str = "INFO") -> None:
    numeric_level = getattr(logging, str(level).upper(), logging.INFO)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    # The Telegram token is embedded in request URLs.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(),
        # Loggers resolve sys.stdout on every call so reconfiguring takes effect.
        cache_logger_on_first_use=False,
    )


def _http_client(config: PulsewatchConfig) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(config.request_timeout_seconds),
        follow_redirects=True,
        headers={"User-Agent": f"pulsewatch/{__version__}"},
    )


def _api_servers(config: PulsewatchConfig, app) -> list[tuple[str, uvicorn.Config]]:
    servers: list[tuple[str, uvicorn.Config]] = []
    if config.listen_address is not None:
        host, port = config.listen_address
        servers.append((f"{host}:{port}", uvicorn.Config(app, host=host, port=port, log_level="warning")))
    if config.unix_socket:
        servers.append((config.unix_socket, uvicorn.Config(app, uds=config.unix_socket, log_level="warning")))
    return servers


async def _serve_api(server_config: uvicorn.Config, address: str) -> None:
    server = uvicorn.Server(server_config)
    logger.info("Status API listening", address=address)
    try:
        await server.serve()
    except SystemExit:
        # uvicorn exits when it cannot bind; the monitors keep running without the API.
        logger.error("Status API failed to start", address=address)
        return
    logger.warning("Status API stopped", address=address)


async def _log_updates(updates: asyncio.Queue) -> None:
    while True:
        update: TargetUpdate = await updates.get()
        snap = update.snapshot
        logger.info(
            "Service update",
            url=update.url,
            status=snap.status.value,
            response_time_ms=snap.response_time_ms,
            error=snap.last_error,
            retries=snap.retry_count,
            transitioned=update.transitioned,
        )
        updates.task_done()


async def run_engine(config: PulsewatchConfig, *, feed: bool = False) -> None:
    """Run monitors until one of them stops.

    The status API and the update feed only read; they are cancelled with the
    engine but never end it.
    """
    targets = build_targets(config)
    state = MonitoringState()
    updates: Optional[asyncio.Queue] = asyncio.Queue(maxsize=FEED_QUEUE_SIZE) if feed else None

    async with _http_client(config) as client:
        dispatcher = build_dispatcher(config, client)
        logger.info("Notification providers", providers=[p.name for p in dispatcher.providers])

        supervisor = MonitoringSupervisor(targets, client, dispatcher, state, updates=updates)
        readers = [
            asyncio.create_task(_serve_api(server_config, address), name=f"status-api:{address}")
            for address, server_config in _api_servers(config, create_app(state, targets))
        ]
        if updates is not None:
            readers.append(asyncio.create_task(_log_updates(updates), name="update-feed"))

        try:
            await supervisor.run()
        finally:
            for task in readers:
                task.cancel()
            await asyncio.gather(*readers, return_exceptions=True)


async def run_once(config: PulsewatchConfig) -> int:
    """Run a single cycle for every target and print a summary."""
    targets = build_targets(config)
    state = MonitoringState()

    async with _http_client(config) as client:
        dispatcher = build_dispatcher(config, client)
        monitors = [ServiceMonitor(t, client, dispatcher, state) for t in targets]
        results = await asyncio.gather(*(m.run_cycle() for m in monitors))

    all_healthy = True
    for target, result in zip(targets, results):
        if result.status is HealthStatus.HEALTHY:
            print(f"OK    {target.url} ({result.response_time_ms} ms)")
        else:
            all_healthy = False
            print(f"DOWN  {target.url} ({result.error}; {result.attempts} attempt(s))")
    return 0 if all_healthy else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pulsewatch", description="HTTP endpoint health monitor")
    parser.add_argument("--config", default=None, help="Path to YAML config (default: $PULSEWATCH_CONFIG or config.yaml)")
    parser.add_argument("--log-level", default=None, help="Logging level (DEBUG, INFO, WARNING, ...)")
    parser.add_argument("--once", action="store_true", help="Run one check cycle per service and exit")
    parser.add_argument("--feed", action="store_true", help="Log every service update as it happens")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        configure_logging(args.log_level or "INFO")
        logger.error("Configuration error", error=str(e))
        return 2

    configure_logging(args.log_level or config.log_level)

    try:
        if args.once:
            return asyncio.run(run_once(config))
        asyncio.run(run_engine(config, feed=bool(args.feed)))
    except ConfigurationError as e:
        logger.error("Configuration error", error=str(e))
        return 2
    except MonitorTaskError as e:
        logger.error("Monitoring stopped", error=str(e))
        return 1
    except KeyboardInterrupt:
        logger.info("Shutting down")
        return 0
    return 0


if __name__ == "__main__":
    sys.exit(main())
