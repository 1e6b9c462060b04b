from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable

import httpx
import structlog

from .models import HealthStatus, ProbeResult, Target


logger = structlog.get_logger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


def describe_http_failure(response: httpx.Response) -> str:
    return f"HTTP {response.status_code}: {response.reason_phrase}"


def describe_request_failure(exc: httpx.RequestError) -> str:
    cause = str(exc).strip() or type(exc).__name__
    return f"Request failed: {cause}"


async def check_target(
    target: Target,
    client: httpx.AsyncClient,
    *,
    sleep: SleepFn = asyncio.sleep,
) -> ProbeResult:
    """Run one poll cycle against ``target`` and return its verdict.

    Up to ``max_retries + 1`` GET requests are made. The first 2xx response
    ends the cycle as healthy. A non-2xx response and a transport error are
    both failed attempts; ``retry_interval_seconds`` is awaited between failed
    attempts but never after the last one.

    Only ``httpx.RequestError`` is treated as a probe outcome. Anything else
    (an invalid URL, a bug) propagates to the caller.
    """
    error: str | None = None
    attempts = 0

    for attempt in range(target.max_attempts):
        attempts = attempt + 1
        started = time.perf_counter()
        try:
            resp = await client.get(target.url)
        except httpx.RequestError as e:
            error = describe_request_failure(e)
            logger.debug("Request failed", url=target.url, attempt=attempts, error=error)
        else:
            if resp.is_success:
                elapsed_ms = (time.perf_counter() - started) * 1000.0
                return ProbeResult(
                    status=HealthStatus.HEALTHY,
                    response_time_ms=round(elapsed_ms, 3),
                    error=None,
                    attempts=attempts,
                )
            error = describe_http_failure(resp)
            logger.debug("Request returned an error status", url=target.url, attempt=attempts, error=error)

        if attempts < target.max_attempts:
            logger.debug(
                "Retrying",
                url=target.url,
                attempt=attempts,
                retry_in_seconds=target.retry_interval_seconds,
            )
            await sleep(target.retry_interval_seconds)

    logger.debug("Max retries exceeded", url=target.url, max_retries=target.max_retries)
    return ProbeResult(status=HealthStatus.UNHEALTHY, response_time_ms=None, error=error, attempts=attempts)
