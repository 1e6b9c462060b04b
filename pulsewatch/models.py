from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlsplit

import httpx

from .errors import InvalidTargetError


SUPPORTED_SCHEMES = ("http", "https")


class HealthStatus(Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


def _validate_url(url: str) -> str:
    s = (url or "").strip()
    if not s:
        raise InvalidTargetError(f"{url!r} is not a valid url")
    try:
        parts = urlsplit(s)
        # Accessing .port validates it.
        parts.port
    except ValueError as exc:
        raise InvalidTargetError(f"{url!r} is not a valid url: {exc}") from exc
    if parts.scheme.lower() not in SUPPORTED_SCHEMES or not parts.hostname:
        raise InvalidTargetError(f"{url!r} is not a valid url (expected an absolute http(s) url)")
    # httpx is stricter than urlsplit (control characters, IDNA hosts).
    try:
        httpx.URL(s)
    except httpx.InvalidURL as exc:
        raise InvalidTargetError(f"{url!r} is not a valid url: {exc}") from exc
    return s


def _coerce_seconds(url: str, name: str, value: object) -> float:
    if isinstance(value, bool):
        raise InvalidTargetError(f"{url}: {name} must be a number of seconds, got {value!r}")
    try:
        seconds = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise InvalidTargetError(f"{url}: {name} must be a number of seconds, got {value!r}") from exc
    if not math.isfinite(seconds):
        raise InvalidTargetError(f"{url}: {name} must be finite, got {value!r}")
    return seconds


@dataclass(frozen=True)
class Target:
    """One monitored endpoint and its polling policy."""

    url: str
    interval_seconds: float
    max_retries: int = 0
    retry_interval_seconds: float = 0.0

    def __post_init__(self) -> None:
        url = _validate_url(self.url)
        object.__setattr__(self, "url", url)

        interval = _coerce_seconds(url, "interval_seconds", self.interval_seconds)
        if interval <= 0:
            raise InvalidTargetError(f"{url}: interval_seconds must be > 0, got {self.interval_seconds!r}")
        object.__setattr__(self, "interval_seconds", interval)

        retries = self.max_retries
        if isinstance(retries, bool) or not isinstance(retries, int) or retries < 0:
            raise InvalidTargetError(f"{url}: max_retries must be a non-negative integer, got {retries!r}")

        retry_interval = _coerce_seconds(url, "retry_interval_seconds", self.retry_interval_seconds)
        if retry_interval < 0:
            raise InvalidTargetError(f"{url}: retry_interval_seconds must be >= 0, got {self.retry_interval_seconds!r}")
        object.__setattr__(self, "retry_interval_seconds", retry_interval)

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one health check cycle."""

    status: HealthStatus
    response_time_ms: float | None = None
    error: str | None = None
    attempts: int = 1

    @property
    def ok(self) -> bool:
        return self.status is HealthStatus.HEALTHY

    @property
    def retry_count(self) -> int:
        return max(0, self.attempts - 1)


@dataclass(frozen=True)
class MonitoringSnapshot:
    """Latest observation for one target, as held by the state store."""

    status: HealthStatus
    response_time_ms: float | None
    last_check_timestamp: float
    next_check_timestamp: float
    last_error: str | None
    retry_count: int

    @classmethod
    def from_probe(cls, result: ProbeResult, *, checked_at: float, interval_seconds: float) -> MonitoringSnapshot:
        return cls(
            status=result.status,
            response_time_ms=result.response_time_ms,
            last_check_timestamp=checked_at,
            next_check_timestamp=checked_at + interval_seconds,
            last_error=None if result.ok else result.error,
            retry_count=result.retry_count,
        )

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "response_time_ms": self.response_time_ms,
            "last_check_timestamp": self.last_check_timestamp,
            "next_check_timestamp": self.next_check_timestamp,
            "last_error": self.last_error,
            "retry_count": self.retry_count,
        }


@dataclass(frozen=True)
class TargetUpdate:
    """Item published on a monitor's optional side channel after every cycle."""

    url: str
    snapshot: MonitoringSnapshot
    transitioned: bool
